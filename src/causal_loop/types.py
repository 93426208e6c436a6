from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class NodeKind(str, Enum):
    PRESSURE = "pressure"
    GENERATOR = "generator"
    SYSTEM = "system"
    ACTION = "action"
    ENTITY_KIND = "entityKind"


class Polarity(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class EdgeType(str, Enum):
    DIRECT = "direct"
    CREATES = "creates"
    FEEDBACK = "feedback"
    TRIGGER = "trigger"


class LoopType(str, Enum):
    REINFORCING = "reinforcing"
    BALANCING = "balancing"


class TriggerPolicy(str, Enum):
    """What to do with a trigger whose target generator was never declared."""

    DROP = "drop"
    CREATE = "create"


class DetectionMode(str, Enum):
    DFS = "dfs"
    ELEMENTARY = "elementary"


def make_node_id(kind: NodeKind, key: str) -> str:
    return f"{kind.value}:{key}"


class Node(BaseModel):
    """A vertex of the causal graph."""

    kind: NodeKind = Field(..., description="Which configuration collection the node represents")
    key: str = Field(..., description="Identifier of the record inside its collection")
    label: str = Field(..., description="Display name, falls back to the key")
    data: Dict[str, Any] = Field(default_factory=dict, description="Back-reference to the source record")

    @property
    def id(self) -> str:
        return make_node_id(self.kind, self.key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "key": self.key,
            "label": self.label,
        }


class Edge(BaseModel):
    """A directed, polarity-tagged causal relation. Parallel edges are allowed."""

    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    polarity: Polarity = Field(..., description="positive/negative/neutral")
    edge_type: EdgeType = Field(..., description="Provenance of the relation")
    label: str = Field(default="", description="Display string, e.g. '+5' or '>50'")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "polarity": self.polarity.value,
            "edgeType": self.edge_type.value,
            "label": self.label,
        }


class Loop(BaseModel):
    """A closed walk through the graph; the first id repeats at the end."""

    nodes: List[str] = Field(..., description="Closed walk of node ids")
    type: LoopType = Field(..., description="reinforcing or balancing")
    negative_edges: int = Field(default=0, description="Number of negative edges along the walk")

    @property
    def length(self) -> int:
        return max(len(self.nodes) - 1, 0)


class SkippedReference(BaseModel):
    """A node or edge omitted because its record was malformed or dangling."""

    collection: str = Field(..., description="pressures/generators/systems/actions")
    record_id: Optional[str] = Field(default=None, description="Id of the offending record, if known")
    reason: str = Field(..., description="Short machine-readable reason")
    detail: str = Field(default="", description="Human readable explanation")


class ConfigCollections(BaseModel):
    """The five raw configuration collections an analysis is built from."""

    pressures: List[Any] = Field(default_factory=list)
    generators: List[Any] = Field(default_factory=list)
    systems: List[Any] = Field(default_factory=list)
    actions: List[Any] = Field(default_factory=list)
    schema_: Dict[str, Any] = Field(default_factory=dict, alias="schema")

    model_config = {"populate_by_name": True}
