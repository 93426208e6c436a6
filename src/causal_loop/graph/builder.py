from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import networkx as nx

from ..types import (
    Edge,
    EdgeType,
    Node,
    NodeKind,
    Polarity,
    SkippedReference,
    TriggerPolicy,
    make_node_id,
)

logger = logging.getLogger(__name__)


@dataclass
class BuildOptions:
    """Knobs for graph construction.

    - `zero_polarity`: polarity given to a pressure change of exactly zero.
    - `trigger_policy`: whether a trigger naming an unknown generator is
      dropped or creates that generator node.
    """

    zero_polarity: Polarity = Polarity.POSITIVE
    trigger_policy: TriggerPolicy = TriggerPolicy.DROP

    def __post_init__(self) -> None:
        self.zero_polarity = Polarity(self.zero_polarity)
        self.trigger_policy = TriggerPolicy(self.trigger_policy)


@dataclass
class CausalGraph:
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    skipped: List[SkippedReference] = field(default_factory=list)

    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def incoming(self, node_id: str) -> List[Edge]:
        return [e for e in self.edges if e.target == node_id]

    def outgoing(self, node_id: str) -> List[Edge]:
        return [e for e in self.edges if e.source == node_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [e.to_dict() for e in self.edges],
            "skipped": [s.model_dump() for s in self.skipped],
        }

    def to_networkx(self) -> nx.MultiDiGraph:
        G = nx.MultiDiGraph()
        for node in self.nodes:
            G.add_node(node.id, kind=node.kind.value, label=node.label)
        for edge in self.edges:
            G.add_edge(
                edge.source,
                edge.target,
                polarity=edge.polarity.value,
                edge_type=edge.edge_type.value,
                label=edge.label,
            )
        return G


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and not math.isnan(value)


def _format_delta(delta: Real) -> str:
    if delta > 0:
        return f"+{delta}"
    return f"{delta}"


def _record_id(record: Mapping, *, config_first: bool = False) -> Optional[str]:
    config = record.get("config")
    config = config if isinstance(config, Mapping) else {}
    candidates = (config.get("id"), record.get("id")) if config_first else (record.get("id"), config.get("id"))
    for value in candidates:
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value).strip():
            return str(value)
    return None


def _record_field(record: Mapping, key: str, *, config_first: bool = False) -> Any:
    config = record.get("config")
    config = config if isinstance(config, Mapping) else {}
    first, second = (config, record) if config_first else (record, config)
    value = first.get(key)
    return value if value else second.get(key)


def _trigger_label(trigger: Mapping) -> str:
    threshold = trigger.get("threshold")
    return f">{threshold}" if threshold is not None else "trigger"


class GraphBuilder:
    """Derives the causal graph from raw configuration collections.

    A builder instance holds the working node map for a single build; use
    `build_causal_graph` for one-shot calls.
    """

    def __init__(self, options: Optional[BuildOptions] = None) -> None:
        self.options = options or BuildOptions()
        self._nodes: Dict[str, Node] = {}
        self._edges: List[Edge] = []
        self._skipped: List[SkippedReference] = []

    # -- helpers -----------------------------------------------------------
    def _add_node(self, kind: NodeKind, key: str, label: Optional[str] = None, data: Optional[Dict] = None) -> Node:
        node_id = make_node_id(kind, key)
        node = self._nodes.get(node_id)
        if node is None:
            node = Node(kind=kind, key=key, label=str(label or key), data=data or {})
            self._nodes[node_id] = node
        return node

    def _add_edge(self, source: Node, target: Node, polarity: Polarity, edge_type: EdgeType, label: str) -> None:
        self._edges.append(
            Edge(source=source.id, target=target.id, polarity=polarity, edge_type=edge_type, label=label)
        )

    def _skip(self, collection: str, record_id: Optional[str], reason: str, detail: str = "") -> None:
        logger.debug("Skipping %s/%s: %s %s", collection, record_id, reason, detail)
        self._skipped.append(
            SkippedReference(collection=collection, record_id=record_id, reason=reason, detail=detail)
        )

    def polarity_for(self, delta: Real) -> Polarity:
        """Sign rule: >0 positive, <0 negative, 0 takes the configured zero polarity."""
        if delta > 0:
            return Polarity.POSITIVE
        if delta < 0:
            return Polarity.NEGATIVE
        return self.options.zero_polarity

    def _pressure_changes(self, collection: str, owner: Node, changes: Any) -> None:
        if changes is None:
            return
        if not isinstance(changes, Mapping):
            self._skip(collection, owner.key, "invalid_pressure_changes", "pressureChanges is not a mapping")
            return
        for pressure_id, delta in changes.items():
            if not _is_number(delta):
                self._skip(collection, owner.key, "non_numeric_delta", f"pressure {pressure_id!r}: {delta!r}")
                continue
            pressure = self._add_node(NodeKind.PRESSURE, str(pressure_id))
            self._add_edge(owner, pressure, self.polarity_for(delta), EdgeType.DIRECT, _format_delta(delta))

    # -- extraction rules --------------------------------------------------
    def _add_pressures(self, pressures: Iterable[Any]) -> List[Tuple[Node, Mapping]]:
        added = []
        for p in pressures:
            if not isinstance(p, Mapping):
                self._skip("pressures", None, "invalid_record", repr(p))
                continue
            pid = _record_id(p)
            if pid is None:
                self._skip("pressures", None, "missing_id")
                continue
            added.append((self._add_node(NodeKind.PRESSURE, pid, p.get("name"), {"pressure": p}), p))
        return added

    def _add_generators(self, generators: Iterable[Any]) -> None:
        for g in generators:
            if not isinstance(g, Mapping):
                self._skip("generators", None, "invalid_record", repr(g))
                continue
            gid = _record_id(g)
            if gid is None:
                self._skip("generators", None, "missing_id")
                continue
            node = self._add_node(NodeKind.GENERATOR, gid, _record_field(g, "name"), {"generator": g})

            updates = g.get("stateUpdates") or []
            if not isinstance(updates, list):
                self._skip("generators", gid, "invalid_state_updates", "stateUpdates is not a list")
                updates = []
            for update in updates:
                if not isinstance(update, Mapping) or update.get("type") != "modify_pressure":
                    continue
                pressure_id = update.get("pressureId")
                if not pressure_id:
                    self._skip("generators", gid, "missing_pressure_id")
                    continue
                delta = update.get("delta")
                if not _is_number(delta):
                    self._skip("generators", gid, "non_numeric_delta", f"pressure {pressure_id!r}: {delta!r}")
                    continue
                pressure = self._add_node(NodeKind.PRESSURE, str(pressure_id))
                self._add_edge(node, pressure, self.polarity_for(delta), EdgeType.DIRECT, _format_delta(delta))

            creates_kind = _record_field(g, "entityKind")
            if creates_kind:
                kind = self._add_node(NodeKind.ENTITY_KIND, str(creates_kind))
                self._add_edge(node, kind, Polarity.POSITIVE, EdgeType.CREATES, "creates")

    def _add_systems(self, systems: Iterable[Any]) -> None:
        for s in systems:
            if not isinstance(s, Mapping):
                self._skip("systems", None, "invalid_record", repr(s))
                continue
            sid = _record_id(s, config_first=True)
            if sid is None:
                self._skip("systems", None, "missing_id")
                continue
            node = self._add_node(NodeKind.SYSTEM, sid, _record_field(s, "name", config_first=True), {"system": s})
            self._pressure_changes("systems", node, _record_field(s, "pressureChanges"))

    def _add_actions(self, actions: Iterable[Any]) -> None:
        for a in actions:
            if not isinstance(a, Mapping):
                self._skip("actions", None, "invalid_record", repr(a))
                continue
            aid = _record_id(a)
            if aid is None:
                self._skip("actions", None, "missing_id")
                continue
            node = self._add_node(NodeKind.ACTION, aid, _record_field(a, "name"), {"action": a})
            outcome = a.get("outcome")
            if isinstance(outcome, Mapping):
                self._pressure_changes("actions", node, outcome.get("pressureChanges"))

    def _add_feedback(self, pressure: Node, record: Mapping) -> None:
        growth = record.get("growth")
        if not isinstance(growth, Mapping):
            return
        for list_name, polarity in (("positiveFeedback", Polarity.POSITIVE), ("negativeFeedback", Polarity.NEGATIVE)):
            factors = growth.get(list_name) or []
            if not isinstance(factors, list):
                self._skip("pressures", pressure.key, "invalid_feedback", f"{list_name} is not a list")
                continue
            for factor in factors:
                if not isinstance(factor, Mapping) or factor.get("type") != "entity_count":
                    continue
                if not factor.get("kind"):
                    self._skip("pressures", pressure.key, "missing_entity_kind", list_name)
                    continue
                kind = self._add_node(NodeKind.ENTITY_KIND, str(factor["kind"]))
                label = "+" if polarity is Polarity.POSITIVE else "-"
                self._add_edge(kind, pressure, polarity, EdgeType.FEEDBACK, label)

    def _add_triggers(self, pressure: Node, record: Mapping) -> None:
        triggers = record.get("triggers") or []
        if not isinstance(triggers, list):
            self._skip("pressures", pressure.key, "invalid_triggers", "triggers is not a list")
            return
        prefix = f"{NodeKind.GENERATOR.value}:"
        for trigger in triggers:
            if not isinstance(trigger, Mapping) or not trigger.get("activates"):
                continue
            activates = str(trigger["activates"])
            key = activates[len(prefix):] if activates.startswith(prefix) else activates
            target_id = make_node_id(NodeKind.GENERATOR, key)
            target = self._nodes.get(target_id)
            if target is None:
                if self.options.trigger_policy is TriggerPolicy.DROP:
                    self._skip("pressures", pressure.key, "dangling_trigger", f"unknown generator {target_id!r}")
                    continue
                target = self._add_node(NodeKind.GENERATOR, key)
            self._add_edge(pressure, target, Polarity.POSITIVE, EdgeType.TRIGGER, _trigger_label(trigger))

    # -- public API --------------------------------------------------------
    def build(
        self,
        pressures: Iterable[Any] = (),
        generators: Iterable[Any] = (),
        systems: Iterable[Any] = (),
        actions: Iterable[Any] = (),
        schema: Optional[Mapping] = None,
    ) -> CausalGraph:
        """Build the graph. `schema` is accepted for future filtering and is unused."""
        self._nodes, self._edges, self._skipped = {}, [], []

        declared = self._add_pressures(pressures or [])
        self._add_generators(generators or [])
        self._add_systems(systems or [])
        self._add_actions(actions or [])
        for pressure, record in declared:
            self._add_feedback(pressure, record)
        # Triggers go last so every declared generator already has its node.
        for pressure, record in declared:
            self._add_triggers(pressure, record)

        graph = CausalGraph(
            nodes=list(self._nodes.values()),
            edges=list(self._edges),
            skipped=list(self._skipped),
        )
        logger.debug(
            "Built causal graph: %d nodes, %d edges, %d skipped",
            len(graph.nodes), len(graph.edges), len(graph.skipped),
        )
        return graph


def build_causal_graph(
    pressures: Iterable[Any] = (),
    generators: Iterable[Any] = (),
    systems: Iterable[Any] = (),
    actions: Iterable[Any] = (),
    schema: Optional[Mapping] = None,
    options: Optional[BuildOptions] = None,
) -> CausalGraph:
    return GraphBuilder(options).build(pressures, generators, systems, actions, schema)
