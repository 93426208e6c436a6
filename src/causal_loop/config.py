from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Type, TypeVar

from dotenv import load_dotenv

from .graph.builder import BuildOptions
from .types import DetectionMode, Polarity, TriggerPolicy

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


@dataclass
class AppConfig:
    """Top-level configuration for the application.

    - `root_dir`: Repository root (assumed to contain `projects`, `schemas`, `src`).
    - `projects_dir`: Folder containing per-project configuration and artifacts.
    - `schemas_dir`: Folder with JSON Schemas used for artifact validation.
    - `env`: Dictionary of environment-derived toggles.
    """

    root_dir: Path
    projects_dir: Path
    schemas_dir: Path
    env: dict

    def build_options(self) -> BuildOptions:
        return BuildOptions(
            zero_polarity=self.env["ZERO_DELTA_POLARITY"],
            trigger_policy=self.env["TRIGGER_POLICY"],
        )


def detect_repo_root() -> Path:
    """Detect repository root by walking upwards until `projects` or `src` exists.

    Falls back to current working directory.
    """
    cwd = Path.cwd().resolve()
    for p in [cwd] + list(cwd.parents):
        if (p / "projects").exists() or (p / "src").exists():
            return p
    return cwd


def _env_choice(name: str, enum_type: Type[E], default: E) -> E:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return enum_type(raw.strip().lower())
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default.value!r}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default
    return max(value, 0)


def load_config() -> AppConfig:
    # Load .env file from repository root
    root = detect_repo_root()
    load_dotenv(root / ".env")

    zero_polarity = _env_choice("CL_ZERO_DELTA_POLARITY", Polarity, Polarity.POSITIVE)
    if zero_polarity is Polarity.NEGATIVE:
        logger.warning("CL_ZERO_DELTA_POLARITY cannot be 'negative'; using 'positive'")
        zero_polarity = Polarity.POSITIVE

    env = {
        "ZERO_DELTA_POLARITY": zero_polarity,
        "TRIGGER_POLICY": _env_choice("CL_TRIGGER_POLICY", TriggerPolicy, TriggerPolicy.DROP),
        "LOOP_DETECTION": _env_choice("CL_LOOP_DETECTION", DetectionMode, DetectionMode.DFS),
        "MAX_LOOPS": _env_int("CL_MAX_LOOPS", 0),
    }
    return AppConfig(
        root_dir=root,
        projects_dir=root / "projects",
        schemas_dir=root / "schemas",
        env=env,
    )
