"""TOML loader for the model limits reference table.

Reads limits.toml into an immutable LimitsTable: the ordered list of known
models, the per-provider default rows and the global fallback row.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from chunkflow.schemas.limits import ModelLimits, TokenLimits

# Default config directory relative to the chunkflow package
_CONFIG_DIR = Path(__file__).parent.parent / "config"

# Safe for an unrecognized model on an unrecognized provider
GLOBAL_DEFAULT = TokenLimits(max_context_tokens=32768, max_completion_tokens=4096)


@dataclass(frozen=True)
class LimitsTable:
    """Read-only reference data backing a ModelLimitsCatalog."""

    models: tuple[ModelLimits, ...] = ()
    providers: Mapping[str, TokenLimits] = field(
        default_factory=lambda: MappingProxyType({})
    )
    global_default: TokenLimits = GLOBAL_DEFAULT


def load_limits_table(config_path: Path | None = None) -> LimitsTable:
    """Load the limits reference table from a TOML file.

    Args:
        config_path: Path to limits.toml. Defaults to chunkflow/config/limits.toml.

    Returns:
        An immutable LimitsTable.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML structure is invalid.
    """
    path = config_path or _CONFIG_DIR / "limits.toml"
    if not path.exists():
        raise FileNotFoundError(f"Limits table not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    models_section = raw.get("models", [])
    if not isinstance(models_section, list):
        raise ValueError(f"[[models]] must be an array of tables in {path}")

    models = tuple(ModelLimits(**entry) for entry in models_section)

    providers_section = raw.get("providers", {})
    if not isinstance(providers_section, dict):
        raise ValueError(f"[providers] must be a table in {path}")

    providers = {
        name: TokenLimits(**entry)
        for name, entry in providers_section.items()
        if isinstance(entry, dict)
    }

    global_section = raw.get("global_default")
    global_default = TokenLimits(**global_section) if global_section else GLOBAL_DEFAULT

    return LimitsTable(
        models=models,
        providers=MappingProxyType(providers),
        global_default=global_default,
    )
