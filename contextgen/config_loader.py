"""TOML configuration loader.

Loads context defaults from the package's defaults.toml, or from a
user-supplied file with the same layout.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from contextgen.schemas.config import ContextConfig

# Default config directory relative to the contextgen package
CONFIG_DIR = Path(__file__).parent / "config"
DEFAULTS_FILE = CONFIG_DIR / "defaults.toml"


def load_context_config(config_path: Path | None = None) -> ContextConfig:
    """Load context settings from a TOML file.

    Args:
        config_path: Path to a TOML file with a ``[context]`` section.
            Defaults to contextgen/config/defaults.toml.

    Returns:
        ContextConfig with values from the TOML file.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML is malformed, has no [context] section,
            or holds invalid values.
    """
    path = config_path or DEFAULTS_FILE
    if not path.exists():
        raise FileNotFoundError(f"Context config not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    section = raw.get("context")
    if not isinstance(section, dict):
        raise ValueError(f"No [context] section found in {path}")

    return ContextConfig(**section)
