"""
Configuration loading for the telemetry navigation host.

Profiles live in ``profiles/<profile>.yaml`` next to this module. Values from
the file are merged over the built-in defaults, so a profile only needs the
keys it changes.
"""

import copy
import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from telemetry_nav.controls import DEFAULT_CURSOR_CONTROLS
from telemetry_nav.menu import DEFAULT_REFRESH_MS
from telemetry_nav.session import POST_INFLATION_WAIT_TIME

# Host polling cadence (milliseconds)
TICK_MS = 20

CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "profiles")

DEFAULTS: Dict[str, Any] = {
    "settings": {
        "settle_window_ms": POST_INFLATION_WAIT_TIME,
        "default_refresh_ms": DEFAULT_REFRESH_MS,
        "tick_ms": TICK_MS,
    },
    "directional_controls": dict(DEFAULT_CURSOR_CONTROLS),
    # Logical input id -> terminal key name (see terminal.KEY_NAMES)
    "keys": {
        "dpad_up": "KEY_UP",
        "dpad_down": "KEY_DOWN",
        "dpad_left": "KEY_LEFT",
        "dpad_right": "KEY_RIGHT",
        "cycle": "TAB",
        "back": "b",
        "forward": "f",
        "quit": "q",
    },
    "cycle_input": "cycle",
}


def discover_profiles(config_dir: str = CONFIG_DIR) -> List[str]:
    """Return the sorted profile names found in the config directory."""
    try:
        return sorted(f[:-5] for f in os.listdir(config_dir) if f.endswith(".yaml"))
    except OSError:
        return []


def load_config(profile: str = "default", path: Optional[str] = None) -> Dict[str, Any]:
    """Load a configuration profile, falling back to defaults on any problem.

    ``path`` overrides the profile lookup with an explicit YAML file.
    """
    config = copy.deepcopy(DEFAULTS)
    config_path = path or os.path.join(CONFIG_DIR, f"{profile}.yaml")

    logger = logging.getLogger(__name__)
    try:
        if not os.path.isfile(config_path):
            logger.warning(f"Config file '{config_path}' not found, using defaults")
            return config
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config '{config_path}', using defaults: {e}")
        return config

    if not loaded:
        return config
    if not isinstance(loaded, dict):
        logger.warning(f"Config '{config_path}' is not a mapping, using defaults")
        return config

    for key, value in loaded.items():
        # Mapping sections merge key by key; everything else replaces
        if isinstance(config.get(key), dict) and isinstance(value, dict):
            config[key].update(value)
        else:
            config[key] = value
    return config
