"""
Configuration loading for the session trading engine.

Most runtime knobs are environment variables read by the modules that use
them. Structured data that does not fit in an environment variable, such as
the token registry, lives in a YAML file. The file ``config.yaml`` is
expected at the project root (next to ``main.py``) unless ``CONFIG_PATH``
points elsewhere. A missing file yields an empty dictionary.
"""

from __future__ import annotations

import os
from typing import Any, Dict

import yaml  # type: ignore


def _config_path() -> str:
    env_path = os.getenv("CONFIG_PATH")
    if env_path:
        return os.path.abspath(os.path.expanduser(env_path))
    base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
    return os.path.join(base_dir, "config.yaml")


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load application configuration from ``config.yaml``.

    :param path: explicit file to read instead of the default location.
    :returns: A dictionary representing the configuration. Missing files
        quietly yield an empty dictionary.
    """
    config_path = path or _config_path()
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    return {}


def token_registry(config: Dict[str, Any] | None = None) -> Dict[str, str]:
    """Return the ``tokens`` section as an upper-cased symbol → address map."""
    cfg = load_config() if config is None else config
    tokens = cfg.get("tokens") or {}
    return {str(symbol).upper(): str(address) for symbol, address in tokens.items() if address}
