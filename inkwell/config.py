"""
inkwell.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` for deployment settings (platform identity, API port,
tip fee, leaderboard page cap).  Secrets (``DATABASE_URL``, ``JWT_SECRET``)
stay in ``.env`` and are never read from this file.

Usage::

    from inkwell.config import load_config

    cfg = load_config()               # reads ./config.yaml by default
    print(cfg.platform_name)          # "Inkwell"
    print(cfg.tip_service_fee_percent)  # 25
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_CONFIG_PATH = "config.yaml"


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class InkwellConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    platform_name: str

    # API
    api_port: int

    # Economy
    tip_service_fee_percent: int = 25  # Platform cut on peer tips
    leaderboard_max_limit: int = 100


def default_config() -> InkwellConfig:
    """Configuration used when no ``config.yaml`` is deployed."""
    return InkwellConfig(platform_name="Inkwell", api_port=8000)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> InkwellConfig:
    """Read *path* and return an :class:`InkwellConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to the
        ``INKWELL_CONFIG`` env var, then ``config.yaml`` in the current
        working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If the tip fee is outside 0–100.
    """
    config_path = Path(path or os.getenv("INKWELL_CONFIG", DEFAULT_CONFIG_PATH))
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    fee = int(raw.get("tip_service_fee_percent", 25))
    if not 0 <= fee <= 100:
        raise ValueError(f"tip_service_fee_percent must be 0–100, got {fee}")

    return InkwellConfig(
        platform_name=raw["platform_name"],
        api_port=int(raw["api_port"]),
        tip_service_fee_percent=fee,
        leaderboard_max_limit=int(raw.get("leaderboard_max_limit", 100)),
    )
