"""
Centralised path constants for the BabySim development engine.

Static tables ship inside the package so that the engine resolves them the
same way whether it is imported from a checkout, an installed wheel, or a
frozen bundle.
"""

from __future__ import annotations

import sys
from pathlib import Path


def _find_package_root() -> Path:
    """
    Resolve the package directory at import time.

    - In a PyInstaller onefile bundle, sys._MEIPASS is the extraction directory
      and the package data lives under ``babysim/`` inside it.
    - In normal use, the package root is the directory holding this file.
    """
    if getattr(sys, "frozen", False):
        return Path(sys._MEIPASS) / "babysim"  # type: ignore[attr-defined]
    return Path(__file__).parent


# ── Root ──────────────────────────────────────────────────────────────────────

PACKAGE_ROOT: Path = _find_package_root()

# ── Input directories ─────────────────────────────────────────────────────────

# development.json, family.json and scenarios.json
CONFIG_DIR: Path = PACKAGE_ROOT / "config"
