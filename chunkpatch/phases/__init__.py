"""Phase layout (rules as data) and the live phase lists built from it."""

from .load import DEFAULT_LAYOUT_PATH, build_phases, load_default_layout, load_layout
from .scheduler import PhaseScheduler

__all__ = [
    "DEFAULT_LAYOUT_PATH",
    "build_phases",
    "load_default_layout",
    "load_layout",
    "PhaseScheduler",
]
