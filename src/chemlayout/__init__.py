"""Motor de disposición 2D de Chemuson."""

from .errors import LayoutContractError, LayoutError, LayoutNotPossible
from .options import LayoutOptions
from .pipeline import LayoutPipeline, LayoutResult, compute_layout

__all__ = [
    "LayoutContractError",
    "LayoutError",
    "LayoutNotPossible",
    "LayoutOptions",
    "LayoutPipeline",
    "LayoutResult",
    "compute_layout",
]
