"""Client-side catalog data controller."""

from .api import CatalogAPIError, CatalogClient  # noqa: F401
from .cache import TTLCache  # noqa: F401
from .controller import CatalogController  # noqa: F401
from .state import FilterMode, FilterState, PaginationState  # noqa: F401

__all__ = [
    "CatalogAPIError",
    "CatalogClient",
    "CatalogController",
    "FilterMode",
    "FilterState",
    "PaginationState",
    "TTLCache",
]
