"""Filter and pagination state plus the pure transitions over them."""
from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

BAKUTECH_SIZE = "B3"


class FilterMode(str, enum.Enum):
    ALL = "all"
    BAKUGAN = "bakugan"
    BAKUTECH = "bakutech"
    BATTLE_BRAWLERS = "battle-brawlers"
    NEW_VESTROIA = "new-vestroia"
    GUNDALIAN_INVADERS = "gundalian-invaders"
    MECHTANIUM_SURGE = "mechtanium-surge"


SERIES_BY_MODE = {
    FilterMode.BATTLE_BRAWLERS: "Battle Brawlers Vol.1",
    FilterMode.NEW_VESTROIA: "New Vestroia Vol.2",
    FilterMode.GUNDALIAN_INVADERS: "Gundalian Invaders Vol.3",
    FilterMode.MECHTANIUM_SURGE: "Mechtanium Surge Vol.4",
}


@dataclass(frozen=True)
class FilterState:
    name_filter: str = ""
    size_filter: str = ""
    element_filter: str = ""
    special_properties_filter: str = ""
    min_price_filter: str = ""
    max_price_filter: str = ""
    filter_mode: FilterMode = FilterMode.ALL

    def as_dict(self) -> Dict[str, str]:
        out = dataclasses.asdict(self)
        out["filter_mode"] = self.filter_mode.value
        return out


DEFAULT_FILTERS = FilterState()
FILTER_KEYS = tuple(f.name for f in dataclasses.fields(FilterState))


@dataclass(frozen=True)
class PaginationState:
    total: int = 0
    page: int = 1
    limit: int = 5
    pages: int = 0

    @classmethod
    def from_response(cls, block: Mapping[str, Any]) -> "PaginationState":
        return cls(
            total=int(block.get("total", 0)),
            page=int(block.get("page", 1)),
            limit=int(block.get("limit", cls.limit)),
            pages=int(block.get("pages", 0)),
        )


def update_filter(
    filters: FilterState, pagination: PaginationState, key: str, value: Any
) -> Tuple[FilterState, PaginationState]:
    """Set one filter field; the page always goes back to 1."""
    if key not in FILTER_KEYS:
        raise KeyError(f"unknown filter {key!r}")
    if key == "filter_mode":
        value = FilterMode(value)
    else:
        value = "" if value is None else str(value)
    return (
        dataclasses.replace(filters, **{key: value}),
        dataclasses.replace(pagination, page=1),
    )


def reset_filters(pagination: PaginationState) -> Tuple[FilterState, PaginationState]:
    return DEFAULT_FILTERS, dataclasses.replace(pagination, page=1)


def update_pagination(
    pagination: PaginationState, page: int, limit: Optional[int] = None
) -> PaginationState:
    # page is deliberately not clamped to [1, pages]; controls do that
    changes: Dict[str, int] = {"page": int(page)}
    if limit:
        changes["limit"] = int(limit)
    return dataclasses.replace(pagination, **changes)


def build_query_params(
    filters: FilterState,
    pagination: PaginationState,
    bakutech_only: bool = False,
    exclude_bakutech: bool = False,
) -> List[Tuple[str, str]]:
    """Query parameters for the search endpoint, in a stable order.

    ``bakutech_only`` and ``exclude_bakutech`` select the two phases of the
    prioritized loading used in ``all`` mode.
    """
    params: List[Tuple[str, str]] = []
    if filters.name_filter:
        params.append(("search", filters.name_filter))
    if filters.size_filter:
        params.append(("size", filters.size_filter))
    if filters.element_filter:
        params.append(("element", filters.element_filter))

    mode = filters.filter_mode
    if mode is FilterMode.BAKUTECH or bakutech_only:
        params.append(("bakutech", "true"))
    elif mode is FilterMode.BAKUGAN:
        params.append(("excludeSize", BAKUTECH_SIZE))
    elif mode in SERIES_BY_MODE:
        params.append(("excludeSize", BAKUTECH_SIZE))
        params.append(("series", SERIES_BY_MODE[mode]))
    elif exclude_bakutech:
        params.append(("excludeSize", BAKUTECH_SIZE))

    if filters.min_price_filter:
        params.append(("minPrice", filters.min_price_filter))
    if filters.max_price_filter:
        params.append(("maxPrice", filters.max_price_filter))
    if filters.special_properties_filter:
        params.append(("specialProperties", filters.special_properties_filter))

    params.append(("limit", str(pagination.limit)))
    params.append(("page", str(pagination.page)))
    return params


def matching_names(items: List[Mapping[str, Any]], query: str) -> List[str]:
    """All aliases of ``items`` containing ``query``, case-insensitive, de-duplicated."""
    needle = query.lower()
    seen: Dict[str, None] = {}
    for item in items:
        for name in item.get("names") or []:
            if isinstance(name, str) and needle in name.lower():
                seen.setdefault(name, None)
    return list(seen)
