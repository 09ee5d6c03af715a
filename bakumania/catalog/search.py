# bakumania/catalog/search.py
"""Server-side filtering and pagination for the catalog search endpoint."""

from __future__ import annotations

import math
from typing import Mapping

from bakumania.models import Bakugan, BAKUTECH_SIZE


class InvalidQuery(ValueError):
    """Raised when a search parameter cannot be interpreted."""


def _escape_like(term: str) -> str:
    return term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _positive_int(args: Mapping[str, str], key: str, default: int) -> int:
    raw = (args.get(key) or '').strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidQuery(f"'{key}' must be an integer")
    if value < 1:
        raise InvalidQuery(f"'{key}' must be at least 1")
    return value


def _price(args: Mapping[str, str], key: str) -> float | None:
    raw = (args.get(key) or '').strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise InvalidQuery(f"'{key}' must be a number")


def build_query(args: Mapping[str, str]):
    """Translate request arguments into a filtered ``Bakugan`` query.

    Recognised keys: ``search``, ``size``, ``element``, ``bakutech``,
    ``excludeSize``, ``series``, ``specialProperties``, ``minPrice`` and
    ``maxPrice``.  Unknown keys are ignored.
    """
    query = Bakugan.query

    search = (args.get('search') or '').strip()
    if search:
        pattern = f"%{_escape_like(search.lower())}%"
        query = query.filter(Bakugan.names_text.like(pattern, escape='\\'))

    size = (args.get('size') or '').strip()
    if size:
        query = query.filter(Bakugan.size == size)

    if (args.get('bakutech') or '').lower() == 'true':
        query = query.filter(Bakugan.size == BAKUTECH_SIZE)

    exclude_size = (args.get('excludeSize') or '').strip()
    if exclude_size:
        query = query.filter(Bakugan.size != exclude_size)

    element = (args.get('element') or '').strip()
    if element:
        query = query.filter(Bakugan.element == element)

    series = (args.get('series') or '').strip()
    if series:
        query = query.filter(Bakugan.series == series)

    special = (args.get('specialProperties') or '').strip()
    if special:
        query = query.filter(Bakugan.special_properties == special)

    min_price = _price(args, 'minPrice')
    if min_price is not None:
        query = query.filter(Bakugan.current_price >= min_price)

    max_price = _price(args, 'maxPrice')
    if max_price is not None:
        query = query.filter(Bakugan.current_price <= max_price)

    return query


def search_catalog(args: Mapping[str, str], default_limit: int = 10, max_limit: int = 100) -> dict:
    """Run a catalog search and return ``{items, pagination}``."""
    page = _positive_int(args, 'page', 1)
    limit = min(_positive_int(args, 'limit', default_limit), max_limit)

    query = build_query(args)
    total = query.count()
    rows = (
        query.order_by(Bakugan.updated_at.desc(), Bakugan.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )
    return {
        'items': [b.to_dict() for b in rows],
        'pagination': {
            'total': total,
            'page': page,
            'limit': limit,
            'pages': math.ceil(total / limit) if total else 0,
        },
    }
