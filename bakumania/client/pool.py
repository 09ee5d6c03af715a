"""Concurrency-limited fan-out for per-item requests."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Hashable, Iterable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

logger = logging.getLogger(__name__)


def run_bounded(
    fn: Callable[[K], V],
    keys: Iterable[K],
    max_in_flight: int = 4,
) -> Dict[K, V]:
    """Call ``fn(key)`` for every key with at most ``max_in_flight`` running.

    Returns ``{key: result}`` for the calls that succeeded. A failing call is
    logged and left out of the result; it never cancels its siblings.
    """
    if max_in_flight < 1:
        raise ValueError("max_in_flight must be at least 1")
    keys = list(dict.fromkeys(keys))
    if not keys:
        return {}

    results: Dict[K, V] = {}
    with ThreadPoolExecutor(max_workers=min(max_in_flight, len(keys))) as pool:
        futures = {key: pool.submit(fn, key) for key in keys}
        for key, fut in futures.items():
            try:
                results[key] = fut.result()
            except Exception as e:
                logger.warning("task for %r failed: %s", key, e)
    return results
