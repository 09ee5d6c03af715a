"""Stateful catalog controller: filters, pagination, cache and prefetching.

The controller sits between UI controls and the catalog search endpoint.
Filter and pagination changes are debounced into a single fetch; responses
are cached by request URL; price histories for the visible page are
prefetched through a bounded worker pool once the page has settled.
"""
from __future__ import annotations

import logging
import os
import threading
from typing import Any, Callable, Dict, List, Optional

from . import state
from .api import CATALOG_PATH, CatalogAPIError, CatalogClient, search_path
from .cache import TTLCache
from .debounce import Debouncer
from .pool import run_bounded
from .state import FilterMode, FilterState, PaginationState

CACHE_TTL = float(os.getenv("CATALOG_CACHE_TTL", "60"))
CACHE_MAX_ENTRIES = int(os.getenv("CATALOG_CACHE_MAX_ENTRIES", "256"))
PREFETCH_MAX_IN_FLIGHT = int(os.getenv("PREFETCH_MAX_IN_FLIGHT", "4"))
FETCH_DEBOUNCE = 0.5
SUGGESTION_DEBOUNCE = 0.3
TRANSITION_SETTLE = 0.8
FOLLOWUP_DELAY = 0.1

logger = logging.getLogger(__name__)


def history_key(item_id: str) -> str:
    return f"priceHistory-{item_id}"


class CatalogController:
    def __init__(
        self,
        client: Optional[CatalogClient] = None,
        cache: Optional[TTLCache] = None,
        page: int = 1,
        limit: int = 5,
        prioritize_bakutech: bool = False,
        fetch_delay: float = FETCH_DEBOUNCE,
        suggestion_delay: float = SUGGESTION_DEBOUNCE,
        settle_delay: float = TRANSITION_SETTLE,
        followup_delay: float = FOLLOWUP_DELAY,
        max_in_flight: int = PREFETCH_MAX_IN_FLIGHT,
    ) -> None:
        self.client = client or CatalogClient()
        self.cache = cache if cache is not None else TTLCache(CACHE_TTL, CACHE_MAX_ENTRIES)
        self.prioritize_bakutech = prioritize_bakutech
        self.max_in_flight = max_in_flight

        self.items: List[Dict[str, Any]] = []
        self.loading = False
        self.regular_items_loading = False
        self.error: Optional[str] = None
        self.is_transitioning = False
        self.filters = state.DEFAULT_FILTERS
        self.pagination = PaginationState(page=page, limit=limit)
        self.name_suggestions: List[str] = []
        self.show_suggestions = False
        self.price_histories: Dict[str, List[Dict[str, Any]]] = {}
        self.unique_elements: List[str] = []
        self.unique_special_properties: List[str] = []
        self.selected_item: Optional[str] = None

        self._bakutech_loaded = False
        self._generation = 0
        self._lock = threading.RLock()
        self._fetch_guard = threading.Lock()
        self._fetch_timer = Debouncer(fetch_delay, "fetch")
        self._suggest_timer = Debouncer(suggestion_delay, "suggestions")
        self._settle_timer = Debouncer(settle_delay, "settle")
        self._followup_timer = Debouncer(followup_delay, "followup")
        self._listeners: List[Callable[["CatalogController"], None]] = []

    # --- observers ---

    def subscribe(self, listener: Callable[["CatalogController"], None]) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("listener %r failed", listener)

    # --- filter / pagination transitions ---

    def update_filter(self, key: str, value: Any) -> None:
        self.apply_filters(**{key: value})

    def apply_filters(self, **values: Any) -> None:
        """Set several filter fields as one transition (one fetch)."""
        with self._lock:
            filters, pagination = self.filters, self.pagination
            for key, value in values.items():
                filters, pagination = state.update_filter(filters, pagination, key, value)
            self.filters, self.pagination = filters, pagination
            self._begin_transition()
        if "name_filter" in values:
            self._suggest_timer.schedule(self.fetch_suggestions, self.filters.name_filter)
        self._notify()
        self._fetch_timer.schedule(self.fetch_items)

    def reset_filters(self) -> None:
        with self._lock:
            self.filters, self.pagination = state.reset_filters(self.pagination)
            self._begin_transition()
        self._suggest_timer.schedule(self.fetch_suggestions, "")
        self._notify()
        self._fetch_timer.schedule(self.fetch_items)

    def update_pagination(self, page: int, limit: Optional[int] = None) -> None:
        with self._lock:
            self.pagination = state.update_pagination(self.pagination, page, limit)
            self.price_histories = {}
            self._begin_transition()
        self._notify()
        self._fetch_timer.schedule(self.fetch_items)

    def _begin_transition(self) -> None:
        self.is_transitioning = True
        self._bakutech_loaded = False
        self._generation += 1
        self._settle_timer.cancel()
        self._followup_timer.cancel()

    def _end_transition(self) -> None:
        with self._lock:
            self.is_transitioning = False
        self._notify()
        self.prefetch_price_histories()

    # --- fetch controller ---

    def fetch_items(self, force_fetch_all: bool = False) -> bool:
        """Fetch the current page. Returns False if a fetch was already running."""
        if not self._fetch_guard.acquire(blocking=False):
            logger.debug("fetch already in flight; dropping request")
            return False

        followup = False
        succeeded = False
        try:
            with self._lock:
                filters, pagination = self.filters, self.pagination
                prioritized = self.prioritize_bakutech and filters.filter_mode is FilterMode.ALL
                bakutech_phase = prioritized and not self._bakutech_loaded and not force_fetch_all
                regular_phase = prioritized and self._bakutech_loaded and force_fetch_all
                if regular_phase:
                    self.regular_items_loading = True
                else:
                    self.loading = True
            self._notify()

            params = state.build_query_params(
                filters, pagination,
                bakutech_only=bakutech_phase,
                exclude_bakutech=regular_phase,
            )
            key = search_path(params)
            data = self.cache.get(key)
            if data is not None:
                logger.debug("cache hit %s", key)
            else:
                data = self.client.search(params)
                self.cache.prune()
                self.cache.set(key, data)

            with self._lock:
                fetched = list(data.get("items") or [])
                if regular_phase:
                    shown = {it.get("_id") for it in self.items}
                    self.items = self.items + [it for it in fetched if it.get("_id") not in shown]
                else:
                    self.items = fetched
                if bakutech_phase:
                    self._bakutech_loaded = True
                    followup = True
                if data.get("pagination"):
                    self.pagination = PaginationState.from_response(data["pagination"])
                if fetched:
                    self.unique_elements = _unique(it.get("element") for it in fetched)
                    self.unique_special_properties = _unique(
                        it.get("specialProperties") for it in fetched
                    )
                self.error = None
            succeeded = True
            logger.info("fetched %s items (%s)", len(fetched), key)
        except CatalogAPIError as e:
            logger.error("Error fetching Bakugan items: %s", e)
            with self._lock:
                self.error = str(e) or "Failed to fetch Bakugan items"
        finally:
            with self._lock:
                self.loading = False
                self.regular_items_loading = False
            self._fetch_guard.release()
            self._settle_timer.schedule(self._end_transition)

        self._notify()
        if followup:
            self._followup_timer.schedule(self.fetch_items, True)
        if succeeded:
            self.prefetch_price_histories()
        return True

    # --- suggestions ---

    def fetch_suggestions(self, query: str) -> List[str]:
        if not query:
            with self._lock:
                self.name_suggestions = []
                self.show_suggestions = False
            self._notify()
            return []
        try:
            data = self.client.search([("search", query)])
        except CatalogAPIError as e:
            logger.warning("Error fetching name suggestions for %r: %s", query, e)
            return self.name_suggestions
        names = state.matching_names(data.get("items") or [], query)
        with self._lock:
            self.name_suggestions = names
            self.show_suggestions = bool(names)
        self._notify()
        return names

    def set_show_suggestions(self, show: bool) -> None:
        with self._lock:
            self.show_suggestions = show
        self._notify()

    # --- price histories ---

    def _load_history(self, item_id: str) -> List[Dict[str, Any]]:
        data = self.client.get_item(item_id)
        history = data.get("priceHistory") or []
        self.cache.set(history_key(item_id), history)
        return history

    def fetch_price_history(self, item_id: str) -> Optional[List[Dict[str, Any]]]:
        history = self.cache.get(history_key(item_id))
        if history is None:
            try:
                history = self._load_history(item_id)
            except CatalogAPIError as e:
                logger.warning("Error fetching price history for %s: %s", item_id, e)
                return None
        with self._lock:
            self.price_histories = {**self.price_histories, item_id: history}
        self._notify()
        return history

    def select_item(self, item_id: Optional[str]) -> None:
        self.selected_item = item_id
        if item_id:
            self.fetch_price_history(item_id)

    def prefetch_price_histories(self) -> Dict[str, List[Dict[str, Any]]]:
        """Load histories for visible items that have none yet, in one batch."""
        with self._lock:
            if self.is_transitioning:
                return {}
            generation = self._generation
            missing = [
                it["_id"] for it in self.items
                if it.get("_id") and it["_id"] not in self.price_histories
            ]
        if not missing:
            return {}

        found: Dict[str, List[Dict[str, Any]]] = {}
        to_fetch = []
        for item_id in missing:
            cached = self.cache.get(history_key(item_id))
            if cached is not None:
                found[item_id] = cached
            else:
                to_fetch.append(item_id)
        found.update(run_bounded(self._load_history, to_fetch, self.max_in_flight))

        if not found:
            return found
        with self._lock:
            if generation != self._generation:
                # page or filters changed while loading
                logger.debug("discarding %s histories from a superseded page", len(found))
                return {}
            self.price_histories = {**self.price_histories, **found}
        self._notify()
        return found

    # --- administrative operations ---

    def _patch_item(self, item_id: str, **changes: Any) -> None:
        with self._lock:
            self.items = [
                {**it, **changes} if it.get("_id") == item_id else it
                for it in self.items
            ]

    def _forget_item(self, item_id: str) -> None:
        self.cache.invalidate(lambda k: CATALOG_PATH in k or k == history_key(item_id))

    def _mutation(self, action: str, fn: Callable[[], Any]) -> Any:
        with self._lock:
            self.loading = True
        try:
            return fn()
        except CatalogAPIError as e:
            logger.error("Error %s: %s", action, e)
            with self._lock:
                self.error = str(e) or f"Failed to {action}"
            return None
        finally:
            with self._lock:
                self.loading = False
            self._notify()

    def update_price(
        self,
        item_id: str,
        price: float,
        notes: str = "",
        reference_uri: str = "",
        date: str = "",
    ) -> bool:
        payload = {"price": price, "notes": notes, "referenceUri": reference_uri, "timestamp": date}
        if self._mutation("update price", lambda: self.client.update_price(item_id, payload)) is None:
            return False
        self._patch_item(item_id, currentPrice=price)
        self.cache.invalidate(lambda k: CATALOG_PATH in k or k == history_key(item_id))
        self.fetch_price_history(item_id)
        self.fetch_items()
        with self._lock:
            self.error = "Price updated successfully!"
        self._notify()
        return True

    def update_details(self, item_id: str, **fields: Any) -> bool:
        """PUT new details; keyword names follow the wire format (``names``, ``imageUrl``...)."""
        if self._mutation("update details", lambda: self.client.update_details(item_id, fields)) is None:
            return False
        self._patch_item(item_id, **fields)
        self._forget_item(item_id)
        self._fetch_timer.schedule(self.fetch_items)
        with self._lock:
            self.error = "Bakugan details updated successfully!"
        self._notify()
        return True

    def delete_item(self, item_id: str) -> bool:
        if self._mutation("delete Bakugan", lambda: self.client.delete_item(item_id)) is None:
            return False
        with self._lock:
            self.items = [it for it in self.items if it.get("_id") != item_id]
            self.price_histories = {
                k: v for k, v in self.price_histories.items() if k != item_id
            }
        self._forget_item(item_id)
        self._fetch_timer.schedule(self.fetch_items)
        with self._lock:
            self.error = "Bakugan deleted successfully!"
        self._notify()
        return True

    def delete_price_history(self, entry_id: str, item_id: str) -> bool:
        data = self._mutation(
            "delete price history entry",
            lambda: self.client.delete_price_history(entry_id),
        )
        if data is None:
            return False
        history = data.get("priceHistory") or []
        self.cache.set(history_key(item_id), history)
        with self._lock:
            self.price_histories = {**self.price_histories, item_id: history}
        if history:
            self._patch_item(item_id, currentPrice=history[0]["price"])
        self.cache.invalidate(CATALOG_PATH)
        self.fetch_items()
        with self._lock:
            self.error = "Price history entry deleted successfully!"
        self._notify()
        return True

    def flush(self) -> bool:
        """Run a pending debounced fetch immediately."""
        return self._fetch_timer.flush()

    def close(self) -> None:
        for timer in (self._fetch_timer, self._suggest_timer, self._settle_timer, self._followup_timer):
            timer.cancel()


def _unique(values) -> List[str]:
    return list(dict.fromkeys(v for v in values if v))
