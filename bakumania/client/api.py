"""HTTP client for the catalog service."""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Sequence, Tuple
from urllib.parse import urlencode

import requests

API_BASE = os.getenv("BAKUMANIA_API_URL", "http://127.0.0.1:5000")
API_TIMEOUT = float(os.getenv("BAKUMANIA_API_TIMEOUT", "10"))
CATALOG_PATH = "/api/bakugan"
PRICE_HISTORY_PATH = "/api/price-history"

logger = logging.getLogger(__name__)

Params = Sequence[Tuple[str, str]]


class CatalogAPIError(Exception):
    """A catalog request failed, either on the network or with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def search_path(params: Params) -> str:
    """Relative URL of a search request; doubles as its cache key."""
    query = urlencode(list(params))
    return f"{CATALOG_PATH}?{query}" if query else CATALOG_PATH


class CatalogClient:
    """Thin wrapper over the catalog REST endpoints.

    No retries are attempted: every failure surfaces as ``CatalogAPIError``
    and the caller decides how to degrade.
    """

    def __init__(
        self,
        base_url: str = API_BASE,
        timeout: float = API_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def request(self, method: str, path: str, json: Any = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise CatalogAPIError(f"Network error: {e}") from e
        if r.status_code >= 400:
            raise CatalogAPIError(self._error_text(r), status_code=r.status_code)
        logger.debug("%s %s %s", method, path, r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise CatalogAPIError(f"Invalid JSON from {path}", status_code=r.status_code) from e

    @staticmethod
    def _error_text(r) -> str:
        try:
            payload = r.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return f"Request failed with status {r.status_code}"

    def search(self, params: Params) -> Dict[str, Any]:
        """GET the search endpoint; returns ``{items, pagination}``."""
        data = self.request("GET", search_path(params))
        # older deployments answered with a bare list
        if isinstance(data, list):
            return {"items": data, "pagination": None}
        return data

    def get_item(self, item_id: str) -> Dict[str, Any]:
        return self.request("GET", f"{CATALOG_PATH}/{item_id}")

    def create_item(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", CATALOG_PATH, json=payload)

    def update_price(self, item_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PATCH", f"{CATALOG_PATH}/{item_id}", json=payload)

    def update_details(self, item_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", f"{CATALOG_PATH}/{item_id}", json=payload)

    def delete_item(self, item_id: str) -> Dict[str, Any]:
        return self.request("DELETE", f"{CATALOG_PATH}/{item_id}")

    def delete_price_history(self, entry_id: str) -> Dict[str, Any]:
        return self.request("DELETE", f"{PRICE_HISTORY_PATH}/{entry_id}")
