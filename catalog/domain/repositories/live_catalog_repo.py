"""
Live catalog backend client (HTTP, JSON envelope {"success": bool, "data": ...}).

  GET {base}/products?category=&minPrice=&maxPrice=&search=&sortBy=&sortOrder=&limit=&page=
      -> data.products: [ {_id, name, ...}, ... ], data.pagination: {page, limit, total, pages}
  GET {base}/products/{id}
      -> data: {_id, ...}   (404 when unknown)

Every failure surfaces as LiveSourceError. A 404 on the single-item endpoint is
not a failure: get_product() returns None so callers can try a keyword search.
Only raw source records leave this module; normalization happens upstream.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import aiohttp

from catalog.domain.errors import LiveSourceError
from catalog.domain.models.query import QueryRequest, SortKey

logger = logging.getLogger(__name__)

# SortKey -> (backend sortBy, sortOrder). Sorting is re-applied locally anyway.
_BACKEND_SORT = {
    SortKey.PRICE_ASC: ("price", "asc"),
    SortKey.PRICE_DESC: ("price", "desc"),
    SortKey.RATING_DESC: ("ratings.average", "desc"),
    SortKey.NEWEST: ("createdAt", "desc"),
}


def _fmt_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def query_params(query: QueryRequest, page_size: int) -> Dict[str, str]:
    """Backend hints for a list query. The page number is added per request by list_products()."""
    params: Dict[str, str] = {"limit": str(page_size)}
    if query.category:
        params["category"] = query.category
    if query.price_min is not None:
        params["minPrice"] = _fmt_number(query.price_min)
    if query.price_max is not None:
        params["maxPrice"] = _fmt_number(query.price_max)
    if query.search_text and query.search_text.strip():
        params["search"] = query.search_text.strip()
    if query.sort_by is not None:
        sort_by, sort_order = _BACKEND_SORT[query.sort_by]
        params["sortBy"] = sort_by
        params["sortOrder"] = sort_order
    return params


def _page_count(pagination: Dict[str, Any]) -> Optional[int]:
    try:
        return int(pagination["pages"])
    except (KeyError, TypeError, ValueError):
        return None


class LiveCatalogRepo:

    def __init__(self, base_url: str, timeout_s: float = 10.0, page_size: int = 100, max_pages: int = 50) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.page_size = page_size
        self.max_pages = max_pages

    @property
    def name(self) -> str:
        return f"live:{self.base_url}"

    # ── HTTP helper ───────────────────────────────────────────────────────────

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> tuple[int, Any]:
        """Single GET bounded by timeout_s. Returns (status, json-or-None); transport errors raise LiveSourceError."""
        url = f"{self.base_url}{path}"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    params=params,
                    headers={"Accept": "application/json"},
                    timeout=aiohttp.ClientTimeout(total=self.timeout_s),
                ) as resp:
                    if resp.status == 404:
                        return 404, None
                    if resp.status != 200:
                        text = await resp.text()
                        raise LiveSourceError(f"live backend error {resp.status}: {text[:200]}", status=resp.status)
                    try:
                        return resp.status, await resp.json()
                    except (aiohttp.ContentTypeError, ValueError) as e:
                        raise LiveSourceError(f"live backend returned invalid JSON: {e}", status=resp.status) from e
        except asyncio.TimeoutError as e:
            raise LiveSourceError(f"live backend timed out after {self.timeout_s}s: {url}") from e
        except aiohttp.ClientError as e:
            raise LiveSourceError(f"live backend unreachable: {e}") from e

    @staticmethod
    def _unwrap(payload: Any) -> Any:
        if not isinstance(payload, dict) or payload.get("success") is not True or "data" not in payload:
            raise LiveSourceError("live backend returned a malformed envelope")
        return payload["data"]

    async def _fetch_page(self, params: Dict[str, str]) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """One call to the list endpoint -> (products, pagination block or {})."""
        status, payload = await self._get_json("/products", params)
        if status == 404:
            raise LiveSourceError("live list endpoint not found", status=404)
        data = self._unwrap(payload)
        products = data.get("products") if isinstance(data, dict) else None
        if not isinstance(products, list):
            raise LiveSourceError("live backend payload has no products list")
        pagination = data.get("pagination")
        return products, pagination if isinstance(pagination, dict) else {}

    async def _fetch_products(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        products, _ = await self._fetch_page(params)
        return products

    # ── Public API ────────────────────────────────────────────────────────────

    async def list_products(self, query: QueryRequest) -> List[Dict[str, Any]]:
        """
        Every raw record matching the backend hints, walking page=1..N.
        Filters the backend does not know about are applied locally afterwards, so
        the whole match set is needed, not just the first page.
        Stops on a short page, on the backend's `pagination.pages`, or at max_pages.
        An empty first page is a failure for list endpoints.
        """
        params = query_params(query, self.page_size)
        products: List[Dict[str, Any]] = []
        page = 1
        while True:
            batch, pagination = await self._fetch_page({**params, "page": str(page)})
            products.extend(batch)
            pages = _page_count(pagination)
            if len(batch) < self.page_size or (pages is not None and page >= pages):
                break
            if page >= self.max_pages:
                logger.warning(
                    "live list_products stopped at max_pages=%d (%d records, backend total=%s)",
                    self.max_pages, len(products), pagination.get("total"),
                )
                break
            page += 1
        logger.info("live list_products params=%s pages=%d returned=%d", params, page, len(products))
        if not products:
            raise LiveSourceError("live backend returned an empty product list")
        return products

    async def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Raw record by id, or None on 404."""
        status, payload = await self._get_json(f"/products/{quote(product_id, safe='')}")
        if status == 404:
            logger.info("live get_product id=%s not found", product_id)
            return None
        data = self._unwrap(payload)
        if not isinstance(data, dict):
            raise LiveSourceError("live backend payload has no product object")
        return data

    async def search(self, text: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Keyword search; an empty result is a plain miss here, not a failure."""
        products = await self._fetch_products({"search": text, "limit": str(limit)})
        logger.info("live search text=%r returned=%d", text, len(products))
        return products
