# catalog/domain/services/query_pipeline.py
from __future__ import annotations
from typing import Callable, List, Optional, Sequence, Tuple
import logging

from catalog.domain.models.product import CanonicalRecord
from catalog.domain.models.query import QueryRequest, SortKey

logger = logging.getLogger(__name__)

Predicate = Callable[[CanonicalRecord], bool]


def _matches_text(record: CanonicalRecord, needle: str) -> bool:
    """Case-insensitive substring match on name, description or any tag."""
    if needle in record.name.lower() or needle in record.description.lower():
        return True
    return any(needle in tag.lower() for tag in record.tags)


def build_filters(query: QueryRequest) -> List[Tuple[str, Predicate]]:
    """
    Ordered (name, predicate) list for a query. Absent criteria contribute nothing.
    Order: category, subcategory, price bounds, rating floor, stock, sale, search text.
    """
    filters: List[Tuple[str, Predicate]] = []

    if query.category:
        category = query.category
        filters.append(("category", lambda r: r.category == category))

    if query.subcategory:
        subcategory = query.subcategory
        filters.append(("subcategory", lambda r: r.subcategory == subcategory))

    # bounds apply to price only, never to original_price
    if query.price_min is not None:
        lo = query.price_min
        filters.append(("price_min", lambda r: r.price >= lo))
    if query.price_max is not None:
        hi = query.price_max
        filters.append(("price_max", lambda r: r.price <= hi))

    if query.min_rating is not None:
        floor = query.min_rating
        filters.append(("min_rating", lambda r: r.rating >= floor))

    if query.in_stock_only:
        filters.append(("in_stock", lambda r: r.in_stock))

    if query.on_sale_only:
        filters.append(("on_sale", lambda r: r.on_sale))

    # whitespace-only search text is a no-op
    needle = (query.search_text or "").strip().lower()
    if needle:
        filters.append(("search_text", lambda r: _matches_text(r, needle)))

    return filters


def sort_records(records: Sequence[CanonicalRecord], sort_by: Optional[SortKey]) -> List[CanonicalRecord]:
    """
    Stable sort: equal keys keep their input order (no secondary key).
    newest-first only knows the is_new flag; there is no timestamp in the canonical model.
    """
    if sort_by is None:
        return list(records)
    if sort_by is SortKey.PRICE_ASC:
        return sorted(records, key=lambda r: r.price)
    if sort_by is SortKey.PRICE_DESC:
        return sorted(records, key=lambda r: r.price, reverse=True)
    if sort_by is SortKey.RATING_DESC:
        return sorted(records, key=lambda r: r.rating, reverse=True)
    if sort_by is SortKey.NEWEST:
        return sorted(records, key=lambda r: not r.is_new)
    raise ValueError(f"Unknown sort key: {sort_by}")


def paginate(records: Sequence[CanonicalRecord], offset: int = 0, limit: Optional[int] = None) -> List[CanonicalRecord]:
    """Offset past the end yields an empty page."""
    if offset >= len(records):
        return []
    end = None if limit is None else offset + limit
    return list(records[offset:end])


def select(records: Sequence[CanonicalRecord], query: QueryRequest) -> List[CanonicalRecord]:
    """Filter + sort without pagination; used when the caller also needs the match count."""
    result: List[CanonicalRecord] = list(records)
    for name, predicate in build_filters(query):
        before = len(result)
        result = [r for r in result if predicate(r)]
        logger.debug("pipeline filter=%s kept=%s/%s", name, len(result), before)
    return sort_records(result, query.sort_by)


def apply(records: Sequence[CanonicalRecord], query: QueryRequest) -> List[CanonicalRecord]:
    """Filter, search, sort and paginate. Always returns a new list; input is never mutated."""
    return paginate(select(records, query), query.offset, query.limit)
