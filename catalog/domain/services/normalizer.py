# catalog/domain/services/normalizer.py
"""
Schema normalizer: live-backend and static-dataset records -> CanonicalRecord.

Pure functions, no I/O. The only hard failure is a record without its own
primary key (`_id` on the live side, `id` on the static side); every other
missing or malformed field gets a default.
"""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import logging
import math

from catalog.domain.errors import NormalizationError
from catalog.domain.models.product import CanonicalRecord, SourceKind
from catalog.domain.services.constants import PLACEHOLDER_DESCRIPTION, PLACEHOLDER_NAME
from catalog.domain.services.id_resolver import canonical_key

logger = logging.getLogger(__name__)


# ---------- Field coercion ----------------------------------------------------

def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(str(value).replace(",", "").strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _to_int(value: Any) -> Optional[int]:
    f = _to_float(value)
    return int(f) if f is not None else None


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


def _unique_strings(values: Any) -> Tuple[str, ...]:
    """Order-preserving de-duplication; drops blanks and non-scalar entries."""
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, Iterable):
        return ()
    seen: Dict[str, None] = {}
    for v in values:
        if isinstance(v, (dict, list, tuple)) or v is None:
            continue
        s = str(v).strip()
        if s:
            seen.setdefault(s, None)
    return tuple(seen)


def _specifications(value: Any) -> Dict[str, str]:
    """Mapping or list of {name, value} / (name, value) pairs -> ordered dict with unique keys."""
    out: Dict[str, str] = {}
    if isinstance(value, Mapping):
        pairs: Iterable = value.items()
    elif isinstance(value, list):
        pairs = []
        for item in value:
            if isinstance(item, Mapping) and "name" in item:
                pairs.append((item.get("name"), item.get("value")))
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                pairs.append(tuple(item))
    else:
        return out
    for k, v in pairs:
        key = _to_text(k)
        if not key or key in out:  # first occurrence wins
            continue
        out[key] = _to_text(v)
    return out


def _primary_key(record: Mapping[str, Any], field: str) -> str:
    pk = record.get(field)
    if isinstance(pk, Mapping):  # extended JSON {"$oid": "..."}
        pk = pk.get("$oid")
    return _to_text(pk)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _clamp(value: Optional[float], lo: float, hi: float) -> float:
    if value is None:
        return lo
    return max(lo, min(hi, value))


# ---------- Per-source field mapping -----------------------------------------

def _live_fields(
    record: Mapping[str, Any], snapshot_at: datetime, new_arrival_days: int
) -> Dict[str, Any]:
    rating = record.get("rating")
    if isinstance(rating, Mapping):
        average, count = rating.get("average"), rating.get("count")
    else:
        # older payloads expose ratings.average / a flat number
        ratings = record.get("ratings") if isinstance(record.get("ratings"), Mapping) else {}
        average = ratings.get("average", rating)
        count = ratings.get("count", record.get("reviewCount"))

    stock = _to_int(record.get("stock"))
    if stock is not None and stock < 0:
        stock = 0

    created_at = _parse_datetime(record.get("createdAt"))
    is_new = bool(created_at and snapshot_at - created_at <= timedelta(days=new_arrival_days))

    return {
        "price": _to_float(record.get("price")),
        "original_price": _to_float(record.get("originalPrice")),
        "rating": _to_float(average),
        "review_count": _to_int(count),
        "in_stock": (stock or 0) > 0,
        "stock_count": stock,
        "is_new": is_new,
        "is_featured": _to_bool(record.get("isFeatured")),
    }


def _static_fields(record: Mapping[str, Any]) -> Dict[str, Any]:
    stock = _to_int(record.get("stockCount"))
    if stock is not None and stock < 0:
        stock = 0
    in_stock = record.get("inStock")
    if in_stock is None:
        in_stock = stock is None or stock > 0

    rating = record.get("rating")
    if isinstance(rating, Mapping):
        rating = rating.get("average")

    return {
        "price": _to_float(record.get("price")),
        "original_price": _to_float(record.get("originalPrice")),
        "rating": _to_float(rating),
        "review_count": _to_int(record.get("reviewCount", record.get("reviews"))),
        "in_stock": _to_bool(in_stock),
        "stock_count": stock,
        "is_new": _to_bool(record.get("isNew")),
        "is_featured": _to_bool(record.get("isFeatured")),
    }


# ---------- Public API --------------------------------------------------------

def normalize(
    source_record: Mapping[str, Any],
    source_kind: SourceKind,
    *,
    snapshot_at: Optional[datetime] = None,
    new_arrival_days: int = 30,
) -> CanonicalRecord:
    """
    Convert one source record into the canonical model.

    Raises NormalizationError when the record is not a mapping or lacks its primary key.
    `snapshot_at` anchors the is_new computation for live records (defaults to now, UTC).
    """
    source_kind = SourceKind(source_kind)
    if not isinstance(source_record, Mapping):
        raise NormalizationError(
            f"{source_kind.value} record is not an object", source_kind=source_kind.value, record=source_record
        )

    pk_field = "_id" if source_kind is SourceKind.LIVE else "id"
    pk = _primary_key(source_record, pk_field)
    if not pk:
        raise NormalizationError(
            f"{source_kind.value} record has no '{pk_field}'", source_kind=source_kind.value, record=source_record
        )

    if source_kind is SourceKind.LIVE:
        fields = _live_fields(source_record, snapshot_at or datetime.now(timezone.utc), new_arrival_days)
    else:
        fields = _static_fields(source_record)

    price = fields["price"]
    price = max(price, 0.0) if price is not None else 0.0
    original = fields["original_price"]
    if original is not None and original <= price:
        original = None

    brand = _to_text(source_record.get("brand"))
    if not brand and isinstance(source_record.get("supplier"), Mapping):
        brand = _to_text(source_record["supplier"].get("name"))

    review_count = fields["review_count"]

    return CanonicalRecord(
        id=canonical_key(pk),
        name=_to_text(source_record.get("name")) or PLACEHOLDER_NAME,
        description=_to_text(source_record.get("description")) or PLACEHOLDER_DESCRIPTION,
        price=price,
        original_price=original,
        category=_to_text(source_record.get("category")),
        subcategory=_to_text(source_record.get("subcategory")),
        brand=brand,
        tags=_unique_strings(source_record.get("tags") or ()),
        rating=_clamp(fields["rating"], 0.0, 5.0),
        review_count=max(review_count, 0) if review_count is not None else 0,
        in_stock=fields["in_stock"],
        stock_count=fields["stock_count"],
        images=_unique_strings(source_record.get("images") or ()),
        specifications=_specifications(source_record.get("specifications")),
        is_new=fields["is_new"],
        is_featured=fields["is_featured"],
    )


def normalize_many(
    source_records: Iterable[Any],
    source_kind: SourceKind,
    *,
    snapshot_at: Optional[datetime] = None,
    new_arrival_days: int = 30,
) -> List[CanonicalRecord]:
    """
    Normalize a batch. Records failing NormalizationError are dropped (logged),
    and duplicate ids keep their first occurrence.
    """
    snapshot_at = snapshot_at or datetime.now(timezone.utc)
    out: List[CanonicalRecord] = []
    seen: set[str] = set()
    dropped = 0
    for raw in source_records:
        try:
            rec = normalize(raw, source_kind, snapshot_at=snapshot_at, new_arrival_days=new_arrival_days)
        except NormalizationError as e:
            dropped += 1
            logger.warning("normalize dropped record source=%s reason=%s", e.source_kind, e)
            continue
        key = rec.id.lower()
        if key in seen:
            logger.warning("normalize dropped duplicate id=%s source=%s", rec.id, SourceKind(source_kind).value)
            continue
        seen.add(key)
        out.append(rec)
    logger.debug("normalize_many source=%s kept=%s dropped=%s", SourceKind(source_kind).value, len(out), dropped)
    return out
