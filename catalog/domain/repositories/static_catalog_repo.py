# catalog/domain/repositories/static_catalog_repo.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple
import json
import logging

from catalog.domain.errors import DatasetError
from catalog.domain.models.product import CanonicalRecord, SourceKind
from catalog.domain.services.normalizer import normalize_many

logger = logging.getLogger(__name__)

DEFAULT_DATASET_PATH = Path(__file__).resolve().parents[2] / "data" / "static_catalog.json"


class StaticCatalogRepo:
    """
    Read-only, process-lifetime handle on the static dataset.

    Records are normalized once at construction; query operations only ever read
    the resulting tuple. Built explicitly at startup and injected where needed.

    Dataset file shape:
      {"products": [ {id, name, price, ...}, ... ],
       "aliases":  [ {"id": <canonical>, "numeric": "1", "slug": "..."}, ... ]}
    A bare JSON list of products is accepted too.
    """

    def __init__(self, raw_products: Iterable[Any], aliases: Sequence[Mapping[str, Any]] = ()):
        self._records: Tuple[CanonicalRecord, ...] = tuple(normalize_many(raw_products, SourceKind.STATIC))
        self._by_id: Dict[str, CanonicalRecord] = {r.id.lower(): r for r in self._records}
        self.numeric_aliases: Dict[str, str] = {}
        self.slug_aliases: Dict[str, str] = {}
        for entry in aliases:
            target = str(entry.get("id") or "").strip()
            if not target:
                continue
            if entry.get("numeric") is not None:
                self.numeric_aliases[str(entry["numeric"]).strip()] = target
            if entry.get("slug"):
                self.slug_aliases[str(entry["slug"]).strip()] = target
        logger.info(
            "static catalog loaded records=%d aliases=%d",
            len(self._records), len(self.numeric_aliases) + len(self.slug_aliases),
        )

    @classmethod
    def from_file(cls, path: Optional[str | Path] = None) -> "StaticCatalogRepo":
        p = Path(path) if path else DEFAULT_DATASET_PATH
        try:
            doc = json.loads(p.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise DatasetError(f"static dataset not found: {p}") from e
        except (OSError, ValueError) as e:
            raise DatasetError(f"static dataset unreadable: {p}: {e}") from e

        if isinstance(doc, list):
            return cls(doc)
        if isinstance(doc, dict) and isinstance(doc.get("products"), list):
            aliases = doc.get("aliases") or []
            if not isinstance(aliases, list):
                raise DatasetError(f"static dataset 'aliases' must be a list: {p}")
            return cls(doc["products"], [a for a in aliases if isinstance(a, dict)])
        raise DatasetError(f"static dataset must be a list or an object with 'products': {p}")

    @property
    def records(self) -> Tuple[CanonicalRecord, ...]:
        return self._records

    def get(self, canonical_id: str) -> Optional[CanonicalRecord]:
        return self._by_id.get((canonical_id or "").lower())

    def __len__(self) -> int:
        return len(self._records)
