# catalog/domain/services/id_resolver.py
from __future__ import annotations
from typing import Mapping, Optional
import logging
import re
import uuid

from catalog.domain.models.product import ResolutionKind, ResolutionResult
from catalog.domain.services.constants import (
    DISPLAY_ID_LENGTH,
    ID_ALGORITHM_VERSION,
    ID_NAMESPACE_NAME,
    SEARCH_ID_SEPARATORS,
)

logger = logging.getLogger(__name__)

_CANONICAL_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
# live backend primary keys (Mongo ObjectId hex) are canonical as-is
_OBJECT_ID_RE = re.compile(r"^[0-9a-f]{24}$", re.IGNORECASE)
_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, ID_NAMESPACE_NAME)


def is_canonical_id(value: str) -> bool:
    """True for RFC-4122 shaped UUID strings (version 1-5) and 24-hex ObjectIds."""
    value = value or ""
    return bool(_CANONICAL_RE.match(value) or _OBJECT_ID_RE.match(value))


def canonical_key(primary_key: str) -> str:
    """Key a source primary key into the canonical key space (lowercase hex)."""
    return primary_key.lower() if is_canonical_id(primary_key) else generate_canonical_id(primary_key)


def generate_canonical_id(raw: str, version: int = ID_ALGORITHM_VERSION) -> str:
    """
    Deterministic, versioned key derivation: UUIDv5 over "v<version>:<raw>".
    The output is itself a canonical key, so re-resolving it is a direct match.
    """
    return str(uuid.uuid5(_ID_NAMESPACE, f"v{version}:{raw}"))


def search_phrase(raw: str) -> str:
    """Turn a slug-like raw id ("wireless-headphones") into a search phrase."""
    return re.sub(SEARCH_ID_SEPARATORS, " ", raw or "").strip()


class IdResolver:
    """
    Maps arbitrary external identifiers onto canonical catalog keys.
    Total over all strings and free of side effects.

    Optional alias tables come from the static dataset (legacy numeric ids and
    slugs). They are copied at construction and never modified.
    """

    def __init__(
        self,
        numeric_aliases: Optional[Mapping[str, str]] = None,
        slug_aliases: Optional[Mapping[str, str]] = None,
    ):
        self._numeric = {k: v.lower() for k, v in (numeric_aliases or {}).items()}
        self._slugs = {k.lower(): v.lower() for k, v in (slug_aliases or {}).items()}
        # reverse lookups for display labels; first alias registered wins
        self._numeric_by_id: dict[str, str] = {}
        for k, v in self._numeric.items():
            self._numeric_by_id.setdefault(v, k)
        self._slug_by_id: dict[str, str] = {}
        for k, v in self._slugs.items():
            self._slug_by_id.setdefault(v, k)

    def resolve(self, raw_id: str) -> ResolutionResult:
        raw_id = raw_id if raw_id is not None else ""
        clean = raw_id.strip()

        if is_canonical_id(clean):
            # keys are case-insensitive hex; one spelling per key
            return ResolutionResult(
                canonical_id=clean.lower(),
                source_kind=ResolutionKind.DIRECT_MATCH,
                original_input=raw_id,
            )

        alias = self._numeric.get(clean) or self._slugs.get(clean.lower())
        if alias:
            logger.debug("resolve alias raw=%r -> %s", raw_id, alias)
            return ResolutionResult(
                canonical_id=alias,
                source_kind=ResolutionKind.ALIAS,
                original_input=raw_id,
            )

        generated = generate_canonical_id(raw_id)
        logger.debug("resolve generated raw=%r -> %s", raw_id, generated)
        return ResolutionResult(
            canonical_id=generated,
            source_kind=ResolutionKind.GENERATED,
            original_input=raw_id,
        )

    def display_id(self, canonical_id: str) -> str:
        """Short label for URLs and placeholder names: slug, then numeric alias, then key prefix."""
        key = (canonical_id or "").lower()
        if key in self._slug_by_id:
            return self._slug_by_id[key]
        if key in self._numeric_by_id:
            return self._numeric_by_id[key]
        compact = key.replace("-", "")
        return compact[:DISPLAY_ID_LENGTH] if compact else canonical_id
