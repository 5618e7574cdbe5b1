import logging
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from catalog.domain.errors import LiveSourceError, NormalizationError
from catalog.domain.models.product import CanonicalRecord, ResolutionKind, ResolutionResult, SourceKind
from catalog.domain.models.query import CatalogPage, CategorySummary, ItemLookup, QueryRequest
from catalog.domain.repositories.live_catalog_repo import LiveCatalogRepo
from catalog.domain.repositories.static_catalog_repo import StaticCatalogRepo
from catalog.domain.services import query_pipeline
from catalog.domain.services.constants import UNAVAILABLE_DESCRIPTION
from catalog.domain.services.id_resolver import IdResolver, search_phrase
from catalog.domain.services.normalizer import normalize, normalize_many
from catalog.domain.services.recently_viewed_svc import RecentlyViewedCache

logger = logging.getLogger(__name__)


class FetchState(str, Enum):
    TRY_LIVE = "try-live"
    TRY_STATIC = "try-static"
    SYNTHESIZE_PLACEHOLDER = "synthesize-placeholder"
    DONE = "done"


class CatalogService:
    """
    Source fallback orchestrator.

    Every operation walks the same small state machine:
      TRY_LIVE    -> DONE on success, TRY_STATIC on any live failure or miss
      TRY_STATIC  -> DONE (list queries always; lookups on a match)
                  -> SYNTHESIZE_PLACEHOLDER (lookups only, nothing matched)
      SYNTHESIZE_PLACEHOLDER -> DONE
    Live is tried first and awaited before static is considered; the two are never raced.
    Callers only ever observe a result (plus its `source`) or an explicit placeholder.
    """

    def __init__(
        self,
        static: StaticCatalogRepo,
        live: Optional[LiveCatalogRepo] = None,
        resolver: Optional[IdResolver] = None,
        *,
        new_arrival_days: int = 30,
        search_limit: int = 10,
    ):
        self.static = static
        self.live = live
        self.resolver = resolver or IdResolver(static.numeric_aliases, static.slug_aliases)
        self.new_arrival_days = new_arrival_days
        self.search_limit = search_limit

    def _initial_state(self) -> FetchState:
        return FetchState.TRY_LIVE if self.live is not None else FetchState.TRY_STATIC

    # ---- Snapshots (list queries) ------------------------------------------

    async def _live_snapshot(self, query: QueryRequest) -> List[CanonicalRecord]:
        raw = await self.live.list_products(query)
        records = normalize_many(raw, SourceKind.LIVE, new_arrival_days=self.new_arrival_days)
        if not records:
            raise LiveSourceError(f"live backend returned {len(raw)} records, none valid")
        return records

    async def _snapshot(
        self,
        query: QueryRequest,
        require: Optional[Callable[[CanonicalRecord], bool]] = None,
    ) -> Tuple[List[CanonicalRecord], SourceKind]:
        """
        Records for a list query, live first then static.
        `require`: a live snapshot with no record satisfying it counts as a miss.
        """
        state = self._initial_state()
        records: List[CanonicalRecord] = []
        source = SourceKind.STATIC
        while state is not FetchState.DONE:
            if state is FetchState.TRY_LIVE:
                try:
                    records = await self._live_snapshot(query)
                    if require is not None and not any(require(r) for r in records):
                        raise LiveSourceError("live snapshot has no record matching the requirement")
                    source = SourceKind.LIVE
                    state = FetchState.DONE
                except LiveSourceError as e:
                    logger.warning("catalog live failed, falling back to static: %s", e)
                    state = FetchState.TRY_STATIC
                except Exception:
                    logger.exception("catalog live failed unexpectedly, falling back to static")
                    state = FetchState.TRY_STATIC
            elif state is FetchState.TRY_STATIC:
                records = list(self.static.records)
                source = SourceKind.STATIC
                state = FetchState.DONE
            else:
                raise RuntimeError(f"invalid list state: {state}")
        return records, source

    async def fetch_catalog(self, query: Optional[QueryRequest] = None) -> CatalogPage:
        """Filtered, sorted, paginated page; never fails (worst case: empty static page)."""
        query = query or QueryRequest()
        t0 = time.perf_counter()
        records, source = await self._snapshot(query)

        matched = query_pipeline.select(records, query)
        page = query_pipeline.paginate(matched, query.offset, query.limit)
        logger.info(
            "fetch_catalog source=%s snapshot=%d matched=%d page=%d time=%.3fs",
            source.value, len(records), len(matched), len(page), time.perf_counter() - t0,
        )
        return CatalogPage(records=page, source=source, total=len(matched), offset=query.offset, limit=query.limit)

    async def featured(self, limit: Optional[int] = None) -> CatalogPage:
        records, source = await self._snapshot(QueryRequest(), require=lambda r: r.is_featured)
        featured = [r for r in records if r.is_featured]
        page = query_pipeline.paginate(featured, 0, limit)
        logger.info("featured source=%s count=%d", source.value, len(page))
        return CatalogPage(records=page, source=source, total=len(featured), offset=0, limit=limit)

    async def categories(self) -> Tuple[List[CategorySummary], SourceKind]:
        records, source = await self._snapshot(QueryRequest())
        counts: Dict[str, int] = {}
        for r in records:
            if r.category:
                counts[r.category] = counts.get(r.category, 0) + 1
        return [CategorySummary(category=c, product_count=n) for c, n in counts.items()], source

    # ---- Single item lookup -------------------------------------------------

    def _rekey(self, record: CanonicalRecord, resolution: ResolutionResult) -> CanonicalRecord:
        if resolution.source_kind is ResolutionKind.GENERATED and record.id != resolution.canonical_id:
            return record.model_copy(update={"id": resolution.canonical_id})
        return record

    async def _lookup_live(self, resolution: ResolutionResult) -> Optional[Tuple[CanonicalRecord, bool]]:
        """(record, found_by_search) or None. Raises LiveSourceError when the backend is unusable."""
        raw = await self.live.get_product(resolution.canonical_id)
        if raw is not None:
            try:
                return normalize(raw, SourceKind.LIVE, new_arrival_days=self.new_arrival_days), False
            except NormalizationError as e:
                raise LiveSourceError(f"live product payload unusable: {e}") from e

        phrase = search_phrase(resolution.original_input)
        if not phrase:
            return None
        hits = normalize_many(
            await self.live.search(phrase, self.search_limit),
            SourceKind.LIVE,
            new_arrival_days=self.new_arrival_days,
        )
        if not hits:
            return None
        return self._rekey(hits[0], resolution), True

    def _lookup_static(self, resolution: ResolutionResult) -> Optional[Tuple[CanonicalRecord, bool]]:
        record = self.static.get(resolution.canonical_id)
        if record is not None:
            return record, False

        phrase = search_phrase(resolution.original_input)
        if not phrase:
            return None
        hits = query_pipeline.apply(self.static.records, QueryRequest(search_text=phrase, limit=1))
        if not hits:
            return None
        return self._rekey(hits[0], resolution), True

    def placeholder(self, resolution: ResolutionResult) -> CanonicalRecord:
        """Clearly marked stand-in for an id nothing could resolve."""
        return CanonicalRecord(
            id=resolution.canonical_id,
            name=f"Product {self.resolver.display_id(resolution.canonical_id)}",
            description=UNAVAILABLE_DESCRIPTION,
            price=0.0,
            in_stock=False,
            stock_count=0,
            specifications={
                "Original ID": resolution.original_input,
                "Resolution": resolution.source_kind.value,
            },
            unavailable=True,
        )

    async def fetch_one(
        self,
        raw_id: str,
        *,
        recently_viewed: Optional[RecentlyViewedCache] = None,
    ) -> ItemLookup:
        """
        Resolve `raw_id` and return a record. Never fails: an id found nowhere yields a placeholder.
        Real records (not placeholders) are pushed into `recently_viewed` when given.
        """
        t0 = time.perf_counter()
        resolution = self.resolver.resolve(raw_id)
        logger.info(
            "fetch_one raw=%r canonical=%s resolution=%s",
            raw_id, resolution.canonical_id, resolution.source_kind.value,
        )

        state = self._initial_state()
        hit: Optional[Tuple[CanonicalRecord, bool]] = None
        source = SourceKind.STATIC
        record: Optional[CanonicalRecord] = None
        while state is not FetchState.DONE:
            if state is FetchState.TRY_LIVE:
                try:
                    hit = await self._lookup_live(resolution)
                except LiveSourceError as e:
                    logger.warning("fetch_one live failed, falling back to static: %s", e)
                    hit = None
                except Exception:
                    logger.exception("fetch_one live failed unexpectedly, falling back to static")
                    hit = None
                if hit is not None:
                    source = SourceKind.LIVE
                    state = FetchState.DONE
                else:
                    state = FetchState.TRY_STATIC
            elif state is FetchState.TRY_STATIC:
                hit = self._lookup_static(resolution)
                source = SourceKind.STATIC
                state = FetchState.DONE if hit is not None else FetchState.SYNTHESIZE_PLACEHOLDER
            elif state is FetchState.SYNTHESIZE_PLACEHOLDER:
                record = self.placeholder(resolution)
                logger.info("fetch_one placeholder canonical=%s raw=%r", resolution.canonical_id, raw_id)
                state = FetchState.DONE
            else:
                raise RuntimeError(f"invalid lookup state: {state}")

        if hit is not None:
            record, found_by_search = hit
            if found_by_search:
                resolution = resolution.model_copy(update={"source_kind": ResolutionKind.FALLBACK_SEARCH})

        if recently_viewed is not None and not record.unavailable:
            await recently_viewed.record(record)

        logger.info(
            "fetch_one done id=%s source=%s resolution=%s unavailable=%s time=%.3fs",
            record.id, source.value, resolution.source_kind.value, record.unavailable, time.perf_counter() - t0,
        )
        return ItemLookup(record=record, resolution=resolution, source=source)
