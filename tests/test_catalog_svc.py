"""
Tests for catalog/domain/services/catalog_svc.py (source fallback orchestrator).

The live source is a MagicMock with AsyncMock methods; the static side is the
small hand-built dataset from conftest.

Covers:
  - fallback transparency: a failed live call yields the same page as a static-only service
  - live success, invalid live payloads, unexpected live exceptions
  - end-to-end list query (category + price ceiling + sort + limit)
  - featured() and categories()
  - fetch_one(): alias / direct-match / live / search fallback / static fallback / placeholder
  - live list paging: total and offset span every backend page
  - case variants of one id resolve to one record and one recently-viewed entry
  - recently-viewed push for real records only
"""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from catalog.domain.errors import LiveSourceError
from catalog.domain.models.product import ResolutionKind, SourceKind
from catalog.domain.models.query import QueryRequest, SortKey
from catalog.domain.repositories.live_catalog_repo import LiveCatalogRepo
from catalog.domain.services.catalog_svc import CatalogService
from catalog.domain.services.constants import UNAVAILABLE_DESCRIPTION
from catalog.domain.services.id_resolver import generate_canonical_id
from catalog.domain.services.recently_viewed_svc import RecentlyViewedCache

OBJECT_ID = "64b7f0c2a1b2c3d4e5f60718"


def live_raw(i: int = 0, **overrides) -> dict:
    base = {
        "_id": f"64b7f0c2a1b2c3d4e5f6{i:04d}",
        "name": f"Live item {i}",
        "description": "From the live backend",
        "price": 10.0 + i,
        "category": "electronics",
        "rating": {"average": 4.0, "count": 3},
        "stock": 5,
    }
    base.update(overrides)
    return base


def make_live(**methods) -> MagicMock:
    live = MagicMock()
    live.base_url = "http://backend.test/api"
    live.list_products = methods.get("list_products", AsyncMock(side_effect=LiveSourceError("down")))
    live.get_product = methods.get("get_product", AsyncMock(side_effect=LiveSourceError("down")))
    live.search = methods.get("search", AsyncMock(side_effect=LiveSourceError("down")))
    return live


# ── List queries ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestFetchCatalog:
    async def test_static_only_service_never_touches_live(self, static_repo):
        svc = CatalogService(static_repo)
        page = await svc.fetch_catalog()
        assert page.source is SourceKind.STATIC
        assert page.total == len(static_repo)

    async def test_live_failure_is_transparent(self, static_repo):
        q = QueryRequest(category="electronics", sort_by=SortKey.PRICE_DESC, limit=3)
        expected = await CatalogService(static_repo).fetch_catalog(q)
        live = make_live()
        page = await CatalogService(static_repo, live).fetch_catalog(q)
        live.list_products.assert_awaited_once()
        assert page.source is SourceKind.STATIC
        assert page.records == expected.records
        assert page.total == expected.total

    async def test_end_to_end_price_ceiling_ascending(self, static_repo):
        live = make_live()
        q = QueryRequest(category="electronics", price_max=100, sort_by=SortKey.PRICE_ASC, limit=5)
        page = await CatalogService(static_repo, live).fetch_catalog(q)
        prices = [r.price for r in page.records]
        assert page.source is SourceKind.STATIC
        assert len(page.records) <= 5
        assert all(p <= 100 for p in prices)
        assert prices == sorted(prices)
        assert prices == [19.99, 24.99, 49.99, 74.99, 89.99]
        assert page.total == 6
        assert all(r.category == "electronics" for r in page.records)

    async def test_live_success(self, static_repo):
        raws = [live_raw(i) for i in range(3)]
        live = make_live(list_products=AsyncMock(return_value=raws))
        page = await CatalogService(static_repo, live).fetch_catalog(QueryRequest(sort_by=SortKey.PRICE_DESC))
        assert page.source is SourceKind.LIVE
        assert [r.name for r in page.records] == ["Live item 2", "Live item 1", "Live item 0"]

    async def test_live_results_filtered_locally(self, static_repo):
        raws = [live_raw(0, price=5.0), live_raw(1, price=500.0)]
        live = make_live(list_products=AsyncMock(return_value=raws))
        page = await CatalogService(static_repo, live).fetch_catalog(QueryRequest(price_max=100))
        assert page.source is SourceKind.LIVE
        assert [r.price for r in page.records] == [5.0]

    async def test_live_all_invalid_falls_back(self, static_repo):
        live = make_live(list_products=AsyncMock(return_value=[{"name": "no id"}, "junk"]))
        page = await CatalogService(static_repo, live).fetch_catalog()
        assert page.source is SourceKind.STATIC

    async def test_unexpected_live_exception_falls_back(self, static_repo):
        live = make_live(list_products=AsyncMock(side_effect=RuntimeError("bug")))
        page = await CatalogService(static_repo, live).fetch_catalog()
        assert page.source is SourceKind.STATIC
        assert page.total == len(static_repo)

    async def test_offset_past_end(self, static_repo):
        page = await CatalogService(static_repo).fetch_catalog(QueryRequest(offset=100, limit=5))
        assert page.records == []
        assert page.total == len(static_repo)

    async def test_no_match_is_empty_not_error(self, static_repo):
        page = await CatalogService(static_repo).fetch_catalog(QueryRequest(category="garden"))
        assert page.records == []
        assert page.total == 0

    async def test_live_total_spans_backend_pages(self, static_repo):
        # backend caps limit at 100 per page; 150 live records must all be visible
        raws = [{"_id": f"{i:024x}", "name": f"P{i}", "price": float(i + 1)} for i in range(150)]

        async def backend(path, params=None):
            limit = min(int(params["limit"]), 100)
            page = int(params.get("page", 1))
            chunk = raws[(page - 1) * limit: page * limit]
            pagination = {"page": page, "limit": limit, "total": len(raws), "pages": -(-len(raws) // limit)}
            return 200, {"success": True, "data": {"products": chunk, "pagination": pagination}}

        live = LiveCatalogRepo("http://backend.test/api", page_size=100)
        with patch.object(live, "_get_json", new=backend):
            page = await CatalogService(static_repo, live).fetch_catalog(QueryRequest(offset=120, limit=10))
        assert page.source is SourceKind.LIVE
        assert page.total == 150
        assert len(page.records) == 10


@pytest.mark.asyncio
class TestFeaturedAndCategories:
    async def test_featured_from_static(self, static_repo):
        page = await CatalogService(static_repo).featured()
        assert [r.name for r in page.records] == ["Yoga Mat"]

    async def test_featured_falls_back_when_live_has_none(self, static_repo):
        live = make_live(list_products=AsyncMock(return_value=[live_raw(0), live_raw(1)]))
        page = await CatalogService(static_repo, live).featured()
        assert page.source is SourceKind.STATIC
        assert [r.name for r in page.records] == ["Yoga Mat"]

    async def test_featured_from_live(self, static_repo):
        raws = [live_raw(0), live_raw(1, isFeatured=True)]
        live = make_live(list_products=AsyncMock(return_value=raws))
        page = await CatalogService(static_repo, live).featured(limit=4)
        assert page.source is SourceKind.LIVE
        assert [r.name for r in page.records] == ["Live item 1"]

    async def test_categories_counts_in_first_seen_order(self, static_repo):
        items, source = await CatalogService(static_repo).categories()
        assert source is SourceKind.STATIC
        assert [(c.category, c.product_count) for c in items] == [
            ("electronics", 8), ("fashion", 1), ("sports", 1),
        ]


# ── Single item lookup ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestFetchOne:
    async def test_alias_resolves_to_static_record(self, static_repo):
        lookup = await CatalogService(static_repo).fetch_one("1")
        assert lookup.resolution.source_kind is ResolutionKind.ALIAS
        assert lookup.record.name == "Electronics item 1"
        assert lookup.source is SourceKind.STATIC

    async def test_slug_alias(self, static_repo):
        lookup = await CatalogService(static_repo).fetch_one("Electronics-Item-1")
        assert lookup.record.id == "00000000-0000-4000-8000-000000000001"

    async def test_direct_match(self, static_repo):
        lookup = await CatalogService(static_repo).fetch_one("00000000-0000-4000-8000-000000000002")
        assert lookup.resolution.source_kind is ResolutionKind.DIRECT_MATCH
        assert lookup.record.price == 19.99

    async def test_live_hit(self, static_repo):
        live = make_live(get_product=AsyncMock(return_value=live_raw(0, _id=OBJECT_ID, name="Speaker")))
        lookup = await CatalogService(static_repo, live).fetch_one(OBJECT_ID)
        live.get_product.assert_awaited_once_with(OBJECT_ID)
        assert lookup.source is SourceKind.LIVE
        assert lookup.record.id == OBJECT_ID
        assert lookup.resolution.source_kind is ResolutionKind.DIRECT_MATCH

    async def test_live_miss_then_live_search(self, static_repo):
        live = make_live(
            get_product=AsyncMock(return_value=None),
            search=AsyncMock(return_value=[live_raw(0, name="Bluetooth Speaker")]),
        )
        lookup = await CatalogService(static_repo, live).fetch_one("bluetooth-speaker")
        live.search.assert_awaited_once_with("bluetooth speaker", 10)
        assert lookup.source is SourceKind.LIVE
        assert lookup.resolution.source_kind is ResolutionKind.FALLBACK_SEARCH
        assert lookup.record.name == "Bluetooth Speaker"
        # re-keyed so the same raw id keeps mapping to the same record
        assert lookup.record.id == generate_canonical_id("bluetooth-speaker")

    async def test_live_miss_falls_through_to_static(self, static_repo):
        live = make_live(get_product=AsyncMock(return_value=None), search=AsyncMock(return_value=[]))
        lookup = await CatalogService(static_repo, live).fetch_one("1")
        assert lookup.source is SourceKind.STATIC
        assert lookup.record.name == "Electronics item 1"

    async def test_live_failure_falls_back_to_static(self, static_repo):
        live = make_live()
        lookup = await CatalogService(static_repo, live).fetch_one("00000000-0000-4000-8000-000000000003")
        assert lookup.source is SourceKind.STATIC
        assert lookup.record.price == 89.99

    async def test_unusable_live_payload_falls_back(self, static_repo):
        live = make_live(get_product=AsyncMock(return_value={"name": "no primary key"}))
        lookup = await CatalogService(static_repo, live).fetch_one("1")
        assert lookup.source is SourceKind.STATIC
        live.search.assert_not_awaited()

    async def test_static_search_fallback(self, static_repo):
        lookup = await CatalogService(static_repo).fetch_one("yoga-mat")
        assert lookup.source is SourceKind.STATIC
        assert lookup.resolution.source_kind is ResolutionKind.FALLBACK_SEARCH
        assert lookup.record.name == "Yoga Mat"
        assert lookup.record.id == generate_canonical_id("yoga-mat")
        assert lookup.resolution.original_input == "yoga-mat"

    async def test_placeholder_for_unknown_id(self, static_repo):
        lookup = await CatalogService(static_repo).fetch_one("zzz-unknown-thing")
        rec = lookup.record
        key = generate_canonical_id("zzz-unknown-thing")
        assert rec.unavailable is True
        assert rec.id == key
        assert rec.price == 0.0
        assert rec.in_stock is False
        assert rec.description == UNAVAILABLE_DESCRIPTION
        assert rec.name == f"Product {key.replace('-', '')[:8]}"
        assert rec.specifications["Original ID"] == "zzz-unknown-thing"
        assert lookup.resolution.source_kind is ResolutionKind.GENERATED

    async def test_placeholder_is_stable(self, static_repo):
        svc = CatalogService(static_repo)
        first = await svc.fetch_one("nothing-here")
        second = await svc.fetch_one("nothing-here")
        assert first.record == second.record

    async def test_separator_only_id_skips_search(self, static_repo):
        live = make_live(get_product=AsyncMock(return_value=None), search=AsyncMock(return_value=[]))
        lookup = await CatalogService(static_repo, live).fetch_one("---")
        live.search.assert_not_awaited()
        assert lookup.record.unavailable is True

    async def test_empty_id_gives_placeholder(self, static_repo):
        lookup = await CatalogService(static_repo).fetch_one("")
        assert lookup.record.unavailable is True
        assert lookup.resolution.original_input == ""


@pytest.mark.asyncio
class TestRecentlyViewedIntegration:
    async def test_real_record_is_recorded(self, static_repo):
        cache = RecentlyViewedCache(5)
        svc = CatalogService(static_repo)
        await svc.fetch_one("1", recently_viewed=cache)
        await svc.fetch_one("00000000-0000-4000-8000-000000000002", recently_viewed=cache)
        assert [r.name for r in await cache.list()] == ["Electronics item 2", "Electronics item 1"]

    async def test_placeholder_is_not_recorded(self, static_repo):
        cache = RecentlyViewedCache(5)
        await CatalogService(static_repo).fetch_one("zzz-unknown-thing", recently_viewed=cache)
        assert await cache.list() == []

    async def test_repeat_view_moves_to_front(self, static_repo):
        cache = RecentlyViewedCache(5)
        svc = CatalogService(static_repo)
        for raw in ("1", "00000000-0000-4000-8000-000000000002", "electronics-item-1"):
            await svc.fetch_one(raw, recently_viewed=cache)
        out = await cache.list()
        assert len(out) == 2
        assert out[0].name == "Electronics item 1"

    async def test_case_variants_share_one_entry(self, static_repo):
        cache = RecentlyViewedCache(5)
        live = make_live(get_product=AsyncMock(return_value=live_raw(0)))
        svc = CatalogService(static_repo, live)
        upper = await svc.fetch_one(live_raw(0)["_id"].upper(), recently_viewed=cache)
        lower = await svc.fetch_one(live_raw(0)["_id"], recently_viewed=cache)
        assert upper.record.id == lower.record.id == live_raw(0)["_id"]
        assert upper.resolution.canonical_id == lower.resolution.canonical_id
        assert [c.args[0] for c in live.get_product.await_args_list] == [live_raw(0)["_id"]] * 2
        assert len(await cache.list()) == 1

    async def test_uppercase_live_key_normalized(self, static_repo):
        shouting = live_raw(0, _id=live_raw(0)["_id"].upper())
        live = make_live(get_product=AsyncMock(return_value=shouting))
        svc = CatalogService(static_repo, live)
        lookup = await svc.fetch_one(live_raw(0)["_id"])
        assert lookup.record.id == live_raw(0)["_id"]
