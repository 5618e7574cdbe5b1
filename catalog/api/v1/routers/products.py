# catalog/api/v1/routers/products.py
from __future__ import annotations
from typing import Optional
import logging
import time

from fastapi import APIRouter, Depends, Query

from catalog.api.deps import catalog_dep, recently_viewed_dep
from catalog.api.v1.schemas.catalog import CategoriesOut, ProductOut, ProductPageOut
from catalog.domain.models.query import QueryRequest, SortKey
from catalog.domain.services.catalog_svc import CatalogService
from catalog.domain.services.recently_viewed_svc import RecentlyViewedRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])


@router.get("/products", response_model=ProductPageOut)
async def list_products(
    category: Optional[str] = Query(None),
    subcategory: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[float] = Query(None, ge=0, alias="maxPrice"),
    min_rating: Optional[float] = Query(None, ge=0, le=5, alias="minRating"),
    in_stock: bool = Query(False, alias="inStock", description="Only in-stock products"),
    on_sale: bool = Query(False, alias="onSale", description="Only products with a higher original price"),
    search: Optional[str] = Query(None, description="Substring match on name, description and tags"),
    sort_by: Optional[SortKey] = Query(None, alias="sortBy"),
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    catalog: CatalogService = Depends(catalog_dep),
):
    """
    Filtered, sorted page of the catalog.
    Served by the live backend when it answers, by the static dataset otherwise (see `source`).
    """
    query = QueryRequest(
        category=category,
        subcategory=subcategory,
        price_min=min_price,
        price_max=max_price,
        min_rating=min_rating,
        in_stock_only=in_stock,
        on_sale_only=on_sale,
        search_text=search,
        sort_by=sort_by,
        offset=offset,
        limit=limit,
    )
    logger.info("Request: list_products query=%s", query.model_dump(exclude_defaults=True))
    t0 = time.perf_counter()
    page = await catalog.fetch_catalog(query)
    logger.info(
        "Response: list_products returned %s items (total=%s, source=%s) in %.4fs",
        len(page.records), page.total, page.source.value, time.perf_counter() - t0,
    )
    return ProductPageOut(
        items=page.records,
        count=len(page.records),
        total=page.total,
        offset=page.offset,
        limit=page.limit,
        source=page.source,
    )


@router.get("/products/featured", response_model=ProductPageOut)
async def featured_products(
    limit: int = Query(8, ge=1, le=50),
    catalog: CatalogService = Depends(catalog_dep),
):
    page = await catalog.featured(limit)
    return ProductPageOut(
        items=page.records,
        count=len(page.records),
        total=page.total,
        offset=page.offset,
        limit=page.limit,
        source=page.source,
    )


@router.get("/categories", response_model=CategoriesOut)
async def list_categories(catalog: CatalogService = Depends(catalog_dep)):
    items, source = await catalog.categories()
    return CategoriesOut(items=items, count=len(items), source=source)


@router.get("/products/{raw_id}", response_model=ProductOut)
async def get_product(
    raw_id: str,
    user_id: Optional[str] = Query(None, description="Record the view in this user's recently-viewed list"),
    catalog: CatalogService = Depends(catalog_dep),
    registry: RecentlyViewedRegistry = Depends(recently_viewed_dep),
):
    """
    Any identifier format (canonical key, legacy numeric id, slug, free text).
    Always 200: unresolvable ids come back as a placeholder with `record.unavailable = true`.
    """
    logger.info("Request: get_product raw_id=%s user_id=%s", raw_id, user_id)
    cache = await registry.get(user_id) if user_id else None
    lookup = await catalog.fetch_one(raw_id, recently_viewed=cache)
    return ProductOut(
        record=lookup.record,
        resolution=lookup.resolution,
        source=lookup.source,
        display_id=catalog.resolver.display_id(lookup.record.id),
    )
