from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException

from catalog.api.deps import recently_viewed_dep
from catalog.api.v1.schemas.catalog import RecentlyViewedOut
from catalog.domain.services.recently_viewed_svc import RecentlyViewedRegistry

import logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


@router.get("/users/{user_id}/recently-viewed", response_model=RecentlyViewedOut)
async def get_recently_viewed(
    user_id: str,
    registry: RecentlyViewedRegistry = Depends(recently_viewed_dep),
):
    """Most recent first. An unknown user simply has an empty history."""
    items = await registry.list(user_id)
    logger.info(f"Response: get_recently_viewed returned {len(items)} items for user_id={user_id}")
    return RecentlyViewedOut(user_id=user_id, items=items, count=len(items))


@router.delete("/users/{user_id}/recently-viewed", status_code=204)
async def clear_recently_viewed(
    user_id: str,
    registry: RecentlyViewedRegistry = Depends(recently_viewed_dep),
):
    await registry.clear(user_id)
    logger.info(f"Cleared recently viewed for user_id={user_id}")


@router.delete("/users/{user_id}/recently-viewed/{product_id}", status_code=204)
async def remove_recently_viewed(
    user_id: str,
    product_id: str,
    registry: RecentlyViewedRegistry = Depends(recently_viewed_dep),
):
    if not await registry.remove(user_id, product_id):
        raise HTTPException(status_code=404, detail="Product not in recently viewed list.")
