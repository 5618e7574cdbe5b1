from __future__ import annotations
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from catalog.domain.models.product import CanonicalRecord, ResolutionResult, SourceKind


class SortKey(str, Enum):
    PRICE_ASC = "price-ascending"
    PRICE_DESC = "price-descending"
    RATING_DESC = "rating-descending"
    NEWEST = "newest-first"


class QueryRequest(BaseModel):
    """Filter/search/sort/page criteria. Every field is optional; an empty request returns everything."""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    price_min: Optional[float] = Field(default=None, ge=0)
    price_max: Optional[float] = Field(default=None, ge=0)
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)
    in_stock_only: bool = False
    on_sale_only: bool = False
    search_text: Optional[str] = None
    sort_by: Optional[SortKey] = None
    offset: int = Field(default=0, ge=0)
    limit: Optional[int] = Field(default=None, ge=1)

    model_config = {"frozen": True}


class CatalogPage(BaseModel):
    records: List[CanonicalRecord]
    source: SourceKind
    total: int           # matches before pagination
    offset: int = 0
    limit: Optional[int] = None

    model_config = {"frozen": True}


class ItemLookup(BaseModel):
    record: CanonicalRecord
    resolution: ResolutionResult
    source: SourceKind

    model_config = {"frozen": True}


class CategorySummary(BaseModel):
    category: str
    product_count: int

    model_config = {"frozen": True}
