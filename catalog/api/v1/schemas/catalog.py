# catalog/api/v1/schemas/catalog.py
from typing import List, Optional
from pydantic import BaseModel

from catalog.domain.models.product import CanonicalRecord, ResolutionResult, SourceKind
from catalog.domain.models.query import CategorySummary


class ProductPageOut(BaseModel):
    items: List[CanonicalRecord]
    count: int
    total: int
    offset: int
    limit: Optional[int] = None
    source: SourceKind


class ProductOut(BaseModel):
    record: CanonicalRecord
    resolution: ResolutionResult
    source: SourceKind
    display_id: str


class CategoriesOut(BaseModel):
    items: List[CategorySummary]
    count: int
    source: SourceKind


class RecentlyViewedOut(BaseModel):
    user_id: str
    items: List[CanonicalRecord]
    count: int
