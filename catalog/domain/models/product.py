from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, Field, computed_field, model_validator


class SourceKind(str, Enum):
    """Which data source served a record or a page."""
    LIVE = "live"
    STATIC = "static"


class ResolutionKind(str, Enum):
    """How a raw identifier was mapped to a canonical key."""
    DIRECT_MATCH = "direct-match"
    ALIAS = "alias"
    GENERATED = "generated"
    FALLBACK_SEARCH = "fallback-search"


class CanonicalRecord(BaseModel):
    """
    The single normalized product shape every source is converted into.
    Records are value objects: built once per fetch, never mutated afterwards.
    """
    id: str
    name: str
    description: str
    price: float = Field(ge=0)
    original_price: Optional[float] = None
    category: str = ""
    subcategory: str = ""
    brand: str = ""
    tags: Tuple[str, ...] = ()
    rating: float = Field(default=0.0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    in_stock: bool = True
    stock_count: Optional[int] = Field(default=None, ge=0)
    images: Tuple[str, ...] = ()
    specifications: Dict[str, str] = Field(default_factory=dict)
    is_new: bool = False
    is_featured: bool = False
    unavailable: bool = False  # placeholder marker, never set on real catalog items

    model_config = {"frozen": True}  # immuable = safe

    @model_validator(mode="before")
    @classmethod
    def _enforce_invariants(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        price = data.get("price")
        original = data.get("original_price")
        # originalPrice below price is cleared, not rejected
        if original is not None and price is not None and original < price:
            data["original_price"] = None
        if data.get("stock_count") == 0:
            data["in_stock"] = False
        return data

    @computed_field
    @property
    def discount_percent(self) -> Optional[int]:
        if self.original_price is None or self.original_price <= self.price or self.original_price <= 0:
            return None
        return round((self.original_price - self.price) / self.original_price * 100)

    @property
    def on_sale(self) -> bool:
        return self.original_price is not None and self.original_price > self.price


class ResolutionResult(BaseModel):
    canonical_id: str
    source_kind: ResolutionKind
    original_input: str

    model_config = {"frozen": True}
