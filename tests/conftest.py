"""
Shared pytest fixtures.

The static dataset used here is small and hand-built so that price, rating and
ordering assertions can be checked by eye. No test touches the network or Redis.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# ── Make the project root importable without installing the package ────────────
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from catalog.domain.models.product import CanonicalRecord  # noqa: E402
from catalog.domain.repositories.static_catalog_repo import StaticCatalogRepo  # noqa: E402


ELECTRONICS_PRICES = [299.99, 19.99, 89.99, 149.99, 49.99, 99.99, 24.99, 74.99]


def make_raw_static(idx: int, **overrides) -> dict:
    """A static-dataset record with a canonical id ending in `idx`."""
    base = {
        "id": f"00000000-0000-4000-8000-{idx:012d}",
        "name": f"Gadget {idx}",
        "description": f"Test gadget number {idx}",
        "price": 10.0,
        "category": "electronics",
        "rating": 4.0,
        "reviews": 10,
        "inStock": True,
        "tags": ["gadget"],
    }
    base.update(overrides)
    return base


def make_record(idx: int, **overrides) -> CanonicalRecord:
    fields = dict(
        id=f"00000000-0000-4000-8000-{idx:012d}",
        name=f"Gadget {idx}",
        description=f"Test gadget number {idx}",
        price=10.0,
        category="electronics",
    )
    fields.update(overrides)
    return CanonicalRecord(**fields)


@pytest.fixture
def electronics_raw() -> list[dict]:
    """8 electronics items priced 19.99–299.99 plus two items in other categories."""
    items = [
        make_raw_static(i + 1, price=p, name=f"Electronics item {i + 1}", isNew=(i % 3 == 0))
        for i, p in enumerate(ELECTRONICS_PRICES)
    ]
    items.append(make_raw_static(20, category="fashion", price=59.0, name="Leather Wallet", tags=["leather"]))
    items.append(make_raw_static(21, category="sports", price=15.0, name="Yoga Mat", tags=["fitness"], isFeatured=True))
    return items


@pytest.fixture
def static_repo(electronics_raw) -> StaticCatalogRepo:
    return StaticCatalogRepo(
        electronics_raw,
        aliases=[
            {"id": "00000000-0000-4000-8000-000000000001", "numeric": "1", "slug": "electronics-item-1"},
        ],
    )
