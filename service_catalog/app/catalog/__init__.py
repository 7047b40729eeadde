"""
Catalog read path: parameter normalization, envelopes, SQL, and the
cache-aside resolver that ties them together.
"""

from .models import (
    CatalogStatistics,
    CategoryList,
    CategoryProducts,
    ProductDetail,
    ProductPage,
    Resolution,
)
from .resolver import CatalogResolver

__all__ = [
    "CatalogResolver",
    "CatalogStatistics",
    "CategoryList",
    "CategoryProducts",
    "ProductDetail",
    "ProductPage",
    "Resolution",
]
