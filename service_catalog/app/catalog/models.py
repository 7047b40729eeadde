"""
Response envelopes produced by the catalog resolver.

Envelopes are plain dataclasses. ``to_dict`` yields the exact JSON body
returned to callers and stored in the cache; ``from_dict`` rebuilds the
envelope from a cached body and raises KeyError/TypeError/ValueError when
the payload does not have the expected shape.
"""

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar

E = TypeVar("E", bound="Envelope")


class Envelope:
    """Common serialization for every envelope type."""

    def to_dict(self) -> Dict[str, Any]:  # pragma: no cover - abstract
        raise NotImplementedError

    @classmethod
    def from_dict(cls: Type[E], payload: Dict[str, Any]) -> E:  # pragma: no cover - abstract
        raise NotImplementedError

    def serialize(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def deserialize(cls: Type[E], raw: str) -> E:
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise TypeError(f"{cls.__name__} payload must be an object")
        return cls.from_dict(payload)


def _records(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise TypeError("expected a list of records")
    return value


def _integer(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("expected an integer")
    return value


@dataclass(frozen=True)
class ProductPage(Envelope):
    """A page of products (listing, latest and search)."""

    products: List[Dict[str, Any]]
    page: int
    limit: int
    total: int
    search_term: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "products": self.products,
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
        }
        if self.search_term is not None:
            payload["searchTerm"] = self.search_term
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ProductPage":
        search_term = payload.get("searchTerm")
        if search_term is not None and not isinstance(search_term, str):
            raise TypeError("searchTerm must be a string")
        return cls(
            products=_records(payload["products"]),
            page=_integer(payload["page"]),
            limit=_integer(payload["limit"]),
            total=_integer(payload["total"]),
            search_term=search_term,
        )


@dataclass(frozen=True)
class ProductDetail(Envelope):
    """A single product record."""

    product: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return self.product

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ProductDetail":
        if not payload:
            raise ValueError("empty product payload")
        return cls(product=payload)


@dataclass(frozen=True)
class CategoryProducts(Envelope):
    """Up to N products for a category, topped up with random picks."""

    products: List[Dict[str, Any]]
    category: str
    category_matches: int
    random_products: int

    @property
    def count(self) -> int:
        return len(self.products)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "products": self.products,
            "category": self.category,
            "count": self.count,
            "categoryMatches": self.category_matches,
            "randomProducts": self.random_products,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CategoryProducts":
        envelope = cls(
            products=_records(payload["products"]),
            category=str(payload["category"]),
            category_matches=_integer(payload["categoryMatches"]),
            random_products=_integer(payload["randomProducts"]),
        )
        if envelope.count != payload.get("count", envelope.count):
            raise ValueError("count does not match products")
        return envelope


@dataclass(frozen=True)
class CategoryList(Envelope):
    """Every category known to the catalog."""

    categories: List[Dict[str, Any]]

    @property
    def total(self) -> int:
        return len(self.categories)

    def to_dict(self) -> Dict[str, Any]:
        return {"categories": self.categories, "total": self.total}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CategoryList":
        return cls(categories=_records(payload["categories"]))


@dataclass(frozen=True)
class CatalogStatistics(Envelope):
    """Aggregate catalog metrics, in a fixed metric order."""

    METRICS: ClassVar[List[str]] = [
        "total_products",
        "unique_brands",
        "unique_categories",
        "average_price",
        "price_min",
        "price_max",
        "in_stock_count",
        "limited_stock_count",
        "out_of_stock_count",
    ]

    values: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {metric: self.values.get(metric) for metric in self.METRICS}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CatalogStatistics":
        missing = [metric for metric in cls.METRICS if metric not in payload]
        if missing:
            raise KeyError(f"missing metrics: {', '.join(missing)}")
        return cls(values={metric: payload[metric] for metric in cls.METRICS})

    def to_csv(self) -> str:
        rows = ["metric,value"]
        for metric, value in self.to_dict().items():
            rows.append(f"{metric},{'' if value is None else value}")
        return "\n".join(rows)


@dataclass(frozen=True)
class Resolution:
    """An envelope plus how it was obtained."""

    envelope: Envelope
    cache_status: str

    HIT: ClassVar[str] = "HIT"
    MISS: ClassVar[str] = "MISS"

    @property
    def body(self) -> Dict[str, Any]:
        return self.envelope.to_dict()
