"""
Parameter normalization for catalog operations.

Every function here either returns a normalized value or raises
ValidationError. They run before any cache or store access.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from shared.errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

LATEST_DEFAULT_LIMIT = 8
LATEST_MAX_LIMIT = 50

SEARCH_MAX_LENGTH = 100
CATEGORY_MAX_LENGTH = 50
CATEGORY_RESULT_SIZE = 5

# Column widths: products.index is INTEGER, OFFSET is BIGINT.
MAX_PRODUCT_ID = 2**31 - 1
MAX_OFFSET = 2**63 - 1

_INTEGER_PATTERN = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _parse_int(name: str, value: Any, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a valid integer", {"field": name, "value": value})
    if isinstance(value, int):
        return value

    text = str(value).strip()
    if not text:
        return default
    if not _INTEGER_PATTERN.fullmatch(text):
        raise ValidationError(f"{name} must be a valid integer", {"field": name, "value": value})
    try:
        return int(text, 10)
    except ValueError:
        raise ValidationError(f"{name} must be a valid integer", {"field": name, "value": value})


def normalize_pagination(
    page: Any = None,
    limit: Any = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> Pagination:
    """Parse page/limit, applying defaults and rejecting out-of-range values."""
    page_number = _parse_int("page", page, DEFAULT_PAGE)
    page_size = _parse_int("limit", limit, default_limit)

    if page_number < 1:
        raise ValidationError("Page number must be greater than 0", {"field": "page", "value": page_number})
    if page_size < 1:
        raise ValidationError("Limit must be greater than 0", {"field": "limit", "value": page_size})
    if page_size > max_limit:
        raise ValidationError(
            f"Limit cannot exceed {max_limit} items per page",
            {"field": "limit", "value": page_size, "max": max_limit},
        )

    pagination = Pagination(page=page_number, limit=page_size)
    if pagination.offset > MAX_OFFSET:
        raise ValidationError("Page number is too large", {"field": "page", "value": page_number})
    return pagination


def normalize_search_term(search: Optional[str]) -> str:
    """Trim the search term; it is mandatory and bounded in length."""
    term = search.strip() if isinstance(search, str) else ""
    if not term:
        raise ValidationError(
            "Search term is required",
            {"field": "search", "hint": "Provide a search term using the 'search' query parameter"},
        )
    if len(term) > SEARCH_MAX_LENGTH:
        raise ValidationError(
            f"Search term cannot exceed {SEARCH_MAX_LENGTH} characters",
            {"field": "search", "length": len(term), "max": SEARCH_MAX_LENGTH},
        )
    return term


def normalize_product_id(product_id: Any) -> int:
    """Product identifiers are positive integers."""
    value = _parse_int("id", product_id, 0)
    if value < 1:
        raise ValidationError("Product id must be a positive integer", {"field": "id", "value": product_id})
    if value > MAX_PRODUCT_ID:
        raise ValidationError(
            f"Product id cannot exceed {MAX_PRODUCT_ID}",
            {"field": "id", "value": value, "max": MAX_PRODUCT_ID},
        )
    return value


def normalize_category_name(name: Optional[str]) -> str:
    """Trim the category name and bound its length. Case is preserved."""
    category = name.strip() if isinstance(name, str) else ""
    if not category:
        raise ValidationError("Category name cannot be empty", {"field": "categoryName"})
    if len(category) > CATEGORY_MAX_LENGTH:
        raise ValidationError(
            f"Category name cannot exceed {CATEGORY_MAX_LENGTH} characters",
            {"field": "categoryName", "length": len(category), "max": CATEGORY_MAX_LENGTH},
        )
    return category


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
