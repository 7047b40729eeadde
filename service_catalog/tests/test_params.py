"""
Unit tests for catalog parameter normalization.
"""

import pytest

from service_catalog.app.catalog.params import (
    Pagination,
    escape_like,
    normalize_category_name,
    normalize_pagination,
    normalize_product_id,
    normalize_search_term,
)
from shared.errors import ValidationError


class TestNormalizePagination:
    """Test cases for page/limit normalization."""

    def test_defaults(self):
        assert normalize_pagination() == Pagination(page=1, limit=10)

    def test_empty_strings_take_defaults(self):
        assert normalize_pagination("", "  ") == Pagination(page=1, limit=10)

    def test_parses_numeric_strings(self):
        pagination = normalize_pagination("3", "25")
        assert pagination == Pagination(page=3, limit=25)
        assert pagination.offset == 50

    @pytest.mark.parametrize("limit", [1, 100])
    def test_limit_bounds_are_inclusive(self, limit):
        assert normalize_pagination(1, limit).limit == limit

    @pytest.mark.parametrize(
        "page,limit,message",
        [
            (0, 10, "Page number must be greater than 0"),
            (-2, 10, "Page number must be greater than 0"),
            (1, 0, "Limit must be greater than 0"),
            (1, 101, "Limit cannot exceed 100 items per page"),
        ],
    )
    def test_out_of_range_is_rejected(self, page, limit, message):
        with pytest.raises(ValidationError) as exc_info:
            normalize_pagination(page, limit)
        assert exc_info.value.message == message
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("value", ["abc", "1.5", "10abc", True, "1_0", "+5", "\u0663", "1e3"])
    def test_non_integer_is_rejected(self, value):
        with pytest.raises(ValidationError):
            normalize_pagination(value, None)

    def test_page_offset_must_fit_bigint(self):
        with pytest.raises(ValidationError, match="Page number is too large"):
            normalize_pagination(str(2**62), 100)
        assert normalize_pagination(str(2**40), 100).offset == (2**40 - 1) * 100

    def test_latest_bounds(self):
        assert normalize_pagination(None, None, default_limit=8, max_limit=50).limit == 8
        with pytest.raises(ValidationError, match="cannot exceed 50"):
            normalize_pagination(1, 51, default_limit=8, max_limit=50)


class TestSearchTerm:
    """Test cases for search term normalization."""

    def test_trims(self):
        assert normalize_search_term("  laptop  ") == "laptop"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_is_rejected(self, value):
        with pytest.raises(ValidationError, match="Search term is required"):
            normalize_search_term(value)

    def test_length_limit(self):
        assert normalize_search_term("x" * 100) == "x" * 100
        with pytest.raises(ValidationError, match="cannot exceed 100"):
            normalize_search_term("x" * 101)


class TestIdentifiers:
    """Test cases for product id and category name normalization."""

    def test_product_id(self):
        assert normalize_product_id("42") == 42
        assert normalize_product_id(7) == 7
        assert normalize_product_id("2147483647") == 2147483647

    @pytest.mark.parametrize("value", ["2147483648", "99999999999", 2**40])
    def test_product_id_must_fit_integer_column(self, value):
        with pytest.raises(ValidationError, match="cannot exceed 2147483647"):
            normalize_product_id(value)

    @pytest.mark.parametrize("value", ["0", "-1", "abc", None, "", "+3", "0x10"])
    def test_invalid_product_id(self, value):
        with pytest.raises(ValidationError):
            normalize_product_id(value)

    def test_category_name_preserves_case(self):
        assert normalize_category_name("  Home Office ") == "Home Office"

    @pytest.mark.parametrize("value", ["", "   ", None, "c" * 51])
    def test_invalid_category_name(self, value):
        with pytest.raises(ValidationError):
            normalize_category_name(value)

    def test_escape_like(self):
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
