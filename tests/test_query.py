"""Tests for the filter/sort/pagination query language."""

import pytest

from mosaic.lib.exceptions import ValidationError
from mosaic.lib.query import Pagination, QueryResult, normalize_filter, parse_query_string, parse_sort


class TestNormalizeFilter:
    def test_literal_means_equality(self):
        assert normalize_filter("whitening") == {"$eq": "whitening"}

    def test_operator_object_kept(self):
        assert normalize_filter({"$gte": 10, "$lte": 100}) == {"$gte": 10, "$lte": 100}

    def test_unknown_operator(self):
        with pytest.raises(ValidationError):
            normalize_filter({"$like": "x"})

    def test_empty_operator_object(self):
        with pytest.raises(ValidationError):
            normalize_filter({})


class TestParseSort:
    def test_direction_defaults_to_ascending(self):
        assert parse_sort(["title", "price:desc"]) == [("title", False), ("price", True)]

    def test_comma_separated_string(self):
        assert parse_sort("title:asc,price:desc") == [("title", False), ("price", True)]

    def test_invalid_expression(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_sort(["price:sideways"])
        assert exc_info.value.field == "sort"


class TestParseQueryString:
    """The bracketed HTTP spelling."""

    def test_filters_with_operators(self):
        """Test nested filter keys and list operators."""
        query = parse_query_string(
            {
                "filters[price][$gte]": "10",
                "filters[slug]": "whitening",
                "filters[slug2][$in][]": ["a", "b"],
                "filters[tag][$notIn]": "x,y",
            }
        )

        assert query.filters == {
            "price": {"$gte": "10"},
            "slug": {"$eq": "whitening"},
            "slug2": {"$in": ["a", "b"]},
            "tag": {"$notIn": ["x", "y"]},
        }

    def test_pagination_locale_and_state(self):
        query = parse_query_string(
            {
                "pagination[page]": "2",
                "pagination[pageSize]": "10",
                "locale": "en",
                "publicationState": "live",
                "sort": "price:desc",
            }
        )

        assert query.pagination == Pagination(page=2, page_size=10)
        assert query.locale == "en"
        assert query.publication_state == "live"
        assert query.sort == ["price:desc"]

    def test_page_without_size_uses_default(self):
        query = parse_query_string({"pagination[page]": "3"}, default_page_size=12)
        assert query.pagination == Pagination(page=3, page_size=12)

    def test_non_integer_page(self):
        with pytest.raises(ValidationError):
            parse_query_string({"pagination[page]": "two"})

    def test_malformed_filter_key(self):
        with pytest.raises(ValidationError):
            parse_query_string({"filters[price": "1"})


class TestPagination:
    def test_page_must_be_positive(self):
        with pytest.raises(ValidationError):
            Pagination(page=0)

    def test_capped(self):
        assert Pagination(page=2, page_size=500).capped(100) == Pagination(page=2, page_size=100)

    def test_result_envelope(self):
        """Test the data/meta.pagination envelope."""
        result = QueryResult(data=[{"id": "1"}], pagination=Pagination(page=1, page_size=2), total=5)

        assert result.to_dict() == {
            "data": [{"id": "1"}],
            "meta": {"pagination": {"page": 1, "pageSize": 2, "pageCount": 3, "total": 5}},
        }

    def test_empty_result_has_no_pages(self):
        assert Pagination().meta(0)["pageCount"] == 0
