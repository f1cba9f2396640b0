"""Unit tests for page arithmetic."""

from minjok.services.pagination import Page, ilike_pattern, page_bounds, total_pages


def test_page_bounds_first_page():
    assert page_bounds(1, 10) == (0, 10)


def test_page_bounds_later_page():
    assert page_bounds(3, 10) == (20, 10)


def test_page_bounds_clamps_to_first_page():
    assert page_bounds(0, 10) == (0, 10)
    assert page_bounds(-4, 10) == (0, 10)


def test_total_pages_rounds_up():
    assert total_pages(0, 10) == 0
    assert total_pages(10, 10) == 1
    assert total_pages(11, 10) == 2
    assert total_pages(25, 10) == 3


def test_page_has_more():
    assert Page(items=[], total=25, page=2, per_page=10).has_more is True
    assert Page(items=[], total=25, page=3, per_page=10).has_more is False


def test_ilike_pattern_escapes_wildcards():
    assert ilike_pattern("100%_done") == "%100\\%\\_done%"
    assert ilike_pattern("plain") == "%plain%"
