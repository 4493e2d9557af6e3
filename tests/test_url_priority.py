"""
tests/test_url_priority.py

URL scoring, frontier selection, link extraction and prune prefixes.
Pure functions, no I/O.
"""

from __future__ import annotations

import pytest

from cachescout.inference.url_priority import (
    extract_links,
    normalize_url,
    pick_next,
    prune_prefix,
    score_url,
    under_prefix,
)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestScoreUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://example.com", 10),
            ("https://example.com/", 10),
            ("https://example.com/cart", 7),
            ("https://example.com/checkout", 7),
            ("https://example.com/my-account", 6),
            ("https://example.com/account/orders", 5),
            ("https://example.com/shop", 5),
            ("https://example.com/product/widget", 3),
            ("https://example.com/blog", 3),
            ("https://example.com/about", 1),
            ("https://example.com/contact", 1),
            ("https://example.com/privacy-policy", 0),
            ("https://example.com/some/deep/static/page", -4),
        ],
    )
    def test_weights_minus_depth(self, url: str, expected: int) -> None:
        assert score_url(url) == expected

    def test_matching_is_case_insensitive(self) -> None:
        assert score_url("https://example.com/CART") == score_url("https://example.com/cart")

    def test_weights_are_additive(self) -> None:
        # shop (6) + product (5) - two segments
        assert score_url("https://example.com/shop/product") == 9


class TestPickNext:
    def test_root_then_cart_then_about(self) -> None:
        pending = [
            "https://example.com/about",
            "https://example.com",
            "https://example.com/cart",
        ]
        order = []
        while pending:
            url, _ = pick_next(pending)
            order.append(url)
            pending.remove(url)

        assert order == [
            "https://example.com",
            "https://example.com/cart",
            "https://example.com/about",
        ]

    def test_ties_go_to_first_seen(self) -> None:
        urls = ["https://example.com/contact", "https://example.com/about"]
        assert pick_next(urls) == ("https://example.com/contact", 1)

    def test_empty_returns_none(self) -> None:
        assert pick_next([]) is None

    def test_accepts_dict_keys(self) -> None:
        pending = {"https://example.com/about": 1, "https://example.com/shop": 1}
        assert pick_next(pending)[0] == "https://example.com/shop"


# ---------------------------------------------------------------------------
# Normalization & link extraction
# ---------------------------------------------------------------------------


class TestNormalizeUrl:
    def test_strips_trailing_slash(self) -> None:
        assert normalize_url("https://example.com/shop/") == "https://example.com/shop"

    def test_root_loses_slash(self) -> None:
        assert normalize_url("https://example.com/") == "https://example.com"

    def test_drops_query_and_fragment(self) -> None:
        assert normalize_url("https://example.com/a?b=1#c") == "https://example.com/a"


class TestExtractLinks:
    PAGE = "https://example.com/blog/post"

    def test_same_origin_only(self) -> None:
        html = '<a href="/cart">c</a><a href="https://other.org/x">o</a><a href="http://example.com/y">p</a>'
        assert extract_links(html, self.PAGE) == ["https://example.com/cart"]

    @pytest.mark.parametrize(
        "href",
        ["#top", "javascript:void(0)", "mailto:a@example.com", "tel:+123", "JavaScript:alert(1)"],
    )
    def test_skipped_schemes(self, href: str) -> None:
        assert extract_links(f'<a href="{href}">x</a>', self.PAGE) == []

    def test_relative_links_resolve_against_page(self) -> None:
        html = "<a href='related'>r</a>"
        assert extract_links(html, self.PAGE) == ["https://example.com/blog/related"]

    def test_normalized_and_deduplicated(self) -> None:
        html = '<a href="/shop/">a</a><a href="/shop">b</a><a href="/shop?page=2">c</a>'
        assert extract_links(html, self.PAGE) == ["https://example.com/shop"]

    def test_excludes_page_itself(self) -> None:
        html = '<a href="/blog/post/">self</a><a class="x" href="/about">a</a>'
        assert extract_links(html, self.PAGE) == ["https://example.com/about"]

    def test_empty_body(self) -> None:
        assert extract_links("", self.PAGE) == []


# ---------------------------------------------------------------------------
# Prune prefixes
# ---------------------------------------------------------------------------


class TestPrunePrefix:
    def test_parent_path_of_nested_url(self) -> None:
        assert prune_prefix("https://example.com/shop/item/1") == "/shop/item"

    def test_top_level_url_uses_its_own_path(self) -> None:
        assert prune_prefix("https://example.com/broken") == "/broken"

    def test_strictly_beneath(self) -> None:
        assert under_prefix("https://example.com/shop/item/2", "/shop/item")
        assert not under_prefix("https://example.com/shop/item", "/shop/item")
        assert not under_prefix("https://example.com/shop/items/2", "/shop/item")

    def test_root_prefix_never_matches(self) -> None:
        assert not under_prefix("https://example.com/anything", "/")
