"""
Tests for locator normalization, unwrapping and proxy rewriting.
"""

import logging
import re

import pytest

from locator_resolver.utils.url import (
    UnwrapRegistry,
    UnwrapRule,
    absolutize,
    add_cache_buster,
    build_default_registry,
    canonicalize,
    encode_component,
    is_wire_encoded,
    proxy_rewrite,
    unwrap_platform_locator,
)


class TestCanonicalize:
    """Test cache key derivation."""

    @pytest.mark.parametrize(
        "locator,expected",
        [
            ("https://a.example/x.jpg?w=400&_t=1700000000", "https://a.example/x.jpg?w=400"),
            ("https://a.example/x.jpg?_=1&cachebust=2&timestamp=3&_ts=4", "https://a.example/x.jpg"),
            ("https://a.example/x.jpg#section", "https://a.example/x.jpg"),
            ("https://a.example/x.jpg?b=2&a=1", "https://a.example/x.jpg?b=2&a=1"),
            ("https://a.example/x.jpg?q=a%20b&_t=9#frag", "https://a.example/x.jpg?q=a%20b"),
            ("", ""),
        ],
    )
    def test_canonical_form(self, locator, expected):
        assert canonicalize(locator) == expected

    def test_idempotent(self):
        locators = [
            "https://a.example/x.jpg?w=400&_t=1&h=3#f",
            "https://a.example/x.jpg?",
            "/relative/img.png?_t=5",
            "https://a.example/x.jpg?a=&&b",
        ]
        for locator in locators:
            once = canonicalize(locator)
            assert canonicalize(once) == once

    def test_volatile_variants_share_key(self):
        assert canonicalize("https://a.example/x.jpg?_t=1") == canonicalize(
            "https://a.example/x.jpg?_t=2"
        )

    def test_meaningful_parameters_distinguish_keys(self):
        assert canonicalize("https://a.example/x.jpg?w=1") != canonicalize(
            "https://a.example/x.jpg?w=2"
        )


class TestUnwrap:
    """Test the built-in unwrap rules."""

    def test_baidu_baike_picture_page(self):
        locator = "https://baike.baidu.com/pic/Item/123?pic=https%3A%2F%2Fcdn.example%2Fa.jpg"

        assert unwrap_platform_locator(locator) == "https://cdn.example/a.jpg"

    def test_baidu_cdn_processing_suffix(self):
        locator = "https://bkimg.cdn.bcebos.com/pic/abc123?x-bce-process=image/resize,m_lfit,w_536"

        assert unwrap_platform_locator(locator) == "https://bkimg.cdn.bcebos.com/pic/abc123"

    def test_wikimedia_thumbnail(self):
        locator = (
            "https://upload.wikimedia.org/wikipedia/commons/thumb/a/ab/Foo.jpg/220px-Foo.jpg"
        )

        assert (
            unwrap_platform_locator(locator)
            == "https://upload.wikimedia.org/wikipedia/commons/a/ab/Foo.jpg"
        )

    def test_github_blob(self):
        locator = "https://github.com/owner/repo/blob/main/docs/logo.png"

        assert (
            unwrap_platform_locator(locator)
            == "https://raw.githubusercontent.com/owner/repo/main/docs/logo.png"
        )

    def test_embedded_url_parameter(self):
        locator = "https://viewer.example/show?u=https%3A%2F%2Fcdn.example%2Fb.png&size=l"

        assert unwrap_platform_locator(locator) == "https://cdn.example/b.png"

    def test_embedded_url_skips_relative_values(self):
        locator = "https://wrap.example/view?src=thumb.jpg&url=https%3A%2F%2Fcdn.example%2Fa.jpg"

        assert unwrap_platform_locator(locator) == "https://cdn.example/a.jpg"

    @pytest.mark.parametrize(
        "locator",
        [
            "https://plain.example/a.jpg",
            "https://bkimg.cdn.bcebos.com/pic/abc123",
            "https://viewer.example/show?u=not-a-url",
            "",
        ],
    )
    def test_no_match(self, locator):
        assert unwrap_platform_locator(locator) is None

    def test_default_rule_order(self):
        names = [rule.name for rule in build_default_registry().rules]

        assert names == [
            "baidu_baike_pic",
            "baidu_image_cdn",
            "wikimedia_thumbnail",
            "github_blob",
            "embedded_url_param",
        ]


class TestUnwrapRegistry:
    """Test registering custom rules."""

    @pytest.fixture
    def cdn_rule(self):
        return UnwrapRule(
            "example_cdn",
            re.compile(r"^https://cdn\.example/resize/\d+/(.+)$"),
            lambda match, locator: f"https://cdn.example/{match.group(1)}",
        )

    def test_custom_rule(self, cdn_rule):
        registry = UnwrapRegistry([cdn_rule])

        assert registry.unwrap("https://cdn.example/resize/200/a.png") == "https://cdn.example/a.png"
        assert unwrap_platform_locator("https://cdn.example/resize/200/a.png", registry) == (
            "https://cdn.example/a.png"
        )
        assert unwrap_platform_locator("https://cdn.example/resize/200/a.png") is None

    def test_register_first_takes_priority(self, cdn_rule):
        registry = build_default_registry()
        registry.register(cdn_rule, first=True)

        assert registry.rules[0].name == "example_cdn"
        assert len(registry) == 6

    def test_register_replaces_same_name(self, cdn_rule):
        registry = UnwrapRegistry([cdn_rule])
        registry.register(
            UnwrapRule("example_cdn", re.compile(r"never-matches"), lambda m, loc: None)
        )

        assert len(registry) == 1
        assert registry.unwrap("https://cdn.example/resize/200/a.png") is None

    def test_unregister(self):
        registry = build_default_registry()

        assert registry.unregister("github_blob") is True
        assert registry.unregister("github_blob") is False
        assert registry.unwrap("https://github.com/o/r/blob/main/a.png") is None

    def test_identity_rewrite_is_no_match(self):
        registry = UnwrapRegistry(
            [UnwrapRule("identity", re.compile(r".*"), lambda match, locator: locator)]
        )

        assert registry.unwrap("https://a.example/x.png") is None

    @pytest.mark.parametrize("error", [IndexError("no such group"), RuntimeError("rule bug")])
    def test_failing_rewrite_is_no_match(self, error, caplog):
        def broken(match, locator):
            raise error

        registry = UnwrapRegistry([UnwrapRule("broken", re.compile(r"x"), broken)])

        with caplog.at_level(logging.WARNING):
            assert registry.unwrap("https://a.example/x.png") is None
            assert unwrap_platform_locator("https://a.example/x.png", registry) is None

        assert "broken" in caplog.text

    def test_failing_rule_does_not_hide_later_rules(self):
        def broken(match, locator):
            raise RuntimeError("rule bug")

        registry = build_default_registry()
        registry.register(UnwrapRule("broken", re.compile(r"github"), broken), first=True)

        assert registry.unwrap("https://github.com/o/r/blob/main/a.png") == (
            "https://raw.githubusercontent.com/o/r/main/a.png"
        )

    def test_non_string_rewrite_is_no_match(self):
        registry = UnwrapRegistry(
            [UnwrapRule("bytes", re.compile(r"x"), lambda match, locator: locator.encode())]
        )

        assert registry.unwrap("https://a.example/x.png") is None


class TestRewrites:
    """Test proxy, cache-buster and base URL helpers."""

    def test_proxy_rewrite_appends_encoded_locator(self):
        assert (
            proxy_rewrite("https://dead.example/a.jpg", "https://proxy.example/?u=")
            == "https://proxy.example/?u=https%3A%2F%2Fdead.example%2Fa.jpg"
        )

    def test_proxy_rewrite_template_placeholders(self):
        locator = "https://dead.example/a b.jpg"

        assert proxy_rewrite(locator, "https://p.example/fetch?src={url}&w=300") == (
            "https://p.example/fetch?src=https%3A%2F%2Fdead.example%2Fa%20b.jpg&w=300"
        )
        assert proxy_rewrite(locator, "https://cors.example/{raw}") == (
            "https://cors.example/https://dead.example/a b.jpg"
        )

    def test_encode_component_matches_uri_component_rules(self):
        assert encode_component("a b/c?d=e&f") == "a%20b%2Fc%3Fd%3De%26f"
        assert encode_component("keep-_.!~*'()") == "keep-_.!~*'()"
        assert encode_component("图") == "%E5%9B%BE"

    def test_add_cache_buster(self):
        assert add_cache_buster("https://a.example/x.jpg", "17") == "https://a.example/x.jpg?_t=17"
        assert add_cache_buster("https://a.example/x.jpg?w=1", "17") == (
            "https://a.example/x.jpg?w=1&_t=17"
        )
        assert add_cache_buster("https://a.example/x.jpg#top", "17") == (
            "https://a.example/x.jpg?_t=17#top"
        )

    def test_cache_busted_locator_canonicalizes_back(self):
        locator = "https://a.example/x.jpg?w=1"

        assert canonicalize(add_cache_buster(locator, "99")) == locator

    def test_is_wire_encoded(self):
        assert is_wire_encoded("https://p.example/?u=https%3A%2F%2Fa.example%2Fx.jpg&_t=1")
        assert is_wire_encoded("https://a.example/img(1).jpg#top")
        assert not is_wire_encoded("https://a.example/a b.jpg")
        assert not is_wire_encoded("https://a.example/图.jpg")
        assert not is_wire_encoded("https://a.example/x.jpg?q=\"quoted\"")

    def test_absolutize(self):
        assert absolutize("/img/a.png", "https://site.example/page/") == (
            "https://site.example/img/a.png"
        )
        assert absolutize("a.png", "https://site.example/page/") == (
            "https://site.example/page/a.png"
        )
        assert absolutize("https://other.example/a.png", "https://site.example/") == (
            "https://other.example/a.png"
        )
        assert absolutize("/img/a.png") == "/img/a.png"
