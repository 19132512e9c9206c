"""
Locator normalization utilities.

This module produces canonical cache keys for locators, extracts inner
targets from platform wrapper URLs through a registry of unwrap rules, and
builds proxy and cache-busting rewrites. Everything here is pure: no I/O and
no exceptions beyond returning None when nothing matches.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Match, Optional, Pattern
from urllib.parse import parse_qsl, quote, unquote, unquote_plus, urljoin, urlsplit

logger = logging.getLogger(__name__)

# Query parameters that only defeat caches and never select a resource
VOLATILE_PARAMS = frozenset({"_t", "_ts", "timestamp", "_", "cachebust"})

CACHE_BUSTER_PARAM = "_t"

# Characters left alone by JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"

_EMBEDDED_URL_PARAMS = ("url", "u", "imgurl", "src", "image_url")

# Characters that may appear unescaped in an already-encoded URL
_WIRE_SAFE = re.compile(r"^[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]*$")


def canonicalize(locator: str) -> str:
    """
    Return the cache key for a locator.

    Volatile query parameters and the fragment are removed. Every other query
    segment is kept byte-for-byte and in order, so the result is idempotent:
    ``canonicalize(canonicalize(x)) == canonicalize(x)``.

    Args:
        locator: Absolute or relative locator

    Returns:
        Canonical key string

    Example:
        ```python
        canonicalize("https://a.example/x.jpg?w=400&_t=1700000000")
        # Returns: "https://a.example/x.jpg?w=400"
        ```
    """
    if not locator:
        return locator

    without_fragment = locator.split("#", 1)[0]
    path, sep, query = without_fragment.partition("?")
    if not sep:
        return path

    kept = [
        segment
        for segment in query.split("&")
        if segment and unquote_plus(segment.partition("=")[0]) not in VOLATILE_PARAMS
    ]
    return f"{path}?{'&'.join(kept)}" if kept else path


def add_cache_buster(locator: str, token: str) -> str:
    """Append the cache-busting parameter, keeping any fragment last."""
    base, hash_sign, fragment = locator.partition("#")
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{CACHE_BUSTER_PARAM}={token}{hash_sign}{fragment}"


def absolutize(locator: str, base_url: Optional[str] = None) -> str:
    """
    Resolve a relative locator against a base URL.

    Absolute locators, and relative ones without a base, are returned as is.
    """
    if not locator or urlsplit(locator).scheme:
        return locator
    if not base_url:
        return locator
    return urljoin(base_url, locator)


def encode_component(value: str) -> str:
    """Percent-encode a value the way encodeURIComponent does."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def is_wire_encoded(locator: str) -> bool:
    """Check if a locator can be sent as is, without further percent-encoding."""
    return bool(_WIRE_SAFE.match(locator))


def proxy_rewrite(locator: str, template: str) -> str:
    """
    Rewrite a locator through a proxy endpoint template.

    ``{url}`` in the template is replaced with the percent-encoded locator and
    ``{raw}`` with the locator itself; templates without a placeholder get
    the encoded locator appended.

    Example:
        ```python
        proxy_rewrite("https://dead.example/a.jpg", "https://proxy.example/?u=")
        # Returns: "https://proxy.example/?u=https%3A%2F%2Fdead.example%2Fa.jpg"
        ```
    """
    encoded = encode_component(locator)
    if "{url}" in template or "{raw}" in template:
        return template.replace("{url}", encoded).replace("{raw}", locator)
    return f"{template}{encoded}"


def _first_absolute_query_value(locator: str, names: Iterable[str]) -> Optional[str]:
    params = parse_qsl(urlsplit(locator).query, keep_blank_values=False)
    wanted = set(names)
    for key, value in params:
        if key.lower() in wanted and value.startswith(("http://", "https://")):
            return value
    return None


@dataclass(frozen=True)
class UnwrapRule:
    """A wrapper pattern and the rewrite producing its inner target."""

    name: str
    pattern: Pattern[str]
    rewrite: Callable[[Match[str], str], Optional[str]]

    def apply(self, locator: str) -> Optional[str]:
        """Return the inner target, or None when the rule does not apply."""
        match = self.pattern.search(locator)
        if not match:
            return None
        try:
            result = self.rewrite(match, locator)
        except Exception as e:
            logger.warning(f"Unwrap rule {self.name} failed on {locator[:80]}: {e}")
            return None
        if not isinstance(result, str):
            return None
        return result or None


class UnwrapRegistry:
    """
    Ordered collection of unwrap rules.

    Rules are tried in registration order and the first one producing a
    locator different from its input wins. New source platforms are
    supported by registering another rule.
    """

    def __init__(self, rules: Iterable[UnwrapRule] = ()) -> None:
        self._rules: List[UnwrapRule] = []
        for rule in rules:
            self.register(rule)

    @property
    def rules(self) -> List[UnwrapRule]:
        return list(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def register(self, rule: UnwrapRule, first: bool = False) -> None:
        """
        Add a rule, replacing any existing rule with the same name.

        Args:
            rule: Rule to add
            first: Give the rule the highest priority instead of the lowest
        """
        self.unregister(rule.name)
        if first:
            self._rules.insert(0, rule)
        else:
            self._rules.append(rule)

    def unregister(self, name: str) -> bool:
        """Remove a rule by name. Returns True when a rule was removed."""
        before = len(self._rules)
        self._rules = [rule for rule in self._rules if rule.name != name]
        return len(self._rules) != before

    def unwrap(self, locator: str) -> Optional[str]:
        """Return the inner target of a wrapper locator, or None."""
        if not locator:
            return None
        for rule in self._rules:
            result = rule.apply(locator)
            if result and result != locator:
                return result
        return None


def _baidu_baike_pic(match: Match[str], locator: str) -> Optional[str]:
    return unquote(match.group(1))


def _strip_query(match: Match[str], locator: str) -> Optional[str]:
    return locator.split("?", 1)[0]


def _wikimedia_original(match: Match[str], locator: str) -> Optional[str]:
    return f"{match.group(1)}/{match.group(2)}"


def _github_raw(match: Match[str], locator: str) -> Optional[str]:
    owner, repo, rest = match.groups()
    return f"https://raw.githubusercontent.com/{owner}/{repo}/{rest}"


def _embedded_url(match: Match[str], locator: str) -> Optional[str]:
    return _first_absolute_query_value(locator, _EMBEDDED_URL_PARAMS)


def default_unwrap_rules() -> List[UnwrapRule]:
    """Build the built-in unwrap rules, most specific first."""
    return [
        UnwrapRule(
            "baidu_baike_pic",
            re.compile(r"baike\.baidu\.com/pic/.*?[?&]pic=([^&#]+)"),
            _baidu_baike_pic,
        ),
        UnwrapRule(
            "baidu_image_cdn",
            re.compile(r"^https?://(?:bkimg\.cdn\.bcebos\.com|baikebcs\.bdimg\.com)/[^?]*\?"),
            _strip_query,
        ),
        UnwrapRule(
            "wikimedia_thumbnail",
            re.compile(
                r"^(https?://upload\.wikimedia\.org/[^?#]+?)/thumb/"
                r"([0-9a-f]/[0-9a-f]{2}/[^/?#]+)/[^/?#]+(?:[?#].*)?$"
            ),
            _wikimedia_original,
        ),
        UnwrapRule(
            "github_blob",
            re.compile(r"^https?://github\.com/([^/]+)/([^/]+)/blob/([^?#]+)"),
            _github_raw,
        ),
        UnwrapRule(
            "embedded_url_param",
            re.compile(r"[?&](?:url|u|imgurl|src|image_url)=https?(?::|%3A)", re.IGNORECASE),
            _embedded_url,
        ),
    ]


def build_default_registry() -> UnwrapRegistry:
    """Create a registry holding the built-in rules."""
    return UnwrapRegistry(default_unwrap_rules())


_default_registry = build_default_registry()


def unwrap_platform_locator(
    locator: str, registry: Optional[UnwrapRegistry] = None
) -> Optional[str]:
    """
    Extract the inner target of a platform wrapper locator.

    Args:
        locator: Candidate locator
        registry: Rules to use (the built-in rules if None)

    Returns:
        The inner locator, or None when no rule matched or the rewrite would
        not change the locator

    Example:
        ```python
        unwrap_platform_locator(
            "https://baike.baidu.com/pic/x/1?pic=https%3A%2F%2Fcdn.example%2Fa.jpg"
        )
        # Returns: "https://cdn.example/a.jpg"
        ```
    """
    return (registry or _default_registry).unwrap(locator)
