"""
Content heuristics shared by endpoint probing and credential testing
"""

import re
from typing import FrozenSet, Iterable, Optional, Tuple

AUTH_CHALLENGE = "auth-challenge"

# Tokens that suggest a router management page
ROUTER_PAGE_TOKENS: Tuple[str, ...] = (
    "login", "admin", "wireless", "password", "config", "setup"
)

# Tokens that only appear once past the login screen
ADMIN_INTERFACE_TOKENS: Tuple[str, ...] = (
    "admin", "settings", "configuration", "wireless"
)

# (token, brand) in match priority order
BRAND_TOKENS: Tuple[Tuple[str, str], ...] = (
    ("linksys", "Linksys"),
    ("netgear", "Netgear"),
    ("d-link", "D-Link"),
    ("tp-link", "TP-Link"),
    ("tplink", "TP-Link"),
    ("asus", "ASUS"),
    ("belkin", "Belkin"),
    ("airport", "Apple"),
    ("cisco", "Cisco"),
    ("huawei", "Huawei"),
    ("mikrotik", "MikroTik"),
    ("ubiquiti", "Ubiquiti"),
    ("arris", "Arris"),
    ("zte", "ZTE"),
)

# Tokens this short must also end on a word boundary
SHORT_TOKEN_LENGTH = 3


def _brand_pattern(token: str) -> re.Pattern:
    """Token anchored to the start of a word, and to its end when short"""
    pattern = re.escape(token)
    if token[:1].isalnum():
        pattern = r"\b" + pattern
    if len(token) <= SHORT_TOKEN_LENGTH and token[-1:].isalnum():
        pattern += r"\b"
    return re.compile(pattern)


class ContentClassifier:
    """Case-insensitive token matching over headers and page bodies"""

    def __init__(
        self,
        page_tokens: Iterable[str] = ROUTER_PAGE_TOKENS,
        brand_tokens: Iterable[Tuple[str, str]] = BRAND_TOKENS,
        admin_tokens: Iterable[str] = ADMIN_INTERFACE_TOKENS
    ):
        self.page_tokens = tuple(t.lower() for t in page_tokens)
        self.brand_tokens = tuple((_brand_pattern(t.lower()), brand) for t, brand in brand_tokens)
        self.admin_tokens = tuple(t.lower() for t in admin_tokens)

    def detect_brand(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        lowered = text.lower()
        for pattern, brand in self.brand_tokens:
            if pattern.search(lowered):
                return brand
        return None

    def signals(self, text: Optional[str]) -> FrozenSet[str]:
        """Heuristic tags found in text: page tokens plus 'brand:<name>'"""
        if not text:
            return frozenset()
        lowered = text.lower()
        found = {token for token in self.page_tokens if token in lowered}
        brand = self.detect_brand(lowered)
        if brand:
            found.add(f"brand:{brand.lower()}")
        return frozenset(found)

    def admin_indicator(self, text: Optional[str]) -> Optional[str]:
        """First admin-interface token present in text, or None"""
        if not text:
            return None
        lowered = text.lower()
        for token in self.admin_tokens:
            if token in lowered:
                return token
        return None
