"""
Validation of credential suggestions returned by the suggestion collaborator.

The collaborator is untrusted: its reply is free text that should contain a
JSON object like

    {"brand": "Linksys", "confidence": 85,
     "credentials": [{"username": "admin", "password": "admin", "reason": "..."}]}

Anything that does not reduce to at least one well-formed guess is reported
as MalformedSuggestions, and callers fall back to FALLBACK_GUESSES.
"""

import re
import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .models import CredentialGuess

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

# Most common factory defaults, always available
FALLBACK_GUESSES: Tuple[CredentialGuess, ...] = (
    CredentialGuess(username="admin", password="admin", rationale="Most common default", rank=1),
    CredentialGuess(username="admin", password="password", rationale="Common alternative", rank=2),
    CredentialGuess(username="admin", password="", rationale="Blank password", rank=3),
)


@dataclass(frozen=True)
class ParsedSuggestions:
    guesses: Tuple[CredentialGuess, ...]
    brand: Optional[str] = None
    confidence: Optional[float] = None


@dataclass(frozen=True)
class MalformedSuggestions:
    reason: str
    raw_excerpt: str = ""


SuggestionParse = Union[ParsedSuggestions, MalformedSuggestions]


def parse_suggestions(raw: Optional[str], max_guesses: int = 5) -> SuggestionParse:
    """Reduce a collaborator reply to ranked guesses, or say why it can't"""
    if not raw or not isinstance(raw, str):
        return MalformedSuggestions(reason="empty response")

    excerpt = raw[:200]
    match = _JSON_OBJECT.search(raw)
    if not match:
        return MalformedSuggestions(reason="no JSON object in response", raw_excerpt=excerpt)

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        return MalformedSuggestions(reason=f"invalid JSON: {e.msg}", raw_excerpt=excerpt)

    if not isinstance(payload, dict):
        return MalformedSuggestions(reason="response is not an object", raw_excerpt=excerpt)

    entries = payload.get('credentials')
    if not isinstance(entries, list) or not entries:
        return MalformedSuggestions(reason="missing credentials list", raw_excerpt=excerpt)

    guesses: List[CredentialGuess] = []
    seen = set()
    for entry in entries:
        if not isinstance(entry, dict):
            return MalformedSuggestions(reason="credential entry is not an object", raw_excerpt=excerpt)

        username = entry.get('username')
        password = entry.get('password', '')
        if password is None:
            password = ''
        elif isinstance(password, int) and not isinstance(password, bool):
            # Numeric PINs such as 1234 often come back unquoted
            password = str(password)
        if not isinstance(username, str) or not username or not isinstance(password, str):
            return MalformedSuggestions(reason="credential entry lacks string username/password", raw_excerpt=excerpt)

        # Identical pairs would repeat a live login attempt
        if (username, password) in seen:
            continue
        seen.add((username, password))

        rationale = entry.get('reason') or entry.get('rationale') or ''
        guesses.append(CredentialGuess(
            username=username,
            password=password,
            rationale=str(rationale),
            rank=len(guesses) + 1
        ))
        if len(guesses) >= max_guesses:
            break

    brand = payload.get('brand')
    confidence = payload.get('confidence')
    return ParsedSuggestions(
        guesses=tuple(guesses),
        brand=brand if isinstance(brand, str) and brand else None,
        confidence=float(confidence) if isinstance(confidence, (int, float)) and not isinstance(confidence, bool) else None
    )
