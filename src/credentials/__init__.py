"""
Credential testing and smart login
"""

from .models import (
    CredentialGuess,
    CredentialTestResult,
    SmartLoginResult,
    CredentialAnalysis,
    SOURCE_COLLABORATOR,
    SOURCE_FALLBACK,
    SOURCE_SUPPLIED,
)
from .suggestions import (
    FALLBACK_GUESSES,
    ParsedSuggestions,
    MalformedSuggestions,
    parse_suggestions,
)
from .tester import CredentialTester, classify_login_response
from .smart_login import SmartLogin
from .suggestion_client import GenerativeSuggestionClient, create_suggestion_client

__all__ = [
    'CredentialGuess',
    'CredentialTestResult',
    'SmartLoginResult',
    'CredentialAnalysis',
    'SOURCE_COLLABORATOR',
    'SOURCE_FALLBACK',
    'SOURCE_SUPPLIED',
    'FALLBACK_GUESSES',
    'ParsedSuggestions',
    'MalformedSuggestions',
    'parse_suggestions',
    'CredentialTester',
    'classify_login_response',
    'SmartLogin',
    'GenerativeSuggestionClient',
    'create_suggestion_client',
]
