"""
Credential suggestion client for a generateContent-style text model API.
Returns the model's raw text; validation happens in credentials.suggestions
"""

import os
import json
import logging
from typing import Dict, Optional

import aiohttp

from errors import RouterServerError
from http_helper import create_service_session

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """You are a router security expert. Analyze this router's login page and identify the brand, then suggest the 3-5 most likely default credential combinations to try.

ROUTER LOGIN PAGE:
{html}

HTTP HEADERS:
{headers}

Based on this information:
1. Identify the router brand (Linksys, Netgear, D-Link, TP-Link, ASUS, Belkin, Apple, Cisco, Huawei, etc.)
2. Suggest 3-5 most likely username/password combinations for this specific router brand
3. Order them by likelihood of success
4. Explain your reasoning for each suggestion

Respond in this JSON format:
{{
  "brand": "detected_brand",
  "confidence": 85,
  "credentials": [
    {{"username": "admin", "password": "admin", "reason": "Default for most Linksys routers"}},
    {{"username": "admin", "password": "", "reason": "Common blank password for this brand"}}
  ]
}}"""


class SuggestionServiceError(RouterServerError):
    """The suggestion service answered with an error or an empty reply"""


class GenerativeSuggestionClient:
    """Asks a hosted text model for ranked default credentials"""

    def __init__(self, config: Dict):
        self.config = config
        self.base_url = config.get('base_url', 'https://generativelanguage.googleapis.com/v1beta').rstrip('/')
        self.model = config.get('model', 'gemini-2.5-flash')
        self.api_key = config.get('api_key') or os.getenv('SUGGESTION_API_KEY')
        self.timeout_seconds = config.get('timeout_seconds', 30)
        self.cost_per_request = config.get('cost_per_request')
        self.html_excerpt_chars = config.get('html_excerpt_chars', 2000)
        self.temperature = config.get('temperature', 0.2)

        if not self.api_key:
            logger.warning("No suggestion API key configured - smart login will use fallback credentials")

    def build_prompt(self, html: str, headers: Dict[str, str]) -> str:
        return PROMPT_TEMPLATE.format(
            html=(html or '')[:self.html_excerpt_chars],
            headers=json.dumps(dict(headers or {}), indent=2)
        )

    async def suggest_credentials(self, html: str, headers: Dict[str, str]) -> str:
        """Return the model's text reply; raises SuggestionServiceError on service failure"""
        if not self.api_key:
            raise SuggestionServiceError("suggestion API key not configured")

        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": self.build_prompt(html, headers)}]}],
            "generationConfig": {"temperature": self.temperature}
        }

        logger.debug(f"Requesting credential suggestions from {self.model}")
        async with create_service_session(self.timeout_seconds) as session:
            async with session.post(url, params={'key': self.api_key}, json=body) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise SuggestionServiceError(f"suggestion API error: {response.status} - {error_text[:200]}")
                data = await response.json(content_type=None)

        try:
            return data['candidates'][0]['content']['parts'][0]['text']
        except (KeyError, IndexError, TypeError):
            raise SuggestionServiceError("no candidates in suggestion API response")


def create_suggestion_client(config: Dict) -> Optional[GenerativeSuggestionClient]:
    """Build the client from the suggestions config section, or None when disabled"""
    if not config.get('enabled', True):
        logger.info("Credential suggestions disabled - smart login uses fallback credentials")
        return None
    return GenerativeSuggestionClient(config)
