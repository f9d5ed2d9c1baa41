"""Shared fixtures: a scripted aiohttp stand-in and an in-memory router store."""

import json
import base64
import asyncio
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional, Tuple

import aiohttp
import pytest

from database.models import RouterRecord


@dataclass
class Reply:
    status: int = 200
    headers: Optional[Dict[str, str]] = None
    body: str = ""
    delay: float = 0.0
    exc: Optional[BaseException] = None


class FakeResponse:
    def __init__(self, reply: Reply):
        self.status = reply.status
        self.headers = dict(reply.headers or {})
        self._body = reply.body

    async def text(self, errors: str = "strict") -> str:
        return self._body

    async def json(self, content_type: Any = None) -> Any:
        return json.loads(self._body)


class _RequestContext:
    def __init__(self, factory: "FakeSessionFactory", method: str, url: str, kwargs: Dict):
        self.factory = factory
        self.method = method
        self.url = url
        self.kwargs = kwargs

    async def __aenter__(self) -> FakeResponse:
        self.factory.calls.append((self.method, self.url, self.kwargs))
        reply = self.factory.resolve(self.method, self.url, self.kwargs)
        if reply.delay:
            await asyncio.sleep(reply.delay)
        if reply.exc is not None:
            raise reply.exc
        return FakeResponse(reply)

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FakeSession:
    def __init__(self, factory: "FakeSessionFactory"):
        self.factory = factory

    def head(self, url, **kwargs):
        return _RequestContext(self.factory, "HEAD", url, kwargs)

    def get(self, url, **kwargs):
        return _RequestContext(self.factory, "GET", url, kwargs)

    def post(self, url, **kwargs):
        return _RequestContext(self.factory, "POST", url, kwargs)

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FakeSessionFactory:
    """
    Drop-in for http_helper.create_router_session. Routes map a URL (and
    optionally a method) to a Reply or to a callable returning one; unknown
    URLs refuse the connection.
    """

    def __init__(self):
        self.routes: Dict[tuple, Any] = {}
        self.calls = []
        self.sessions_opened = 0

    def add(self, url: str, reply: Any = None, method: Optional[str] = None, **fields):
        self.routes[(method, url)] = reply if reply is not None else Reply(**fields)
        return self

    def resolve(self, method: str, url: str, kwargs: Dict) -> Reply:
        route = self.routes.get((method, url), self.routes.get((None, url)))
        if route is None:
            return Reply(exc=aiohttp.ClientConnectionError(f"connection refused: {url}"))
        if callable(route):
            return route(method, url, kwargs)
        return route

    def calls_for(self, method: str):
        return [c for c in self.calls if c[0] == method]

    def __call__(self, timeout_seconds: float = 5, verify_ssl: bool = True) -> FakeSession:
        self.sessions_opened += 1
        return FakeSession(self)


class InMemoryRouterStore:
    """Router persistence with the same upsert rules as the database manager"""

    def __init__(self):
        self.records: Dict[str, RouterRecord] = {}
        self.healthy = True

    async def get_router_by_user(self, user_id: str) -> Optional[RouterRecord]:
        return self.records.get(user_id)

    async def upsert_router(self, record: RouterRecord) -> bool:
        existing = self.records.get(record.user_id)
        if existing is not None:
            record = replace(
                record,
                brand=record.brand or existing.brand,
                model=record.model or existing.model,
                created_at=existing.created_at
            )
        self.records[record.user_id] = record
        return True

    async def delete_router(self, user_id: str) -> bool:
        return self.records.pop(user_id, None) is not None

    async def is_healthy(self) -> bool:
        return self.healthy


class FakeSuggester:
    """Suggestion collaborator returning a canned reply or raising"""

    def __init__(self, reply: str = "", error: Optional[BaseException] = None, cost_per_request: Optional[float] = 0.002):
        self.reply = reply
        self.error = error
        self.cost_per_request = cost_per_request
        self.requests = []

    async def suggest_credentials(self, html: str, headers: Dict[str, str]) -> str:
        self.requests.append((html, headers))
        if self.error is not None:
            raise self.error
        return self.reply


def sent_credentials(kwargs) -> Optional[Tuple[str, str]]:
    """Username and password of a request's Basic Authorization header, if any"""
    header = (kwargs.get("headers") or {}).get("Authorization")
    if not header or not header.startswith("Basic "):
        return None
    username, _, password = base64.b64decode(header[len("Basic "):]).decode("utf-8").partition(":")
    return username, password


def basic_auth_responder(valid: Callable[[str, str], bool], success_body: str, landing_html: str = "<html>Router Login</html>"):
    """GET handler: unauthenticated requests get the landing page, Basic auth is checked by valid()"""
    def respond(method, url, kwargs):
        credentials = sent_credentials(kwargs)
        if credentials is None:
            return Reply(status=200, body=landing_html, headers={"Server": "httpd"})
        if valid(*credentials):
            return Reply(status=200, body=success_body)
        return Reply(status=401, headers={"WWW-Authenticate": 'Basic realm="router"'})
    return respond


@pytest.fixture
def sessions():
    return FakeSessionFactory()


@pytest.fixture
def store():
    return InMemoryRouterStore()
