"""Shared fixtures. ``backend`` is an in-process FastAPI stand-in for a
SnackBase server; ``client`` talks to it through httpx's ASGI transport and
records retry delays instead of sleeping."""

import asyncio
from itertools import count

import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from httpx import ASGITransport

from snackbase import SnackBaseClient

BASE_URL = "http://snackbase.test"


class FakeBackend:
    def __init__(self) -> None:
        self.valid_tokens: set[str] = set()
        self.refresh_tokens: set[str] = set()
        self.refresh_calls = 0
        self.refresh_delay = 0.05
        self.refresh_fails = False
        self.logout_fails = False
        self.flaky_failures = 0
        self.calls: dict[str, int] = {}
        self.last_login: dict | None = None
        self._ids = count(1)
        self.app = self._create_app()

    def issue_tokens(self) -> dict:
        n = next(self._ids)
        access, refresh = f"access-{n}", f"refresh-{n}"
        self.valid_tokens.add(access)
        self.refresh_tokens.add(refresh)
        return {
            "token": access,
            "refreshToken": refresh,
            "expiresAt": "2030-01-01T00:00:00Z",
            "user": {"id": "usr_1", "email": "ada@example.com", "role": "admin"},
            "account": {"id": "acc_1", "slug": "acme", "name": "Acme"},
        }

    def expire_access_tokens(self) -> None:
        self.valid_tokens.clear()

    def _count(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    def _require_token(self, request: Request) -> str:
        header = request.headers.get("authorization", "")
        token = header.removeprefix("Bearer ")
        if not header.startswith("Bearer ") or token not in self.valid_tokens:
            raise HTTPException(status_code=401, detail="Token expired or invalid")
        return token

    def _create_app(self) -> FastAPI:
        app = FastAPI(title="SnackBase (fake)")

        @app.post("/api/v1/auth/login")
        async def login(request: Request):
            payload = await request.json()
            self.last_login = payload
            if "@" not in payload.get("email", ""):
                return JSONResponse(
                    status_code=422,
                    content={"message": "Validation failed", "errors": {"email": ["Invalid email format"]}},
                )
            if payload.get("password") != "secret":
                return JSONResponse(status_code=401, content={"message": "Invalid credentials"})
            return self.issue_tokens()

        @app.post("/api/v1/auth/register", status_code=201)
        async def register(request: Request):
            payload = await request.json()
            return {"message": "Registered", "received": payload}

        @app.post("/api/v1/auth/refresh")
        async def refresh(request: Request):
            self.refresh_calls += 1
            payload = await request.json()
            await asyncio.sleep(self.refresh_delay)
            if self.refresh_fails or payload.get("refreshToken") not in self.refresh_tokens:
                return JSONResponse(status_code=401, content={"message": "Refresh token revoked"})
            self.refresh_tokens.discard(payload["refreshToken"])
            return self.issue_tokens()

        @app.post("/api/v1/auth/logout")
        async def logout():
            if self.logout_fails:
                return JSONResponse(status_code=503, content={"message": "Unavailable"})
            return {"ok": True}

        @app.get("/api/v1/auth/me")
        async def me(request: Request):
            self._require_token(request)
            return {"user": {"id": "usr_1", "email": "ada@example.com"}, "account": {"id": "acc_1"}}

        @app.get("/api/v1/records/items")
        async def list_items(request: Request):
            self._count("items")
            token = self._require_token(request)
            return {"items": [{"id": "itm_1"}], "token": token}

        @app.get("/api/v1/flaky")
        async def flaky():
            self._count("flaky")
            if self.flaky_failures > 0:
                self.flaky_failures -= 1
                return JSONResponse(status_code=500, content={"message": "Database unavailable"})
            return {"ok": True}

        @app.get("/api/v1/limited")
        async def limited():
            self._count("limited")
            if self.calls["limited"] == 1:
                return JSONResponse(
                    status_code=429,
                    content={"message": "Too many requests"},
                    headers={"Retry-After": "60"},
                )
            return {"ok": True}

        @app.post("/api/v1/users")
        async def create_user():
            self._count("users")
            return JSONResponse(
                status_code=422,
                content={"message": "Validation failed", "errors": {"email": ["Invalid email format"]}},
            )

        @app.get("/api/v1/collections/{name}")
        async def get_collection(name: str):
            self._count("collections")
            return JSONResponse(status_code=404, content={"message": f"Collection '{name}' not found"})

        @app.get("/api/v1/admin")
        async def admin():
            raise HTTPException(status_code=403, detail="Superadmin only")

        @app.post("/api/v1/files")
        async def upload(request: Request):
            body = await request.body()
            return {"content_type": request.headers.get("content-type"), "size": len(body)}

        @app.post("/api/v1/echo")
        async def echo(request: Request):
            return {
                "body": await request.json(),
                "content_type": request.headers.get("content-type"),
                "query": dict(request.query_params),
            }

        @app.delete("/api/v1/records/items/{item_id}", status_code=204)
        async def delete_item(item_id: str):
            return None

        return app


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
async def make_client(backend, sleeps):
    created = []

    def _make(**options) -> SnackBaseClient:
        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        options.setdefault("storage_backend", "memory")
        options.setdefault("transport", ASGITransport(app=backend.app))
        options.setdefault("sleep", fake_sleep)
        c = SnackBaseClient(BASE_URL, **options)
        created.append(c)
        return c

    yield _make
    for c in created:
        await c.aclose()


@pytest.fixture
def client(make_client):
    return make_client()
