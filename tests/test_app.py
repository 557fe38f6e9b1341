from __future__ import annotations

import pytest
from aiohttp.test_utils import TestClient, TestServer

from app import create_app
from settings import load_settings

from conftest import REPO_DIALOGS


@pytest.fixture
def settings():
    return load_settings({"DIALOGS_ROOT": str(REPO_DIALOGS)})


@pytest.mark.asyncio
async def test_health_and_dialog_diagnostics(settings) -> None:
    async with TestClient(TestServer(create_app(settings))) as client:
        resp = await client.get("/health")
        assert resp.status == 200
        assert await resp.json() == {"ok": True}

        resp = await client.get("/diag/dialogs")
        body = await resp.json()
        assert body["root"] == "greeting"
        assert body["dialogs"]["greeting"]["steps"] == ["name", "age", "confirm"]


@pytest.mark.asyncio
async def test_messages_requires_json(settings) -> None:
    async with TestClient(TestServer(create_app(settings))) as client:
        resp = await client.post("/api/messages", data="hello", headers={"Content-Type": "text/plain"})

        assert resp.status == 415
