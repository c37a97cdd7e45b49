from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List

import httpx
import pytest

from accounts.models import AccountPoolState
from accounts.pool import AccountPoolController, adopt_accounts, adopt_pool
from api.client import ConsoleAPIClient
from api.errors import RemoteOperationError, ValidationError
from utils.timers import TimerRegistry

ACCOUNTS = [
    {"id": "a1", "login": "alice", "active": True, "quota": {"chat": {"percentRemaining": 80}}},
    {"id": "a2", "login": "bob", "active": True, "paused": True, "pausedReason": "manual"},
]


class FakeGateway:
    """In-memory account endpoints; ``fail`` maps "METHOD path" to an error message"""

    def __init__(self) -> None:
        self.accounts: List[Dict[str, Any]] = [dict(a) for a in ACCOUNTS]
        self.current = "a1"
        self.fail: Dict[str, str] = {}
        self.calls: List[str] = []

    def _pool(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "poolEnabled": True,
            "strategy": "sticky",
            "accounts": self.accounts,
            "currentAccountId": self.current,
            "configuredCount": len(self.accounts),
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        key = f"{request.method} {request.url.path}"
        self.calls.append(key)
        if key in self.fail:
            return httpx.Response(400, json={"status": "error", "error": self.fail[key]})

        path = request.url.path
        if key == "GET /api/accounts":
            return httpx.Response(200, json=self._pool())
        if request.method == "DELETE" and path.startswith("/api/accounts/"):
            account_id = path.rsplit("/", 1)[1]
            self.accounts = [a for a in self.accounts if a["id"] != account_id]
            if self.current == account_id:
                self.current = self.accounts[0]["id"] if self.accounts else None
            return httpx.Response(200, json={"status": "ok"})
        if path.endswith("/pause"):
            account_id = path.split("/")[3]
            paused = json.loads(request.content)["paused"]
            for account in self.accounts:
                if account["id"] == account_id:
                    account["paused"] = paused
            return httpx.Response(200, json={"status": "ok"})
        if path.endswith("/set-current"):
            self.current = path.split("/")[3]
            return httpx.Response(200, json={"status": "ok", "accounts": self.accounts, "currentAccountId": self.current})
        if key == "POST /api/accounts/refresh":
            return httpx.Response(200, json={"status": "ok", "message": "Refreshing", "accounts": self.accounts, "currentAccountId": self.current})
        if key == "POST /api/accounts/refresh-quotas":
            return httpx.Response(200, json={"status": "ok", "accounts": self.accounts})
        if key == "POST /api/pool-config":
            return httpx.Response(200, json={"status": "ok"})
        return httpx.Response(404, json={"status": "error", "error": f"unexpected {key}"})


def _controller(gateway: FakeGateway, **kwargs) -> AccountPoolController:
    api = ConsoleAPIClient(base_url="http://gateway.test", transport=httpx.MockTransport(gateway.handler))
    return AccountPoolController(api, **kwargs)


def test_refresh_adopts_pool() -> None:
    gateway = FakeGateway()
    controller = _controller(gateway)

    state = asyncio.run(controller.refresh())

    assert state.enabled is True
    assert [a.id for a in state.accounts] == ["a1", "a2"]
    assert state.current_account.label == "alice"
    assert state.configured_count == 2


def test_failed_remove_leaves_state_and_surfaces_message() -> None:
    gateway = FakeGateway()
    gateway.fail["DELETE /api/accounts/a2"] = "not found"
    controller = _controller(gateway, confirm=lambda _: True)

    async def scenario() -> None:
        await controller.refresh()
        before = controller.state
        with pytest.raises(RemoteOperationError) as excinfo:
            await controller.remove("a2")
        assert excinfo.value.message == "not found"
        assert controller.state is before

    asyncio.run(scenario())


def test_remove_requires_confirmation() -> None:
    gateway = FakeGateway()
    controller = _controller(gateway)

    async def scenario() -> None:
        await controller.refresh()
        assert await controller.remove("a2") is False
        assert await controller.remove("a2", confirm=lambda _: False) is False
        assert "DELETE /api/accounts/a2" not in gateway.calls

        async def yes(_: str) -> bool:
            return True

        assert await controller.remove("a2", confirm=yes) is True
        assert [a.id for a in controller.state.accounts] == ["a1"]

    asyncio.run(scenario())


def test_pause_refreshes_from_server() -> None:
    gateway = FakeGateway()
    controller = _controller(gateway)

    state = asyncio.run(controller.set_paused("a1", True))

    assert state.get("a1").paused is True
    assert gateway.calls[-1] == "GET /api/accounts"


def test_set_current_adopts_server_answer() -> None:
    gateway = FakeGateway()
    controller = _controller(gateway)

    async def scenario() -> AccountPoolState:
        await controller.refresh()
        return await controller.set_current("a2")

    state = asyncio.run(scenario())
    assert state.current_account_id == "a2"
    assert state.enabled is True


def test_refresh_tokens_schedules_resync() -> None:
    gateway = FakeGateway()
    timers = TimerRegistry()
    controller = _controller(gateway, timers=timers, resync_delay=0.01)

    async def scenario() -> None:
        await controller.refresh_tokens()
        assert timers.active == 1
        await asyncio.sleep(0.1)

    asyncio.run(scenario())
    assert gateway.calls == ["POST /api/accounts/refresh", "GET /api/accounts"]
    assert controller.state.configured_count == 2


def test_refresh_quotas_keeps_current_and_pool_config() -> None:
    gateway = FakeGateway()
    controller = _controller(gateway)

    async def scenario() -> AccountPoolState:
        await controller.refresh()
        return await controller.refresh_quotas()

    state = asyncio.run(scenario())
    assert state.current_account_id == "a1"
    assert state.strategy == "sticky"


def test_update_pool_config() -> None:
    gateway = FakeGateway()
    controller = _controller(gateway)

    state = asyncio.run(controller.update_pool_config(False, " round-robin "))
    assert state.enabled is False
    assert state.strategy == "round-robin"

    with pytest.raises(ValidationError):
        asyncio.run(controller.update_pool_config(True, "  "))


def test_failed_pool_config_keeps_state() -> None:
    gateway = FakeGateway()
    gateway.fail["POST /api/pool-config"] = "Invalid strategy"
    controller = _controller(gateway)

    with pytest.raises(RemoteOperationError, match="Invalid strategy"):
        asyncio.run(controller.update_pool_config(True, "bogus"))
    assert controller.state == AccountPoolState()


def test_adopt_rejects_dangling_current_account() -> None:
    with pytest.raises(RemoteOperationError):
        adopt_pool({"accounts": [{"id": "a1"}], "currentAccountId": "zz"})


def test_adopt_rejects_duplicate_ids() -> None:
    with pytest.raises(RemoteOperationError):
        adopt_pool({"accounts": [{"id": "a1"}, {"id": "a1"}]})


def test_adopt_accounts_without_current_drops_vanished_current() -> None:
    state = adopt_pool({"accounts": [{"id": "a1"}, {"id": "a2"}], "currentAccountId": "a2", "poolEnabled": True})
    state = adopt_accounts(state, {"accounts": [{"id": "a1"}]}, with_current=False)
    assert state.current_account_id is None
    assert state.enabled is True


def test_adopt_accounts_keeps_cached_accounts_when_response_omits_them() -> None:
    state = adopt_pool({"accounts": [{"id": "a1"}, {"id": "a2"}], "currentAccountId": "a2", "poolEnabled": True})
    after = adopt_accounts(state, {"message": "Refreshing tokens"})
    assert [a.id for a in after.accounts] == ["a1", "a2"]
    assert after.current_account_id == "a2"

    after = adopt_accounts(state, {"currentAccountId": "a1"})
    assert [a.id for a in after.accounts] == ["a1", "a2"]
    assert after.current_account_id == "a1"


def test_refresh_tokens_without_accounts_payload_keeps_cache() -> None:
    gateway = FakeGateway()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/accounts/refresh":
            gateway.calls.append("POST /api/accounts/refresh")
            return httpx.Response(200, json={"status": "ok", "message": "Refreshing"})
        return gateway.handler(request)

    api = ConsoleAPIClient(base_url="http://gateway.test", transport=httpx.MockTransport(handler))
    controller = AccountPoolController(api, resync_delay=60)

    async def scenario() -> AccountPoolState:
        await controller.refresh()
        state = await controller.refresh_tokens()
        controller.timers.cancel_all()
        return state

    state = asyncio.run(scenario())
    assert [a.id for a in state.accounts] == ["a1", "a2"]
    assert state.current_account_id == "a1"
