"""HTTP client for the gateway console REST API and push streams"""

import logging
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple

import httpx

from settings import (
    CONSOLE_BASE_URL,
    CONSOLE_API_PREFIX,
    CONNECT_TIMEOUT,
    REQUEST_TIMEOUT,
    OAUTH_COMPLETE_TIMEOUT,
)
from streaming.sse_parser import SSEEvent, SSEParser
from .errors import AuthenticationError, RemoteOperationError, SessionExpiredError

logger = logging.getLogger(__name__)


class ConsoleAPIClient:
    """Async client for the gateway's ``/api`` surface

    Every response is a JSON envelope ``{"status": "ok" | "error", ...}``.
    An HTTP 401 from any call except ``POST /login`` means the console session
    expired: ``on_session_expired`` is invoked before ``SessionExpiredError``
    is raised, so teardown happens ahead of any caller-side error handling.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_prefix: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_session_expired: Optional[Callable[[], None]] = None,
    ):
        self.base_url = (base_url or CONSOLE_BASE_URL).rstrip("/")
        prefix = CONSOLE_API_PREFIX if api_prefix is None else api_prefix
        self.api_prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
        self.on_session_expired = on_session_expired
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}{self.api_prefix}",
            timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ConsoleAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _session_expired(self) -> None:
        logger.warning("Backend answered 401, console session expired")
        if self.on_session_expired is not None:
            self.on_session_expired()
        raise SessionExpiredError()

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        allow_unauthorized: bool = False,
    ) -> Tuple[httpx.Response, Dict[str, Any]]:
        """Issue a request and decode the JSON envelope

        Returns:
            Tuple of (response, decoded body)
        """
        kwargs: Dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v not in (None, "")}
        if timeout is not None:
            kwargs["timeout"] = httpx.Timeout(timeout, connect=CONNECT_TIMEOUT)

        logger.debug(f"{method} {self.api_prefix}{path}")
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise RemoteOperationError(f"Request failed: {e}") from e

        if response.status_code == 401 and not allow_unauthorized:
            self._session_expired()

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteOperationError(
                f"Invalid response from {path} (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise RemoteOperationError(
                f"Unexpected response shape from {path}",
                status_code=response.status_code,
            )
        return response, data

    async def request_json(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Issue a request and return the decoded envelope without checking ``status``"""
        _, data = await self._send(method, path, **kwargs)
        return data

    async def call(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Issue a request and require ``status == "ok"``

        Raises:
            RemoteOperationError: carrying the server-supplied ``error`` text
            SessionExpiredError: on HTTP 401
        """
        response, data = await self._send(method, path, **kwargs)
        if data.get("status") != "ok":
            message = data.get("error") or f"{method} {path} failed (HTTP {response.status_code})"
            raise RemoteOperationError(str(message), status_code=response.status_code)
        return data

    async def stream_events(self, path: str) -> AsyncIterator[SSEEvent]:
        """Open a server-sent event stream and yield parsed events until it closes"""
        parser = SSEParser()
        async with self._client.stream(
            "GET",
            path,
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            timeout=httpx.Timeout(None, connect=CONNECT_TIMEOUT),
        ) as response:
            if response.status_code == 401:
                self._session_expired()
            if response.status_code != 200:
                raise RemoteOperationError(
                    f"Stream {path} answered HTTP {response.status_code}",
                    status_code=response.status_code,
                )
            async for chunk in response.aiter_text():
                for event in parser.feed(chunk):
                    yield event

    # Authentication

    async def auth_status(self) -> Dict[str, Any]:
        return await self.request_json("GET", "/auth-status")

    async def login(self, password: str) -> Dict[str, Any]:
        """Log in to the WebUI; a 401 here means a wrong password, not an expired session"""
        response, data = await self._send(
            "POST", "/login", json={"password": password}, allow_unauthorized=True
        )
        if response.status_code == 401 or data.get("status") == "error":
            raise AuthenticationError(data.get("error") or "Invalid password")
        return data

    async def logout(self) -> Dict[str, Any]:
        return await self.request_json("POST", "/logout")

    # Dashboard data

    async def get_status(self) -> Dict[str, Any]:
        return await self.call("GET", "/status")

    async def get_models(self) -> Dict[str, Any]:
        return await self.call("GET", "/models")

    async def get_usage_stats(self, period: str = "24h") -> Dict[str, Any]:
        return await self.call("GET", "/usage-stats", params={"period": period})

    async def get_copilot_usage(self) -> Dict[str, Any]:
        return await self.call("GET", "/copilot-usage")

    async def version_check(self) -> Dict[str, Any]:
        # "outdated" is a valid answer here, so the envelope is returned as-is
        return await self.request_json("GET", "/version-check")

    # Configuration

    async def get_config(self) -> Dict[str, Any]:
        return await self.call("GET", "/config")

    async def save_config(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return await self.call("POST", "/config", json=values)

    async def reset_config(self) -> Dict[str, Any]:
        return await self.call("POST", "/config/reset")

    async def apply_claude_config(self, claude_config: Dict[str, Any]) -> Dict[str, Any]:
        return await self.call("POST", "/claude-config", json=claude_config)

    async def restart_server(self) -> Dict[str, Any]:
        return await self.call("POST", "/server/restart")

    # Account pool

    async def get_accounts(self) -> Dict[str, Any]:
        return await self.call("GET", "/accounts")

    async def delete_account(self, account_id: str) -> Dict[str, Any]:
        return await self.call("DELETE", f"/accounts/{account_id}")

    async def pause_account(self, account_id: str, paused: bool) -> Dict[str, Any]:
        return await self.call("POST", f"/accounts/{account_id}/pause", json={"paused": paused})

    async def set_current_account(self, account_id: str) -> Dict[str, Any]:
        return await self.call("POST", f"/accounts/{account_id}/set-current")

    async def refresh_accounts(self) -> Dict[str, Any]:
        return await self.call("POST", "/accounts/refresh")

    async def refresh_quotas(self) -> Dict[str, Any]:
        return await self.call("POST", "/accounts/refresh-quotas")

    async def update_pool_config(self, enabled: bool, strategy: str) -> Dict[str, Any]:
        return await self.call("POST", "/pool-config", json={"enabled": enabled, "strategy": strategy})

    # Device authorization flow

    async def oauth_start(self, label: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if label:
            body["label"] = label
        return await self.call("POST", "/accounts/oauth/start", json=body)

    async def oauth_complete(self, flow_id: str) -> Dict[str, Any]:
        return await self.call(
            "POST",
            "/accounts/oauth/complete",
            json={"flowId": flow_id},
            timeout=OAUTH_COMPLETE_TIMEOUT,
        )

    async def oauth_cancel(self, flow_id: str) -> Dict[str, Any]:
        return await self.call("POST", "/accounts/oauth/cancel", json={"flowId": flow_id})

    # Logs and request history

    async def get_recent_logs(self, limit: int = 100) -> Dict[str, Any]:
        return await self.call("GET", "/logs/recent", params={"limit": limit})

    async def get_history(
        self,
        limit: int = 50,
        offset: int = 0,
        model: Optional[str] = None,
        status: Optional[str] = None,
        account: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {"limit": limit, "offset": offset, "model": model, "status": status, "account": account}
        return await self.call("GET", "/history", params=params)

    async def get_history_stats(self) -> Dict[str, Any]:
        return await self.call("GET", "/history/stats")

    async def clear_history(self) -> Dict[str, Any]:
        return await self.call("DELETE", "/history")
