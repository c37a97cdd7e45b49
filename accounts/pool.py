"""Cached view of the gateway's account pool plus the commands that change it"""

import asyncio
import inspect
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from api.client import ConsoleAPIClient
from api.errors import RemoteOperationError, ValidationError
from settings import TOKEN_REFRESH_RESYNC_DELAY
from utils.timers import TimerRegistry
from .models import AccountPoolState, normalize_accounts

logger = logging.getLogger(__name__)

ConfirmGate = Callable[[str], Union[bool, Awaitable[bool]]]


def adopt_pool(data: Dict[str, Any]) -> AccountPoolState:
    """Full state from a ``GET /accounts`` response

    Authoritative for every field: poolEnabled, strategy, accounts,
    currentAccountId and configuredCount (defaults to the account count).
    """
    try:
        accounts = normalize_accounts(data.get("accounts"))
        configured = data.get("configuredCount")
        return AccountPoolState(
            enabled=bool(data.get("poolEnabled", False)),
            strategy=data.get("strategy") or "sticky",
            accounts=accounts,
            current_account_id=data.get("currentAccountId"),
            configured_count=int(configured) if configured is not None else len(accounts),
        )
    except (TypeError, ValueError) as e:
        raise RemoteOperationError(f"Malformed accounts payload: {e}") from e


def adopt_accounts(state: AccountPoolState, data: Dict[str, Any], with_current: bool = True) -> AccountPoolState:
    """State after a command that returns the account list

    ``set-current`` and ``refresh`` responses are authoritative for accounts
    and currentAccountId; ``refresh-quotas`` only for accounts. Pool
    configuration fields are carried over from ``state``, and so is any of
    accounts or currentAccountId that the response leaves out.
    """
    try:
        if "accounts" in data:
            accounts = normalize_accounts(data["accounts"])
        else:
            accounts = state.accounts
        carried = not (with_current and "currentAccountId" in data)
        current = state.current_account_id if carried else data["currentAccountId"]
        if carried and current is not None and current not in {a.id for a in accounts}:
            current = None
        return replace(state, accounts=accounts, current_account_id=current)
    except (TypeError, ValueError) as e:
        raise RemoteOperationError(f"Malformed accounts payload: {e}") from e


def adopt_pool_config(state: AccountPoolState, enabled: bool, strategy: str) -> AccountPoolState:
    """State after ``POST /pool-config`` succeeded with these values"""
    return replace(state, enabled=enabled, strategy=strategy)


class AccountPoolController:
    """Owns the client-side copy of the account pool

    The cached ``state`` is only ever replaced by a value built from a
    successful server response. A failed command raises
    ``RemoteOperationError`` with the server's message and leaves the cache
    exactly as it was. Commands run one at a time.
    """

    def __init__(
        self,
        api: ConsoleAPIClient,
        timers: Optional[TimerRegistry] = None,
        confirm: Optional[ConfirmGate] = None,
        resync_delay: Optional[float] = None,
    ):
        """
        Args:
            api: REST client
            timers: Registry for the delayed resync after a token refresh
            confirm: Default confirmation gate for ``remove``
            resync_delay: Seconds before the post-token-refresh resync
        """
        self.api = api
        self.timers = timers if timers is not None else TimerRegistry()
        self.confirm = confirm
        self.resync_delay = TOKEN_REFRESH_RESYNC_DELAY if resync_delay is None else resync_delay
        self._state = AccountPoolState()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> AccountPoolState:
        return self._state

    async def refresh(self) -> AccountPoolState:
        """Full resync from ``GET /accounts``"""
        async with self._lock:
            return await self._refresh_locked()

    async def _refresh_locked(self) -> AccountPoolState:
        data = await self.api.get_accounts()
        self._state = adopt_pool(data)
        logger.debug(f"Account pool refreshed: {len(self._state.accounts)} account(s)")
        return self._state

    async def _refresh_after_command(self) -> None:
        # The command itself succeeded; a failed follow-up read only leaves the cache stale
        try:
            await self._refresh_locked()
        except RemoteOperationError as e:
            logger.warning(f"Account pool refresh after command failed: {e.message}")

    async def remove(self, account_id: str, confirm: Optional[ConfirmGate] = None) -> bool:
        """Remove an account after the operator confirms

        Returns:
            False if the removal was not confirmed (no request is sent)
        """
        gate = confirm or self.confirm
        if gate is None:
            logger.warning(f"Refusing to remove account {account_id}: no confirmation gate")
            return False

        answer = gate(account_id)
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            logger.info(f"Removal of account {account_id} not confirmed")
            return False

        async with self._lock:
            await self.api.delete_account(account_id)
            logger.info(f"Account {account_id} removed")
            await self._refresh_after_command()
        return True

    async def set_paused(self, account_id: str, paused: bool) -> AccountPoolState:
        async with self._lock:
            await self.api.pause_account(account_id, paused)
            logger.info(f"Account {account_id} {'paused' if paused else 'resumed'}")
            await self._refresh_after_command()
            return self._state

    async def set_current(self, account_id: str) -> AccountPoolState:
        """Pin the sticky strategy to an account; the server picks the resulting current id"""
        async with self._lock:
            data = await self.api.set_current_account(account_id)
            self._state = adopt_accounts(self._state, data)
            logger.info(f"Current account is now {self._state.current_account_id}")
            return self._state

    async def refresh_tokens(self) -> AccountPoolState:
        """Start a server-side token refresh

        The gateway finishes the refresh in the background, so besides
        adopting the accounts it returns now, one more full resync is
        scheduled after ``resync_delay`` seconds.
        """
        async with self._lock:
            data = await self.api.refresh_accounts()
            self._state = adopt_accounts(self._state, data)
        logger.info(data.get("message") or "Token refresh started")
        self.timers.later(self.resync_delay, self.refresh, name="accounts-resync")
        return self._state

    async def refresh_quotas(self) -> AccountPoolState:
        async with self._lock:
            data = await self.api.refresh_quotas()
            self._state = adopt_accounts(self._state, data, with_current=False)
            return self._state

    async def update_pool_config(self, enabled: bool, strategy: str) -> AccountPoolState:
        if not strategy or not strategy.strip():
            raise ValidationError("strategy", "Strategy is required")
        strategy = strategy.strip()
        async with self._lock:
            await self.api.update_pool_config(enabled, strategy)
            self._state = adopt_pool_config(self._state, enabled, strategy)
            logger.info(f"Pool configuration updated: enabled={enabled} strategy={strategy}")
            return self._state

    def reset(self) -> None:
        """Forget the cached pool (used when the session ends)"""
        self._state = AccountPoolState()
