"""Device authorization flow for adding an upstream account

The gateway performs the actual GitHub device flow. The console only starts
it, shows the user code, asks the gateway to finish polling and can abandon
it. Only one flow runs at a time.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional

from api.client import ConsoleAPIClient
from api.errors import (
    FlowExpiredError,
    FlowInProgressError,
    FlowStateError,
    RemoteOperationError,
    SessionExpiredError,
)
from utils.timers import TimerRegistry

logger = logging.getLogger(__name__)


class FlowPhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMPLETING = "completing"


@dataclass(frozen=True)
class OAuthFlowState:
    phase: FlowPhase = FlowPhase.IDLE
    flow_id: Optional[str] = None
    user_code: str = ""
    verification_uri: str = ""
    expires_in: int = 0
    expires_at: Optional[float] = None
    error: Optional[str] = None


class OAuthDeviceFlow:
    """State machine Idle -> Pending -> Completing -> Idle"""

    def __init__(
        self,
        api: ConsoleAPIClient,
        timers: Optional[TimerRegistry] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.api = api
        self.timers = timers
        self.clock = clock or time.monotonic
        self._state = OAuthFlowState()
        self._generation = 0
        self._expiry_task: Optional[asyncio.Task] = None
        self._starting = False

    @property
    def state(self) -> OAuthFlowState:
        return self._state

    @property
    def phase(self) -> FlowPhase:
        return self._state.phase

    def is_expired(self) -> bool:
        expires_at = self._state.expires_at
        return expires_at is not None and self.clock() >= expires_at

    async def start(self, label: Optional[str] = None) -> OAuthFlowState:
        """Ask the gateway for a device code

        Raises:
            FlowInProgressError: if a flow is already pending or completing
            RemoteOperationError: if the gateway refused to start a flow
        """
        if self._starting:
            raise FlowInProgressError("A device flow is already starting")
        if self._state.phase != FlowPhase.IDLE:
            raise FlowInProgressError(f"A device flow is already {self._state.phase.value}")

        generation = self._generation
        self._starting = True
        try:
            data = await self.api.oauth_start(label)
        finally:
            self._starting = False
        if generation != self._generation:
            logger.debug("Device flow start result discarded: flow was reset meanwhile")
            await self._cancel_remote(data.get("flowId"))
            return self._state

        try:
            expires_in = int(data.get("expiresIn") or 0)
        except (TypeError, ValueError):
            expires_in = 0

        self._state = OAuthFlowState(
            phase=FlowPhase.PENDING,
            flow_id=data.get("flowId"),
            user_code=data.get("userCode") or "",
            verification_uri=data.get("verificationUri") or "",
            expires_in=expires_in,
            expires_at=self.clock() + expires_in if expires_in > 0 else None,
        )
        logger.info(f"Device flow {self._state.flow_id} started, code {self._state.user_code}")

        if self.timers is not None and expires_in > 0:
            self._expiry_task = self.timers.later(
                expires_in, lambda: self._expire(generation), name="oauth-expiry"
            )
        return self._state

    async def complete(self) -> Dict[str, Any]:
        """Ask the gateway to finish the flow and add the account

        Returns:
            The gateway response (``message`` and ``account``). The caller
            refreshes the account pool.

        Raises:
            FlowStateError: if no flow is pending
            FlowExpiredError: if the device code already expired
            RemoteOperationError: if the gateway could not finish the flow;
                the flow stays pending with ``error`` set
        """
        if self._state.phase != FlowPhase.PENDING:
            raise FlowStateError(f"Cannot complete a flow that is {self._state.phase.value}")
        if self.is_expired():
            self.reset()
            raise FlowExpiredError("The device code has expired, start again")

        generation = self._generation
        flow_id = self._state.flow_id
        self._state = replace(self._state, phase=FlowPhase.COMPLETING, error=None)

        try:
            data = await self.api.oauth_complete(flow_id)
        except SessionExpiredError:
            self.reset()
            raise
        except RemoteOperationError as e:
            if generation == self._generation:
                self._state = replace(self._state, phase=FlowPhase.PENDING, error=e.message)
            raise

        if generation != self._generation:
            logger.info(f"Device flow {flow_id} finished after it was cancelled; result discarded")
            return {}

        self.reset()
        logger.info(data.get("message") or f"Device flow {flow_id} completed")
        return data

    async def cancel(self) -> None:
        """Abandon the flow now; tell the gateway on a best-effort basis"""
        flow_id = self._state.flow_id
        if self._state.phase == FlowPhase.IDLE:
            return
        self.reset()
        await self._cancel_remote(flow_id)

    async def _cancel_remote(self, flow_id: Optional[str]) -> None:
        if flow_id is None:
            return
        try:
            await self.api.oauth_cancel(flow_id)
        except Exception as e:
            logger.debug(f"Ignoring device flow cancel failure: {e}")

    def expire_if_due(self) -> bool:
        """Drop a pending flow whose device code has expired"""
        if self._state.phase == FlowPhase.PENDING and self.is_expired():
            self._expire(self._generation)
            return True
        return False

    def _expire(self, generation: int) -> None:
        if generation != self._generation or self._state.phase != FlowPhase.PENDING:
            return
        logger.info(f"Device flow {self._state.flow_id} expired")
        self._expiry_task = None
        self.reset()

    def reset(self) -> None:
        self._generation += 1
        if self._expiry_task is not None:
            self._expiry_task.cancel()
            self._expiry_task = None
        self._state = OAuthFlowState()
