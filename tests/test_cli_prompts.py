from __future__ import annotations

import asyncio
import time
from typing import List

from rich.console import Console
from rich.prompt import Confirm

from cli.account_handlers import confirm_removal


def test_removal_gate_keeps_loop_running_while_operator_answers(monkeypatch) -> None:
    def slow_answer(*args, **kwargs) -> bool:
        time.sleep(0.2)
        return True

    monkeypatch.setattr(Confirm, "ask", slow_answer)
    gate = confirm_removal(Console())
    ticks: List[int] = []

    async def ticker() -> None:
        while True:
            ticks.append(1)
            await asyncio.sleep(0.01)

    async def scenario() -> bool:
        task = asyncio.ensure_future(ticker())
        try:
            return await gate("a1")
        finally:
            task.cancel()

    assert asyncio.run(scenario()) is True
    assert len(ticks) > 5
