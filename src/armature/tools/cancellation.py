"""Cooperative cancellation for in-flight tool calls."""

import asyncio
from typing import Optional


class CancellationToken:
    """Signals that a tool call should stop.

    The orchestrator owns the token and calls cancel(); tools poll
    `cancelled` or await `wait()` alongside their own work.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        """Reason passed to cancel(), if any."""
        return self._reason

    def cancel(self, reason: str = "Cancelled") -> None:
        """Request cancellation. Repeated calls keep the first reason."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()

    def __repr__(self) -> str:
        """Representation."""
        return f"<CancellationToken cancelled={self.cancelled}>"
