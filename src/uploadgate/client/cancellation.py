"""Cooperative cancellation for in-flight uploads."""

import asyncio


class CancelToken:
    """One-shot cancellation signal passed into the transport.

    The event is created lazily so a token can be built outside a running
    event loop and still be awaited inside one.
    """

    def __init__(self):
        self._cancelled = False
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self._cancelled})"
