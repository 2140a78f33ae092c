"""
Cooperative cancellation for suspended request handlers
"""

import asyncio
import logging
import threading
from typing import Optional, Set

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    One-shot cancellation signal backed by an asyncio.Event.

    A token is bound to the event loop it is created on (or, if created outside
    one, the loop that first awaits it); cancel() may be called from that loop
    or, via cancel_threadsafe(), from any other thread.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._lock = threading.Lock()
        try:
            self._loop: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def cancel_threadsafe(self, reason: str = "cancelled") -> None:
        with self._lock:
            loop = self._loop
            if loop is None:
                # Unbound: nothing can be waiting on the event yet
                self.cancel(reason)
                return
        loop.call_soon_threadsafe(self.cancel, reason)

    async def sleep(self, seconds: float) -> bool:
        """
        Wait for the given number of seconds unless cancelled first.

        Returns:
            True if the full delay elapsed, False if the token was cancelled
        """
        with self._lock:
            if self._loop is None:
                self._loop = asyncio.get_running_loop()
        if self._event.is_set():
            return False
        if seconds <= 0:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False


class CancellationScope:
    """Tracks in-flight tokens so they can all be cancelled at shutdown"""

    def __init__(self):
        self._tokens: Set[CancellationToken] = set()

    def __len__(self) -> int:
        return len(self._tokens)

    def open(self) -> CancellationToken:
        token = CancellationToken()
        self._tokens.add(token)
        return token

    def close(self, token: CancellationToken) -> None:
        self._tokens.discard(token)

    def cancel_all(self, reason: str = "shutdown") -> int:
        pending = list(self._tokens)
        for token in pending:
            token.cancel_threadsafe(reason)
        if pending:
            logger.warning(f"Cancelled {len(pending)} in-flight request(s): {reason}")
        return len(pending)
