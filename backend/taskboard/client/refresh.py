import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque

logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """Single-flight wrapper around a token refresh call.

    The first caller runs ``refresh``; callers arriving while it is in flight
    wait for its outcome instead of starting another one. Waiters are settled
    before ``in_flight`` drops back to False, so nobody can slip in between.
    """

    def __init__(self, refresh: Callable[[], Awaitable[str]]) -> None:
        self._refresh = refresh
        self._in_flight = False
        self._waiters: Deque[asyncio.Future] = deque()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def pending(self) -> int:
        return len(self._waiters)

    async def access_token(self) -> str:
        if self._in_flight:
            return await self._wait()

        self._in_flight = True
        try:
            token = await self._refresh()
        except BaseException as exc:
            self._settle(error=exc)
            raise
        else:
            self._settle(token=token)
            return token
        finally:
            self._in_flight = False

    async def _wait(self) -> str:
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await waiter
        except asyncio.CancelledError:
            if waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _settle(self, token: str | None = None, error: BaseException | None = None) -> None:
        waiters, self._waiters = self._waiters, deque()
        logger.debug("Settling %s queued requests after refresh", len(waiters))
        for waiter in waiters:
            if waiter.done():
                continue
            if isinstance(error, asyncio.CancelledError):
                waiter.cancel()
            elif error is not None:
                waiter.set_exception(error)
            else:
                waiter.set_result(token)
