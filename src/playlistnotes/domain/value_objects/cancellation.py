"""Cooperative cancellation for import operations.

Hey future me - asyncio already has task cancellation, so why this? Because an import must
end in a DISTINGUISHABLE "aborted" outcome (ImportAbortedError), not a CancelledError that
tears down whatever task happened to be awaiting. The token is passed explicitly into every
suspending call and checked at each network boundary:

    token = CancellationToken()
    payload = await token.run(fetch_client.get_json(url))   # raises ImportAbortedError on cancel
    token.cancel()                                           # from anywhere else

Tokens can be linked: a child created with CancellationToken.linked(parent) is cancelled
as soon as the parent is (the session links its own per-operation token to the caller's).
A finished child calls detach() so a long-lived parent does not keep every child alive.
"""

import asyncio
from collections.abc import Awaitable
from typing import Any, TypeVar

from playlistnotes.domain.exceptions import ImportAbortedError

T = TypeVar("T")


class CancellationToken:
    """Cancellation signal shared between an import's caller and its network calls."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = "Import was cancelled."
        self._children: list[CancellationToken] = []
        self._parents: list[CancellationToken] = []

    @classmethod
    def linked(cls, *parents: "CancellationToken | None") -> "CancellationToken":
        """Create a token that is cancelled whenever any of the parents is."""
        token = cls()
        for parent in parents:
            if parent is None:
                continue
            if parent.cancelled:
                token.cancel(parent.reason)
            else:
                parent._children.append(token)
                token._parents.append(parent)
        return token

    def detach(self) -> None:
        """Unlink from every parent. Later parent cancels no longer reach this token."""
        for parent in self._parents:
            if self in parent._children:
                parent._children.remove(self)
        self._parents.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Cancel this token and all linked children. Idempotent."""
        if self._event.is_set():
            return
        if reason:
            self._reason = reason
        self._event.set()
        children, self._children = self._children, []
        for child in children:
            child.cancel(self._reason)

    def raise_if_cancelled(self) -> None:
        """Raise ImportAbortedError if this token has been cancelled."""
        if self._event.is_set():
            raise ImportAbortedError(self._reason)

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, ending early with ImportAbortedError on cancel."""
        await self.run(asyncio.sleep(delay))

    # Listen up, this is the race that makes cancellation actually STOP network calls! We
    # wrap the awaitable in a task and wait for either it or the cancel event. On cancel the
    # task gets task.cancel() - httpx aborts the request - and the caller sees
    # ImportAbortedError. If the awaitable must survive our cancel (a shared in-flight token
    # fetch), pass asyncio.shield(...) so only the shield wrapper is cancelled.
    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless this token is cancelled first.

        Args:
            awaitable: Coroutine, task or future to await

        Returns:
            The awaitable's result

        Raises:
            ImportAbortedError: If the token is (or becomes) cancelled before completion
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise ImportAbortedError(self._reason)

        task: asyncio.Future[T] = asyncio.ensure_future(awaitable)
        waiter: asyncio.Future[Any] = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise

        if task.done():
            waiter.cancel()
            return task.result()

        task.cancel()
        # Let the cancelled call unwind; its own outcome no longer matters
        await asyncio.gather(task, return_exceptions=True)
        raise ImportAbortedError(self._reason)
