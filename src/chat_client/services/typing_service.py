from __future__ import annotations

import asyncio
import logging

from chat_client.application.exceptions import TransportTransient
from chat_client.application.ports.channel import Channel
from chat_client.application.ports.clock import Scheduler, TimerHandle
from chat_client.application.state import AppState
from chat_client.application.store import Event, Store
from chat_client.domain.events.conversation import TypingChanged
from chat_client.infrastructure.realtime.protocol import TypingFrame

logger = logging.getLogger(__name__)


class TypingIndicator:
    """Outbound typing signal for the local user.

    Repeated keystrokes within the debounce window only push the stop timer
    back; ``typing_start`` goes out once and ``typing_stop`` once when the
    window elapses or the user sends, clears the input or switches contact.
    """

    def __init__(self, channel: Channel, scheduler: Scheduler, *, debounce: float = 2.0) -> None:
        self._channel = channel
        self._scheduler = scheduler
        self._debounce = debounce
        self._contact_id: int | None = None
        self._timer: TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self.is_typing = False

    async def mark_typing(self, contact_id: int) -> None:
        if self.is_typing and self._contact_id != contact_id:
            await self.stop()
        if not self.is_typing:
            self.is_typing = True
            self._contact_id = contact_id
            await self._send("typing_start", contact_id)
        self._restart_timer()

    async def stop(self) -> None:
        contact_id = self._end()
        if contact_id is not None:
            await self._send("typing_stop", contact_id)

    def reset(self) -> None:
        """Forget local typing state without signalling (session teardown)."""
        self._end()

    async def aclose(self) -> None:
        """Reset and cancel any ``typing_stop`` still waiting to be sent."""
        self._end()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _end(self) -> int | None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not self.is_typing:
            return None
        contact_id, self._contact_id = self._contact_id, None
        self.is_typing = False
        return contact_id

    def _restart_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._scheduler.call_later(self._debounce, self._expire)

    def _expire(self) -> None:
        self._timer = None
        contact_id = self._end()
        if contact_id is None:
            return
        task = asyncio.get_running_loop().create_task(self._send("typing_stop", contact_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, event: str, contact_id: int) -> None:
        frame = TypingFrame(receiver_id=contact_id).model_dump(by_alias=True)
        try:
            await self._channel.emit(event, frame)
        except TransportTransient as exc:
            logger.debug("Dropped %s for %s: %s", event, contact_id, exc.detail)


class RemoteTypingTracker:
    """Soft expiry for contacts shown as typing.

    Store listener: a ``typing_start`` from a contact (re)arms a timer that
    clears the flag if no ``typing_stop`` arrives in time.
    """

    def __init__(self, store: Store, scheduler: Scheduler, *, expiry: float = 2.0) -> None:
        self._store = store
        self._scheduler = scheduler
        self._expiry = expiry
        self._timers: dict[int, TimerHandle] = {}

    def __call__(self, event: Event, _state: AppState) -> None:
        if not isinstance(event, TypingChanged):
            return
        timer = self._timers.pop(event.user_id, None)
        if timer is not None:
            timer.cancel()
        if event.is_typing:
            self._timers[event.user_id] = self._scheduler.call_later(
                self._expiry, lambda: self._expire(event.user_id),
            )

    def _expire(self, user_id: int) -> None:
        self._timers.pop(user_id, None)
        self._store.dispatch(TypingChanged(user_id, False))

    def reset(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
