from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .bus import Subscription
from .events import Event, EventChannel
from .hub import RealtimeEventBus
from .refresher import DebouncedRefresher

logger = logging.getLogger(__name__)


class RefreshingConsumer:
    """Base for views that reload from the backend when something changes.

    Reloads are triggered by bus events on ``channels`` and by the view becoming
    visible or gaining focus (recovers events missed while in the background).
    Subclasses implement ``refresh`` and must not publish results once detached.
    With an ``owner_id``, events whose payload names another ``userId`` are ignored;
    events without a ``userId`` reach every consumer. While held, events only mark
    a reload as missed; ``release`` runs it.
    """

    channels: tuple[EventChannel, ...] = ()

    def __init__(
        self,
        bus: RealtimeEventBus,
        *,
        refresher: Optional[DebouncedRefresher] = None,
        owner_id: Optional[int] = None,
    ):
        self._bus = bus
        self.owner_id = owner_id
        self._refresher = refresher or DebouncedRefresher()
        self._subscriptions: list[Subscription] = []
        self._tasks: set[asyncio.Task] = set()
        self._attached = False
        self._missed = False
        self._held = False

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def refresher(self) -> DebouncedRefresher:
        return self._refresher

    def attach(self) -> "RefreshingConsumer":
        if self._attached:
            return self
        self._subscriptions = [self._bus.subscribe(channel, self._on_event) for channel in self.channels]
        self._attached = True
        return self

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        self._attached = False

    def __enter__(self) -> "RefreshingConsumer":
        return self.attach()

    def __exit__(self, *exc_info) -> None:
        self.detach()

    def concerns(self, event: Event) -> bool:
        if self.owner_id is None:
            return True
        user_id = event.payload.get("userId")
        return user_id is None or user_id == self.owner_id

    def _on_event(self, event: Event) -> None:
        if not self.concerns(event):
            return
        logger.debug("%s received %s (relayed=%s)", type(self).__name__, event.channel.value, event.relayed)
        if self._held:
            self._missed = True
            return
        self.request_refresh()

    def on_visibility_change(self, visible: bool) -> None:
        if visible:
            self.request_refresh()

    def on_focus(self) -> None:
        self.request_refresh()

    def request_refresh(self) -> Optional[asyncio.Task]:
        if not self._attached:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("%s: no running loop, refresh deferred", type(self).__name__)
            self._missed = True
            return None

        task = loop.create_task(self._refresher.try_run(self.refresh))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self._missed = True

    @property
    def missed(self) -> bool:
        return self._missed

    def hold(self) -> None:
        self._held = True

    def release(self) -> Optional[asyncio.Task]:
        """Stop holding and run a reload that was missed or cancelled meanwhile."""
        self._held = False
        if not self._missed:
            return None
        self._missed = False
        return self.request_refresh()

    async def settle(self) -> None:
        """Wait until every refresh scheduled on the running loop has finished."""
        loop = asyncio.get_running_loop()
        while True:
            pending = [task for task in self._tasks if task.get_loop() is loop]
            if not pending:
                return
            await asyncio.gather(*pending)

    async def refresh(self) -> None:
        raise NotImplementedError
