"""Queue event fan-out."""
from typing import Any, Callable, Dict, List, Optional, Tuple
import asyncio
import inspect
import logging

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """
    Delivers queue events to sync or async listeners.

    `emit_soon` is what the queue uses from its synchronous mutation paths:
    the event goes into a backlog that a single worker task delivers in
    posting order, so a slow listener never reorders events. `drain()`
    waits until the backlog is empty, including events posted by
    listeners while it was being delivered.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}
        self._backlog: "asyncio.Queue[Tuple[str, tuple, dict]]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    def on(self, event_name: str, callback: Listener) -> None:
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Listener) -> None:
        listeners = self._listeners.get(event_name, [])
        if callback in listeners:
            listeners.remove(callback)

    def has_listeners(self, event_name: str) -> bool:
        return bool(self._listeners.get(event_name))

    async def emit(self, event_name: str, *args, **kwargs) -> None:
        """Call every listener now; a failing listener is logged and skipped."""
        for callback in tuple(self._listeners.get(event_name, ())):
            try:
                result = callback(*args, **kwargs)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Listener %r for %s failed", callback, event_name)

    def emit_soon(self, event_name: str, *args, **kwargs) -> None:
        """Queue an event for delivery on the running loop."""
        if not self.has_listeners(event_name):
            return
        loop = asyncio.get_running_loop()
        self._backlog.put_nowait((event_name, args, kwargs))
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._deliver_backlog())

    async def drain(self) -> None:
        """Wait until every event posted with emit_soon was delivered."""
        await self._backlog.join()

    async def _deliver_backlog(self) -> None:
        while not self._backlog.empty():
            event_name, args, kwargs = self._backlog.get_nowait()
            try:
                await self.emit(event_name, *args, **kwargs)
            finally:
                self._backlog.task_done()
