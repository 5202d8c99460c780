"""
The single, strictly ordered delivery of the watch-events to the callbacks.

The operator can watch multiple resource types at once. Every resource type
is watched in a separate asyncio task in the never-ending loop. The events
of all resource types (of all their objects) are then pushed to one and only
one queue, which is consumed by one and only one worker.

The worker invokes the callbacks one at a time, in the order of arrival,
and does not take the next event until the current callback is fully done
(including all its awaits). So, no two events are ever handled concurrently,
even if they are for different objects or for different resource types.

The downside: a slow callback delays the delivery of all other events.
There is no per-object or per-resource isolation, and no prioritisation.
"""
import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, NamedTuple

from k8soperator._cogs.configs import configuration
from k8soperator._cogs.helpers import typedefs
from k8soperator._cogs.structs import bodies
from k8soperator._core.actions import loggers

EventCallback = Callable[[bodies.ResourceEvent], Awaitable[None] | None]


class Dispatch(NamedTuple):
    event: bodies.ResourceEvent
    callback: EventCallback


if TYPE_CHECKING:
    DispatchQueue = asyncio.Queue[Dispatch]
else:
    DispatchQueue = asyncio.Queue


class Dispatcher:
    """
    A FIFO queue of the events with their callbacks, and its only worker.

    The worker is started as ``await dispatcher()`` (usually in a task),
    and runs until cancelled -- or until a callback fails, if such failures
    are configured as fatal (see :class:`QueueingSettings`).
    """

    def __init__(
            self,
            *,
            settings: configuration.OperatorSettings,
            logger: typedefs.Logger,
    ) -> None:
        super().__init__()
        self._settings = settings
        self._logger = logger
        self._queue: DispatchQueue = asyncio.Queue()

    def __len__(self) -> int:
        return self._queue.qsize()

    def push(self, event: bodies.ResourceEvent, callback: EventCallback) -> None:
        self._queue.put_nowait(Dispatch(event=event, callback=callback))

    async def join(self) -> None:
        """ Wait until all the queued events are processed. """
        await self._queue.join()

    async def __call__(self) -> None:
        while True:
            event, callback = await self._queue.get()
            try:
                await invoke(callback, event)
            except Exception as e:
                if self._settings.queueing.fatal_errors:
                    raise
                logger = loggers.ObjectLogger(self._logger, meta=event.meta)
                logger.exception(f"Callback for the {event.type.value} event has failed: {e}")
            finally:
                self._queue.task_done()


async def invoke(callback: EventCallback, event: bodies.ResourceEvent) -> object | None:
    """
    Invoke a callback, either sync or async; await the result if needed.
    """
    result = callback(event)
    if inspect.isawaitable(result):
        result = await result
    return result
