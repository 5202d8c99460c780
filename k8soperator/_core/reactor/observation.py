"""
Watching the resource types and feeding their events into the dispatch queue.

Every watched resource type gets its own never-ending watcher task.
The watcher does not invoke the callbacks itself: it converts the raw
watch-events into the typed :class:`ResourceEvent` and pushes them to the one
and only dispatch queue of the operator, where they are handled in order.

The watcher survives all the network & API failures of the watch-stream
(see :func:`watching.infinite_watch`); it only ends when the watching is
stopped via the registry (or when the watcher task is cancelled).
"""
import functools
from typing import Optional

from k8soperator._cogs.clients import auth, watching
from k8soperator._cogs.configs import configuration
from k8soperator._cogs.helpers import typedefs
from k8soperator._cogs.structs import bodies, references
from k8soperator._core.reactor import queueing, registries


async def watcher(
        *,
        settings: configuration.OperatorSettings,
        resource: references.Resource,
        context: auth.APIContext,
        registry: registries.WatchRegistry,
        dispatcher: queueing.Dispatcher,
        callback: queueing.EventCallback,
        logger: typedefs.Logger,
        _iterations: Optional[int] = None,  # used in tests/mocks/fixtures
) -> None:
    """
    Watch one resource type and push its events to the dispatcher.

    The objects that cannot be identified (no name, no resource version, etc.)
    are logged and skipped; the watch-stream continues with the next events.
    """
    stream = watching.infinite_watch(
        settings=settings,
        resource=resource,
        context=context,
        logger=logger,
        make_stopper=functools.partial(registry.replace_handle, resource.id),
        _iterations=_iterations,
    )
    async for raw_event in stream:
        raw_body = raw_event.get('object')  # absent in broken events; rejected as malformed below
        try:
            meta = bodies.ResourceMeta.from_body(resource.id, raw_body)
        except bodies.MalformedResourceError as e:
            logger.error(f"{e} Skipping the {raw_event['type']} event.")
            continue

        event = bodies.ResourceEvent(
            meta=meta,
            type=bodies.ResourceEventType(raw_event['type']),
            object=raw_body,
        )
        dispatcher.push(event, callback)
