"""
Watching and streaming watch-events.

A single watch-request is a long-lived HTTP GET with ``?watch=true``:
the API server sends one JSON line per change of any object of the resource
kind, and closes the connection from time to time (by its own timeouts).
Networks also fail, and the API servers are restarted.

On top of the single watch-requests, an infinite watch-stream is built:
it re-establishes the watch-request whenever it ends for whatever reason,
after a fixed short pause, and for as long as it is not explicitly stopped.
"""
import asyncio
import logging
from typing import AsyncIterator, Callable, Dict, Optional, cast

import aiohttp

from k8soperator._cogs.aiokits import aiotasks
from k8soperator._cogs.clients import api, auth, errors
from k8soperator._cogs.configs import configuration
from k8soperator._cogs.helpers import typedefs
from k8soperator._cogs.structs import bodies, references

logger = logging.getLogger(__name__)

# Creates (and usually remembers somewhere) a new stopper for every new watch-request.
StopperFactory = Callable[[], aiotasks.Future]


class WatchingError(Exception):
    """
    Raised when an unexpected error happens in the watch-stream API.
    """


# Anything that can break a single watch-request. All of them lead to a reconnection.
STREAM_ERRORS = (
    aiohttp.ClientError,  # incl. connection & payload errors
    asyncio.TimeoutError,
    errors.APIError,
    WatchingError,
    ValueError,  # incl. json.JSONDecodeError & UnicodeDecodeError
)


async def infinite_watch(
        *,
        settings: configuration.OperatorSettings,
        resource: references.Resource,
        context: auth.APIContext,
        logger: typedefs.Logger = logger,
        make_stopper: Optional[StopperFactory] = None,
        _iterations: Optional[int] = None,  # used in tests/mocks/fixtures
) -> AsyncIterator[bodies.RawEvent]:
    """
    Stream the watch-events infinitely.

    This routine never ends gracefully unless stopped. If a watcher's stream
    ends or fails, a new one is recreated after a fixed pause, and the stream
    continues. There is no limit on the number of reconnections.

    Every new watch-request gets its own stopper, as created by the factory.
    Once the stopper is done, the current request is closed from the client side,
    and no new requests are made. Cancellation of the consuming task also works.
    """
    logger.debug(f"Starting the watch-stream for {resource}.")
    try:
        while _iterations is None or _iterations > 0:  # equivalent to `while True` in non-test mode
            _iterations = None if _iterations is None else _iterations - 1

            stopper = make_stopper() if make_stopper is not None else asyncio.Future()
            if stopper.done():
                break

            reason = "the stream has ended"
            try:
                async for raw_event in watch_objs(
                    settings=settings,
                    resource=resource,
                    context=context,
                    logger=logger,
                    stopper=stopper,
                ):
                    yield raw_event
            except STREAM_ERRORS as e:
                reason = repr(e)

            if stopper.done():
                break

            logger.warning(f"restarting watch on resource {resource.id} (reason: {reason})")
            await asyncio.sleep(settings.watching.reconnect_backoff)
    finally:
        logger.debug(f"Stopping the watch-stream for {resource}.")


async def watch_objs(
        *,
        settings: configuration.OperatorSettings,
        resource: references.Resource,
        context: auth.APIContext,
        logger: typedefs.Logger = logger,
        stopper: Optional[aiotasks.Future] = None,
) -> AsyncIterator[bodies.RawEvent]:
    """
    Watch objects of a specific resource type in all namespaces.

    The watch-request is never resumed from a specific resource version:
    every new request starts with the current state of all the objects
    (reported as ``ADDED``), followed by the actual changes.
    """
    params: Dict[str, str] = {}
    params['watch'] = 'true'
    if settings.watching.server_timeout is not None:
        params['timeoutSeconds'] = str(int(settings.watching.server_timeout))

    connect_timeout = (
        settings.watching.connect_timeout if settings.watching.connect_timeout is not None else
        settings.networking.connect_timeout if settings.networking.connect_timeout is not None else
        settings.networking.request_timeout
    )

    # Stream the parsed events from the response until it is closed server-side,
    # or until it is closed client-side by the stopper's callbacks.
    async for raw_input in api.stream(
        url=resource.get_url(params=params),
        logger=logger,
        settings=settings,
        context=context,
        stopper=stopper,
        timeout=aiohttp.ClientTimeout(
            total=settings.watching.client_timeout,
            sock_connect=connect_timeout,
        ),
    ):
        if not isinstance(raw_input, dict):
            raise WatchingError(f"Unexpected data in the watch-stream: {raw_input!r}")

        raw_type = raw_input.get('type')
        raw_object = raw_input.get('object')

        # Errors in the stream (e.g. "410 Gone" for the outdated resource versions)
        # mean that this request is over. The infinite stream will start a new one.
        if raw_type == 'ERROR':
            raise WatchingError(f"Error in the watch-stream: {raw_object}")

        # Ensure that the event is something we understand and can handle.
        if raw_type not in ['ADDED', 'MODIFIED', 'DELETED']:
            logger.warning(f"Ignoring an unsupported event type: {raw_input!r}")
            continue

        yield cast(bodies.RawEvent, raw_input)
