"""
The raw HTTP calls to the cluster API: one-shot requests and watch-streams.

All calls go through :func:`request`, which resolves the URL against the server
of the :class:`auth.APIContext`, serializes the JSON payload, converts the HTTP
errors into :mod:`errors`, and retries the presumably temporary failures
(connection errors, timeouts, 5xx) as many times as there are backoffs
in ``settings.networking.error_backoffs`` (none by default).
"""
import asyncio
import json
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Tuple

import aiohttp

from k8soperator._cogs.aiokits import aiotasks
from k8soperator._cogs.clients import auth, errors
from k8soperator._cogs.configs import configuration
from k8soperator._cogs.helpers import typedefs

RETRYABLE_ERRORS = (aiohttp.ClientConnectionError, errors.APIServerError, asyncio.TimeoutError)


def build_url(context: auth.APIContext, url: str) -> str:
    """ Absolute URLs are used as is, relative ones are relative to the server. """
    if '://' in url:
        return url
    return f"{context.server.rstrip('/')}/{url.lstrip('/')}"


def encode_payload(
        payload: Optional[object],
        headers: Optional[Mapping[str, str]],
) -> Tuple[Optional[str], Dict[str, str]]:
    # Not via `json=`: aiohttp would then override the content type of merge-patches.
    all_headers = dict(headers or {})
    if payload is None:
        return None, all_headers
    all_headers.setdefault('Content-Type', 'application/json')
    return json.dumps(payload), all_headers


async def request(
        method: str,
        url: str,  # absolute or relative to the server.
        *,
        settings: configuration.OperatorSettings,
        context: auth.APIContext,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> aiohttp.ClientResponse:
    """
    Make a request and return the unparsed response if it succeeded.

    The API errors (4xx, 5xx) are raised as :class:`errors.APIError`.
    The connection errors are raised as they come from the client library.
    """
    url = build_url(context, url)
    data, all_headers = encode_payload(payload, headers)
    if timeout is None:
        timeout = aiohttp.ClientTimeout(
            total=settings.networking.request_timeout,
            sock_connect=settings.networking.connect_timeout,
        )

    backoffs = list(settings.networking.error_backoffs)
    attempts = len(backoffs) + 1
    what = f"{method.upper()} {url}"
    for attempt in range(1, attempts + 1):
        idx = f"#{attempt}/{attempts}"
        if attempt > 1:
            logger.debug(f"Request attempt {idx}: {what}")
        try:
            response = await context.session.request(
                method=method,
                url=url,
                data=data,
                headers=all_headers,
                timeout=timeout,
            )
            await errors.check_response(response)
        except RETRYABLE_ERRORS as e:
            if attempt >= attempts:
                if attempts > 1:
                    logger.error(f"Request attempt {idx} failed; escalating: {what} -> {e!r}")
                raise
            logger.error(f"Request attempt {idx} failed; will retry: {what} -> {e!r}")
            await asyncio.sleep(backoffs[attempt - 1])
        else:
            if attempt > 1:
                logger.debug(f"Request attempt {idx} succeeded: {what}")
            context.add_response(response)
            return response

    raise RuntimeError("Unreachable: the last attempt either returns or raises.")


async def _request_json(
        method: str,
        url: str,
        *,
        settings: configuration.OperatorSettings,
        context: auth.APIContext,
        payload: Optional[object],
        headers: Optional[Mapping[str, str]],
        timeout: Optional[aiohttp.ClientTimeout],
        logger: typedefs.Logger,
) -> Any:
    response = await request(method, url, payload=payload, headers=headers, timeout=timeout,
                             settings=settings, context=context, logger=logger)
    async with response:
        # Some API servers and proxies respond with JSON under wrong content types.
        return await response.json(content_type=None)


async def post(
        url: str,
        *,
        settings: configuration.OperatorSettings,
        context: auth.APIContext,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    return await _request_json('post', url, payload=payload, headers=headers, timeout=timeout,
                               settings=settings, context=context, logger=logger)


async def put(
        url: str,
        *,
        settings: configuration.OperatorSettings,
        context: auth.APIContext,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    return await _request_json('put', url, payload=payload, headers=headers, timeout=timeout,
                               settings=settings, context=context, logger=logger)


async def patch(
        url: str,
        *,
        settings: configuration.OperatorSettings,
        context: auth.APIContext,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    return await _request_json('patch', url, payload=payload, headers=headers, timeout=timeout,
                               settings=settings, context=context, logger=logger)


async def stream(
        url: str,
        *,
        settings: configuration.OperatorSettings,
        context: auth.APIContext,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        stopper: Optional[aiotasks.Future] = None,
        logger: typedefs.Logger,
) -> AsyncIterator[Any]:
    """
    Yield the parsed JSON-lines of a long-lived response until it ends.

    When the stopper future is resolved, the response is closed from our side,
    and the stream ends quietly instead of failing with a connection error.
    """
    response = await request('get', url, headers=headers, timeout=timeout,
                             settings=settings, context=context, logger=logger)

    def close_response(_: aiotasks.Future) -> None:
        response.close()

    if stopper is not None:
        stopper.add_done_callback(close_response)
    try:
        async with response:
            async for line in iter_jsonlines(response.content):
                # The buffered lines arrive even after the stopper has closed the response.
                if stopper is not None and stopper.done():
                    break
                yield json.loads(line.decode('utf-8'))
    except aiohttp.ClientConnectionError:
        if stopper is None or not stopper.done():
            raise
    finally:
        if stopper is not None:
            stopper.remove_done_callback(close_response)


async def iter_jsonlines(
        content: aiohttp.StreamReader,
        chunk_size: int = 1024 * 1024,
) -> AsyncIterator[bytes]:
    """
    Split the response's content into non-empty lines, whatever the line length.

    ``async for line in response.content`` would do the same, but aiohttp
    limits the buffered line to 128 KB, while a single object in a watch-stream
    (e.g. with a big status or with embedded data) can take megabytes.
    """
    pending = b''
    async for chunk in content.iter_chunked(chunk_size):
        *lines, pending = (pending + chunk).split(b'\n')
        for line in lines:
            if line:
                yield line
    if pending:
        yield pending
