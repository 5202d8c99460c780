"""
Updating the status sub-resources of the objects.

Both a full replacement (PUT) and a JSON merge-patch (PATCH, RFC 7386)
are supported. Both behave the same on failures: the error is logged
and re-raised to the caller -- there is no silent swallowing of errors
and no fake empty response with an unparseable body.
"""
import asyncio
from typing import Any, Mapping

import aiohttp

from k8soperator._cogs.clients import api, auth, errors
from k8soperator._cogs.configs import configuration
from k8soperator._cogs.helpers import typedefs
from k8soperator._cogs.structs import bodies

MERGE_PATCH_HEADERS = {'Content-Type': 'application/merge-patch+json'}


async def replace_status(
        *,
        settings: configuration.OperatorSettings,
        context: auth.APIContext,
        url: str,
        body: Mapping[str, Any],
        logger: typedefs.Logger,
) -> bodies.RawBody:
    """
    Replace the status sub-resource of an object as a whole.

    The body must contain the object's identifying fields (and the resource
    version for the optimistic concurrency), the status goes as is.
    """
    try:
        replaced_body: bodies.RawBody = await api.put(
            url=url,
            payload=body,
            settings=settings,
            context=context,
            logger=logger,
        )
    except (errors.APIError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"Failed to set the status via {url}: {e!r}")
        raise
    return replaced_body


async def patch_status(
        *,
        settings: configuration.OperatorSettings,
        context: auth.APIContext,
        url: str,
        body: Mapping[str, Any],
        logger: typedefs.Logger,
) -> bodies.RawBody:
    """
    Patch the status sub-resource of an object with the JSON merge-patch.

    Only the specified fields are replaced; the absent fields remain as is;
    the fields with ``None`` values are removed.
    """
    try:
        patched_body: bodies.RawBody = await api.patch(
            url=url,
            payload=body,
            headers=MERGE_PATCH_HEADERS,
            settings=settings,
            context=context,
            logger=logger,
        )
    except (errors.APIError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"Failed to patch the status via {url}: {e!r}")
        raise
    return patched_body
