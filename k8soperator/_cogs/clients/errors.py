"""
Errors of the cluster API, independent of the HTTP client library.

Every non-2xx response becomes an :class:`APIError` (or one of its subclasses
for the statuses that the operators handle specially, e.g. "409 Conflict" when
a custom resource definition already exists). The K8s ``Status`` object of the
response, if any, is exposed via the error's properties.

The networking failures (connection, SSL, timeouts) are not API errors;
they are raised as they come from ``aiohttp``.
"""
import collections.abc
import json
from typing import Collection, Dict, Optional, Type

import aiohttp
from typing_extensions import Literal, TypedDict


class RawStatusCause(TypedDict):
    field: str
    reason: str
    message: str


class RawStatusDetails(TypedDict):
    name: str
    uid: str
    retryAfterSeconds: int
    kind: str
    group: str
    causes: Collection[RawStatusCause]


# https://kubernetes.io/docs/reference/kubernetes-api/common-definitions/status/
class RawStatus(TypedDict, total=False):
    apiVersion: str
    kind: Literal["Status"]
    code: int
    status: Literal["Success", "Failure"]
    reason: str
    message: str
    details: RawStatusDetails


class APIError(Exception):
    """ A failed API call, with the HTTP status and the K8s ``Status`` payload. """

    def __init__(self, payload: Optional[RawStatus], *, status: int) -> None:
        super().__init__(payload.get('message') if payload else None, payload)
        self.status = status
        self.payload = payload

    @property
    def code(self) -> Optional[int]:
        return self.payload.get('code') if self.payload else None

    @property
    def message(self) -> Optional[str]:
        return self.payload.get('message') if self.payload else None

    @property
    def details(self) -> Optional[RawStatusDetails]:
        return self.payload.get('details') if self.payload else None


class APIServerError(APIError):
    """ Any 5xx status. """


class APIUnauthorizedError(APIError):
    """ 401 Unauthorized. """


class APIForbiddenError(APIError):
    """ 403 Forbidden. """


class APINotFoundError(APIError):
    """ 404 Not Found. """


class APIConflictError(APIError):
    """ 409 Conflict, e.g. when an object already exists. """


_ERRORS_BY_STATUS: Dict[int, Type[APIError]] = {
    401: APIUnauthorizedError,
    403: APIForbiddenError,
    404: APINotFoundError,
    409: APIConflictError,
}


def get_error_class(status: int) -> Type[APIError]:
    if 500 <= status < 600:
        return APIServerError
    return _ERRORS_BY_STATUS.get(status, APIError)


async def read_status(response: aiohttp.ClientResponse) -> Optional[RawStatus]:
    """
    Read the K8s ``Status`` object from an error response, if it is there.

    Only the ``Status`` objects are exposed: other payloads of the failed
    responses are ignored, since it is unknown what they can contain.
    """
    try:
        payload = await response.json()
    except (json.JSONDecodeError, aiohttp.ContentTypeError, aiohttp.ClientConnectionError):
        return None
    if isinstance(payload, collections.abc.Mapping) and payload.get('kind') == 'Status':
        return payload  # type: ignore
    return None


async def check_response(
        response: aiohttp.ClientResponse,
) -> None:
    """
    Raise an :class:`APIError` (or a more specific one) for a failed response.
    """
    if response.status < 400:
        return

    payload = await read_status(response)
    cls = get_error_class(response.status)

    # The client library's error is chained as the cause; it also releases the response.
    try:
        response.raise_for_status()
    except aiohttp.ClientResponseError as e:
        raise cls(payload, status=response.status) from e
