"""
All the structures coming from/to the Kubernetes API.

Everything marked "raw" is a plain unwrapped unprocessed data as JSON-decoded
from Kubernetes API, usually as retrieved in watching or fetching API calls.
"Input" is a parsed JSON as is, while "event" is an "input" without "errors".
All non-used payload falls into `Any`, and is not type-checked.

The typed and validated structures (`ResourceMeta`, `ResourceEvent`)
are what the operators' callbacks get; the raw bodies are delivered as is.
"""
import dataclasses
import enum
from typing import Any, Dict, Mapping, Optional, Union

from typing_extensions import Literal, TypedDict

from k8soperator._cogs.structs import references

RawInputType = Literal['ADDED', 'MODIFIED', 'DELETED', 'ERROR']
RawEventType = Literal['ADDED', 'MODIFIED', 'DELETED']


class RawMeta(TypedDict, total=False):
    uid: str
    name: str
    namespace: str
    resourceVersion: str


class RawBody(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawMeta
    spec: Mapping[str, Any]
    status: Mapping[str, Any]


# A special payload for type==ERROR (this is not a connection or client error).
class RawError(TypedDict, total=False):
    apiVersion: str     # usually: Literal['v1']
    kind: str           # usually: Literal['Status']
    metadata: Mapping[Any, Any]
    code: int
    reason: str
    status: str
    message: str


# As received from the stream before processing the errors and special cases.
class RawInput(TypedDict, total=True):
    type: RawInputType
    object: Union[RawBody, RawError]


# As passed to the watchers after processing the errors and special cases.
class RawEvent(TypedDict, total=True):
    type: RawEventType
    object: RawBody


class MalformedResourceError(ValueError):
    """ Raised when an object lacks the fields needed to identify it. """


class ResourceEventType(str, enum.Enum):
    ADDED = 'ADDED'
    MODIFIED = 'MODIFIED'
    DELETED = 'DELETED'


@dataclasses.dataclass(frozen=True)
class ResourceMeta:
    """
    An identity snapshot of a specific resource object at a specific revision.

    It is created anew on every watch-event and on every status update,
    and is never modified afterwards. The ``id`` is the key of the resource
    type as it was registered for watching (``plural.group/version``).
    """
    id: references.ResourceId
    name: str
    namespace: Optional[str]
    resource_version: str
    api_version: str
    kind: str

    @classmethod
    def from_body(cls, id: str, body: Mapping[str, Any]) -> "ResourceMeta":
        metadata = body.get('metadata') if isinstance(body, Mapping) else None
        if (not isinstance(metadata, Mapping)
                or not metadata.get('name')
                or not metadata.get('resourceVersion')
                or not body.get('apiVersion')
                or not body.get('kind')):
            raise MalformedResourceError(f"Malformed event object for {id!r}.")
        return cls(
            id=references.ResourceId(id),
            name=metadata['name'],
            namespace=metadata.get('namespace') or None,
            resource_version=metadata['resourceVersion'],
            api_version=body['apiVersion'],
            kind=body['kind'],
        )


@dataclasses.dataclass(frozen=True)
class ResourceEvent:
    meta: ResourceMeta
    type: ResourceEventType
    object: RawBody


def build_status_body(meta: ResourceMeta, status: Any) -> Dict[str, Any]:
    """
    Build a minimal object body with only the identifying fields and the status.

    The resource version is included for the optimistic concurrency:
    the API rejects the update (HTTP 409) if the object was changed meanwhile.
    """
    metadata: Dict[str, Any] = {'name': meta.name, 'resourceVersion': meta.resource_version}
    if meta.namespace:
        metadata['namespace'] = meta.namespace
    return {
        'apiVersion': meta.api_version,
        'kind': meta.kind,
        'metadata': metadata,
        'status': status,
    }
