"""
The registry of the watched resource types of a single operator.

For every watched resource type (by its id), the registry keeps a builder
of the URLs of the status sub-resources -- used by the status updates --
and the handle of the currently active watch-request -- used for stopping.

The registry is owned by its operator and is never shared across operators.
All access happens in the operator's event loop, so there are no locks.
"""
import asyncio
import dataclasses
from typing import Callable, Dict, Iterator, Optional

from k8soperator._cogs.aiokits import aiotasks
from k8soperator._cogs.structs import bodies, references

StatusPathBuilder = Callable[[bodies.ResourceMeta], str]


def make_status_path_builder(resource: references.Resource) -> StatusPathBuilder:
    def build_status_path(meta: bodies.ResourceMeta) -> str:
        namespace = references.NamespaceName(meta.namespace) if meta.namespace else None
        return resource.get_url(namespace=namespace, name=meta.name, subresource='status')
    return build_status_path


@dataclasses.dataclass
class WatchRegistration:
    resource: references.Resource
    status_path: StatusPathBuilder
    handle: Optional[aiotasks.Future] = None  # replaced on every re-connection


class WatchRegistry:

    def __init__(self) -> None:
        super().__init__()
        self._registrations: Dict[references.ResourceId, WatchRegistration] = {}
        self._stopped = False

    def __contains__(self, id: object) -> bool:
        return id in self._registrations

    def __iter__(self) -> Iterator[references.ResourceId]:
        return iter(self._registrations)

    @property
    def stopped(self) -> bool:
        return self._stopped

    def register(self, resource: references.Resource) -> WatchRegistration:
        registration = WatchRegistration(
            resource=resource,
            status_path=make_status_path_builder(resource),
        )
        self._registrations[resource.id] = registration
        return registration

    def get_status_url(self, meta: bodies.ResourceMeta) -> str:
        try:
            registration = self._registrations[meta.id]
        except KeyError:
            raise LookupError(f"Resource {meta.id!r} is not watched; its status path is unknown.")
        return registration.status_path(meta)

    def replace_handle(self, id: references.ResourceId) -> aiotasks.Future:
        """
        Create a stopper for a new watch-request, and remember it for stopping.

        If the registry is already stopped, the stopper is resolved instantly,
        so that the watch-request is never made.
        """
        handle: aiotasks.Future = asyncio.get_running_loop().create_future()
        if self._stopped:
            handle.set_result(None)
        self._registrations[id].handle = handle
        return handle

    def stop_all(self) -> None:
        """
        Abort all currently active watch-requests and prevent the new ones.
        """
        self._stopped = True
        for registration in self._registrations.values():
            if registration.handle is not None and not registration.handle.done():
                registration.handle.set_result(None)
