import pytest

from k8soperator._cogs.structs.bodies import ResourceEvent, ResourceEventType, ResourceMeta
from k8soperator._core.reactor.queueing import Dispatcher


@pytest.fixture()
def dispatcher(settings, logger):
    return Dispatcher(settings=settings, logger=logger)


@pytest.fixture()
def make_event(resource):
    def make_event_fn(name='foo', type=ResourceEventType.ADDED, id=resource.id, namespace='ns1'):
        body = {
            'apiVersion': 'example.com/v1',
            'kind': 'Widget',
            'metadata': {'name': name, 'namespace': namespace, 'resourceVersion': '1'},
        }
        meta = ResourceMeta.from_body(id, body)
        return ResourceEvent(meta=meta, type=type, object=body)
    return make_event_fn
