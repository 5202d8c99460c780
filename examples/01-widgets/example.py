import os.path

import k8soperator

CRD_PATH = os.path.join(os.path.dirname(__file__), 'crd.yaml')


async def setup(operator: k8soperator.Operator) -> None:
    definition = await operator.register_custom_resource_definition(CRD_PATH)
    await operator.watch_resource(definition.group, definition.version, definition.plural, on_widget)


async def on_widget(event: k8soperator.ResourceEvent) -> None:
    logger = k8soperator.ObjectLogger(operator.logger, meta=event.meta)
    logger.info(f"{event.type.value} at revision {event.meta.resource_version}")
    if event.type is k8soperator.ResourceEventType.ADDED:
        size = event.object.get('spec', {}).get('size', 0)
        meta = await operator.patch_resource_status(event.meta, {'size': size, 'phase': 'Ready'})
        logger.info(f"status is patched at revision {meta.resource_version}")


operator = k8soperator.Operator(setup)
