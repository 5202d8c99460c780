from typing import Any, Mapping, Optional

from k8soperator._cogs.clients import api, auth
from k8soperator._cogs.configs import configuration
from k8soperator._cogs.helpers import typedefs
from k8soperator._cogs.structs import bodies, references


async def create_obj(
        *,
        settings: configuration.OperatorSettings,
        context: auth.APIContext,
        resource: references.Resource,
        body: Mapping[str, Any],
        logger: typedefs.Logger,
) -> Optional[bodies.RawBody]:
    """
    Create a resource.

    The namespace is taken from the body; cluster-scoped resources have none.
    """
    namespace = body.get('metadata', {}).get('namespace')
    created_body: Optional[bodies.RawBody] = await api.post(
        url=resource.get_url(namespace=namespace),
        payload=body,
        settings=settings,
        context=context,
        logger=logger,
    )
    return created_body
