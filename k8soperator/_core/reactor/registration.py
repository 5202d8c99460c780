"""
Registering the custom resource definitions (CRDs) in the cluster.

The registration is idempotent: if the definition already exists,
the cluster responds with HTTP 409 Conflict, which is treated as a success.
The existing definition is not updated or compared to the new one.
"""
import os
from typing import Any, Mapping, Union

from k8soperator._cogs.clients import auth, creating, errors
from k8soperator._cogs.configs import configuration
from k8soperator._cogs.helpers import loaders, typedefs
from k8soperator._cogs.structs import references

DefinitionSource = Union[Mapping[str, Any], str, 'os.PathLike[str]']


async def register_definition(
        *,
        settings: configuration.OperatorSettings,
        context: auth.APIContext,
        definition: DefinitionSource,
        logger: typedefs.Logger,
) -> references.Definition:
    """
    Create the CRD unless it exists; return its descriptor in both cases.

    The definition is either a parsed body, or a path to a YAML file with it.
    """
    body = definition if isinstance(definition, Mapping) else loaders.load_definition(definition)
    descriptor = references.Definition.from_body(body)
    name = descriptor.name or f'{descriptor.plural}.{descriptor.group}'

    api_version = str(body.get('apiVersion', ''))
    crd_version = api_version.rpartition('/')[2] if '/' in api_version else None
    resource = references.make_crd_resource(crd_version)

    try:
        await creating.create_obj(
            settings=settings,
            context=context,
            resource=resource,
            body=body,
            logger=logger,
        )
    except errors.APIConflictError:
        logger.info(f"custom resource definition '{name}' is already registered")
    else:
        logger.info(f"registered custom resource definition '{name}'")
    return descriptor
