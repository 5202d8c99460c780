"""
The main module for all the exported functions & classes of the operators.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the package's top-level interface,
# as it is seen by the users. So, we export the individual functions.

import logging

from k8soperator._cogs.configs.configuration import (
    OperatorSettings,
    WatchingSettings,
    NetworkingSettings,
    QueueingSettings,
)
from k8soperator._cogs.helpers.typedefs import (
    Logger,
)
from k8soperator._cogs.helpers.versions import (
    version as __version__,
)
from k8soperator._cogs.clients.errors import (
    APIError,
    APIServerError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIConflictError,
)
from k8soperator._cogs.clients.watching import (
    WatchingError,
)
from k8soperator._cogs.structs.bodies import (
    MalformedResourceError,
    ResourceEventType,
    ResourceEvent,
    ResourceMeta,
    RawBody,
    RawEvent,
)
from k8soperator._cogs.structs.credentials import (
    LoginError,
    ConnectionInfo,
)
from k8soperator._cogs.structs.references import (
    Definition,
    Resource,
)
from k8soperator._core.actions.loggers import (
    configure,
    LogFormat,
    ObjectLogger,
)
from k8soperator._core.intents.piggybacking import (
    login,
    login_with_kubeconfig,
    login_with_service_account,
)
from k8soperator._core.reactor.running import (
    Operator,
    OperatorSetup,
    run,
)

# The package is silent unless the application configures the logging.
logging.getLogger('k8soperator').addHandler(logging.NullHandler())

__all__ = [
    'Operator', 'OperatorSetup', 'run',
    'configure', 'LogFormat', 'ObjectLogger', 'Logger',
    'login',
    'login_with_kubeconfig',
    'login_with_service_account',
    'LoginError',
    'ConnectionInfo',
    'OperatorSettings',
    'WatchingSettings',
    'NetworkingSettings',
    'QueueingSettings',
    'Definition',
    'Resource',
    'ResourceMeta',
    'ResourceEvent',
    'ResourceEventType',
    'MalformedResourceError',
    'RawBody',
    'RawEvent',
    'WatchingError',
    'APIError',
    'APIServerError',
    'APIUnauthorizedError',
    'APIForbiddenError',
    'APINotFoundError',
    'APIConflictError',
]
