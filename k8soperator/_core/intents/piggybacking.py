"""
Login into the cluster: in-cluster via a service account, or via kubeconfigs.

Only the static credentials are read: tokens, certificates, passwords.
The auth-providers & exec-plugins are not executed; only a provider's
already issued access-token is used, if it is present.

.. seealso::
    :mod:`credentials` and :mod:`auth`.
"""
import os
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml

from k8soperator._cogs.helpers import typedefs
from k8soperator._cogs.structs import credentials

# As per https://kubernetes.io/docs/tasks/run-application/access-api-from-pod/
SERVICE_ACCOUNT_DIR = '/var/run/secrets/kubernetes.io/serviceaccount'
SERVICE_ACCOUNT_SERVER = 'https://kubernetes.default.svc'
DEFAULT_KUBECONFIG = '~/.kube/config'


def login(
        *,
        logger: typedefs.Logger,
) -> credentials.ConnectionInfo:
    """
    Log in with the first available method: in-cluster first, kubeconfig second.
    """
    info = login_with_service_account()
    if info is not None:
        logger.debug("Logged in with the in-cluster service account.")
        return info

    info = login_with_kubeconfig()
    if info is not None:
        logger.debug("Logged in with the kubeconfig files.")
        return info

    raise credentials.LoginError("Cannot authenticate neither in-cluster, nor via kubeconfig.")


def _read_stripped(path: str) -> str:
    with open(path, encoding='utf-8') as f:
        return f.read().strip()


def login_with_service_account(**_: Any) -> Optional[credentials.ConnectionInfo]:
    """
    Use the token & CA of the pod's service account, if running in a cluster.
    """
    token_path = os.path.join(SERVICE_ACCOUNT_DIR, 'token')
    ns_path = os.path.join(SERVICE_ACCOUNT_DIR, 'namespace')
    ca_path = os.path.join(SERVICE_ACCOUNT_DIR, 'ca.crt')

    if not os.path.exists(token_path):
        return None

    token = _read_stripped(token_path)
    namespace = _read_stripped(ns_path) if os.path.exists(ns_path) else None
    return credentials.ConnectionInfo(
        server=SERVICE_ACCOUNT_SERVER,
        ca_path=ca_path if os.path.exists(ca_path) else None,
        token=token or None,
        default_namespace=namespace or None,
    )


def login_with_kubeconfig(**_: Any) -> Optional[credentials.ConnectionInfo]:
    """
    Use the current context of the kubeconfig files, if there are any.

    The files are taken from ``$KUBECONFIG`` (separated as ``$PATH`` is),
    or the default ``~/.kube/config`` if it exists. For the same names
    (of the current context, of contexts, clusters, users), the first file wins.
    An absent or unparseable file listed in ``$KUBECONFIG`` is an error.
    """
    # As per https://kubernetes.io/docs/concepts/configuration/organize-cluster-access-kubeconfig/
    kubeconfig = os.environ.get('KUBECONFIG')
    if not kubeconfig and os.path.exists(os.path.expanduser(DEFAULT_KUBECONFIG)):
        kubeconfig = DEFAULT_KUBECONFIG
    if not kubeconfig:
        return None

    paths = [os.path.expanduser(path.strip()) for path in kubeconfig.split(os.pathsep)]
    current_context, contexts, clusters, users = _merge_kubeconfigs([p for p in paths if p])
    if current_context is None:
        raise credentials.LoginError('Current context is not set in kubeconfigs.')

    try:
        context = contexts[current_context]
        cluster = clusters[context['cluster']]
    except KeyError as e:
        raise credentials.LoginError(f'Kubeconfig context {current_context!r} is incomplete: {e}')
    user = users.get(context.get('user'), {})

    # Only the token issued earlier; refreshing it would need the provider's own client.
    provider_config = (user.get('auth-provider') or {}).get('config') or {}
    return credentials.ConnectionInfo(
        server=cluster.get('server'),
        ca_path=cluster.get('certificate-authority'),
        ca_data=cluster.get('certificate-authority-data'),
        insecure=cluster.get('insecure-skip-tls-verify'),
        certificate_path=user.get('client-certificate'),
        certificate_data=user.get('client-certificate-data'),
        private_key_path=user.get('client-key'),
        private_key_data=user.get('client-key-data'),
        username=user.get('username'),
        password=user.get('password'),
        token=user.get('token') or provider_config.get('access-token'),
        default_namespace=context.get('namespace'),
    )


def _merge_kubeconfigs(
        paths: Iterable[str],
) -> Tuple[Optional[str], Dict[str, Any], Dict[str, Any], Dict[str, Any]]:
    current_context: Optional[str] = None
    sections: Dict[str, Dict[str, Any]] = {'contexts': {}, 'clusters': {}, 'users': {}}
    for path in paths:
        with open(path, encoding='utf-8') as f:
            config: Mapping[str, Any] = yaml.safe_load(f.read()) or {}

        if current_context is None:
            current_context = config.get('current-context')
        for section, items in sections.items():
            field = section[:-1]  # contexts -> context, etc.
            for item in config.get(section) or []:
                items.setdefault(item['name'], item.get(field) or {})

    return current_context, sections['contexts'], sections['clusters'], sections['users']
