"""
The connection info for the cluster API, as found by the login functions.

It is limited to what a plain HTTP client can apply to its connections
and requests: the server URL, the SSL verification settings & client
certificates, and the ``Authorization`` header (a token or a username
with a password). The default namespace is kept for building the URLs.

.. seealso::
    :mod:`piggybacking` and :mod:`auth`.
"""
import dataclasses
from typing import Optional, Union


class LoginError(Exception):
    """ No credentials are found, or they are not usable. """


@dataclasses.dataclass(frozen=True)
class ConnectionInfo:
    """
    Where to connect and how to authenticate there.

    The certificates and keys are either paths to files, or their content
    (PEM or base64-encoded PEM, as in kubeconfigs); the paths take precedence.
    """
    server: str  # e.g. "https://localhost:6443"

    # TLS: the server verification.
    ca_path: Optional[str] = None
    ca_data: Optional[Union[str, bytes]] = None
    insecure: Optional[bool] = None

    # TLS: the client certificate.
    certificate_path: Optional[str] = None
    certificate_data: Optional[Union[str, bytes]] = None
    private_key_path: Optional[str] = None
    private_key_data: Optional[Union[str, bytes]] = None

    # HTTP: the authorization; a token goes as "Bearer" unless another scheme is set.
    scheme: Optional[str] = None
    token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    default_namespace: Optional[str] = None
