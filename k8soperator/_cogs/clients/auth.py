"""
The API session of an operator, with the credentials applied.

One :class:`APIContext` is made per operator on its start and is passed to
every API call, both the one-shot requests and the watch-streams, so that the
same SSL settings and authorization headers are used everywhere.
"""
import base64
import contextlib
import os
import ssl
import tempfile

import aiohttp

from k8soperator._cogs.helpers import versions
from k8soperator._cogs.structs import credentials

PathLike = str | bytes | os.PathLike[str] | os.PathLike[bytes]


class APIContext:
    """
    The aiohttp session plus the connection info needed to build the URLs.

    The whole operator runs in one event loop, so one session is enough.
    The open responses (e.g. of the watch-streams) are tracked, so that
    they are closed together with the session.
    """

    session: aiohttp.ClientSession
    server: str
    default_namespace: str | None
    responses: list[aiohttp.ClientResponse]

    def __init__(
            self,
            info: credentials.ConnectionInfo,
    ) -> None:
        super().__init__()
        self.server = info.server
        self.default_namespace = info.default_namespace
        self.responses = []
        self.session = self.make_aiohttp_session(info)
        self.session.headers.setdefault('User-Agent', f'k8soperator/{versions.version or "unknown"}')

    def make_aiohttp_session(self, info: credentials.ConnectionInfo) -> aiohttp.ClientSession:
        auth: aiohttp.BasicAuth | None = None
        if info.username and info.password:
            auth = aiohttp.BasicAuth(info.username, info.password)
        return aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=0, ssl=make_ssl_context(info)),
            headers=make_auth_headers(info),
            auth=auth,
        )

    def add_response(self, response: aiohttp.ClientResponse) -> None:
        self.responses[:] = [known for known in self.responses if not known.closed]
        if not response.closed:
            self.responses.append(response)

    async def close(self) -> None:
        # The streaming responses keep the connections busy; the session would wait for them.
        for response in self.responses:
            response.close()
        self.responses.clear()
        await self.session.close()


def make_auth_headers(info: credentials.ConnectionInfo) -> dict[str, str]:
    """ The ``Authorization`` header for the token (Bearer unless said otherwise). """
    if info.scheme and info.token:
        return {'Authorization': f'{info.scheme} {info.token}'}
    elif info.scheme:
        return {'Authorization': info.scheme}
    elif info.token:
        return {'Authorization': f'Bearer {info.token}'}
    else:
        return {}


def make_ssl_context(info: credentials.ConnectionInfo) -> ssl.SSLContext:
    """
    The SSL context with the cluster's CA and the client certificate, if any.

    The ``ssl`` module loads the client certificates only from files, so the
    inline certificate data are written to temporary files for the loading
    time only. No files are created when not needed (e.g. on read-only disks).
    """
    context = ssl.create_default_context(
        purpose=ssl.Purpose.SERVER_AUTH,
        cafile=info.ca_path,
        cadata=decode_to_pem(info.ca_data) if info.ca_data is not None else None,
    )

    with contextlib.ExitStack() as stack:
        cert_path = _as_file(stack, info.certificate_path, info.certificate_data)
        pkey_path = _as_file(stack, info.private_key_path, info.private_key_data)
        if cert_path and pkey_path:
            context.load_cert_chain(certfile=cert_path, keyfile=pkey_path)

    if info.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def _as_file(
        stack: contextlib.ExitStack,
        path: str | None,
        data: str | bytes | None,
) -> PathLike | None:
    if path:
        return path
    if not data:
        return None
    file = stack.enter_context(tempfile.NamedTemporaryFile(buffering=0))
    file.write(decode_to_pem(data).encode('ascii'))
    return file.name


def decode_to_pem(data: str | bytes) -> str:
    """ Accept both the PEM text and the base64-encoded PEM (as in kubeconfigs). """
    if isinstance(data, bytes):
        if data.startswith(b'-----BEGIN '):
            return data.decode('ascii')
    elif data.startswith('-----BEGIN '):
        return data
    return base64.b64decode(data).decode('ascii')
