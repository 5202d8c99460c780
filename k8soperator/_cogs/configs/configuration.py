"""
The tunable settings of an operator, grouped by the area they affect.

Every operator has its own settings object (``Operator(settings=...)``);
the CLI options override some of them. All of them have working defaults.
"""
import dataclasses
from typing import Iterable, Optional


@dataclasses.dataclass
class WatchingSettings:

    server_timeout: Optional[int] = None
    """
    Asks the server to end every watch-request after this many seconds
    (sent as ``timeoutSeconds``). If ``None``, the server decides.
    The API accepts only whole seconds, so the fractions are truncated.
    """

    client_timeout: Optional[float] = None
    """
    The client-side limit for the whole duration of a watch-request, in seconds.
    """

    connect_timeout: Optional[float] = None
    """
    The client-side limit for connecting to the server for a watch-request.
    """

    reconnect_backoff: float = 0.1
    """
    How long should a pause be between watch requests (to prevent API flooding).

    The pause is the same after every disconnect, regardless of the reason
    (a server-side timeout, a network failure, an API error) and regardless
    of how many times in a row the stream has failed: there is no growth.
    Increase it if the API server can be persistently unavailable.
    """


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: Optional[float] = None
    """
    A timeout for the regular (non-streaming) API requests, in seconds.
    If ``None``, the requests wait for as long as needed.
    """

    connect_timeout: Optional[float] = None
    """
    A timeout for establishing the connection to the API server, in seconds.
    """

    error_backoffs: Iterable[float] = ()
    """
    Backoffs (in seconds) between the retries of the failed API requests.

    Only the connection errors, timeouts, and the server-side errors (HTTP 5xx)
    are retried. The number of retries is the number of backoffs given.
    By default, nothing is retried: the errors go to the caller immediately,
    and the watch-streams are re-established on their own.
    """


@dataclasses.dataclass
class QueueingSettings:

    fatal_errors: bool = True
    """
    Should the errors in the event callbacks stop the whole operator?

    If ``True`` (the default), the first error escapes the dispatching queue,
    all the watch-streams are stopped, and the error is re-raised from
    the operator's run. If ``False``, the error is logged with its traceback,
    and the next queued event is dispatched as usual.
    """


@dataclasses.dataclass
class OperatorSettings:
    watching: WatchingSettings = dataclasses.field(default_factory=WatchingSettings)
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
    queueing: QueueingSettings = dataclasses.field(default_factory=QueueingSettings)
