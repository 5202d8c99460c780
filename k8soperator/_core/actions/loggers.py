"""
Logging setup and the per-object logging of the operators.

The package itself only logs to the standard library's loggers
(``k8soperator`` and its children) and never configures the handlers,
except when explicitly asked to, e.g. from the CLI (see :func:`configure`).

The per-object messages carry a reference to the object they are about
(``k8s_ref``), so that the formatters could render them as prefixes
(``[namespace/name] message``) or as a separate field in JSON logs.
"""
import copy
import enum
import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, TextIO

# Both module layouts of python-json-logger are in use: before and after 3.1.0.
try:
    from pythonjsonlogger.core import RESERVED_ATTRS as _pjl_RESERVED_ATTRS
    from pythonjsonlogger.json import JsonFormatter as _pjl_JsonFormatter
except ImportError:
    from pythonjsonlogger.jsonlogger import JsonFormatter as _pjl_JsonFormatter  # type: ignore
    from pythonjsonlogger.jsonlogger import RESERVED_ATTRS as _pjl_RESERVED_ATTRS  # type: ignore

from k8soperator._cogs.helpers import typedefs
from k8soperator._cogs.structs import bodies

# The key of the object reference in JSON logs, unless overridden.
DEFAULT_JSON_REFKEY = 'object'

# The severities as understood by the log collectors, from the lowest to the highest.
SEVERITIES = [
    (logging.DEBUG, 'debug'),
    (logging.INFO, 'info'),
    (logging.WARNING, 'warn'),
    (logging.ERROR, 'error'),
]


class LogFormat(enum.Enum):
    """ The log formats available in the CLI. """
    PLAIN = '%(message)s'
    FULL = '[%(asctime)s] %(name)-20.20s [%(levelname)-8.8s] %(message)s'
    JSON = '-json-'  # a marker only; JSON is rendered by its own formatter.


def get_severity(levelno: int) -> str:
    for threshold, severity in SEVERITIES:
        if levelno <= threshold:
            return severity
    return 'fatal'


class ObjectFormatter(logging.Formatter):
    """ A base of our own formatters, to recognise them among others. """


class ObjectTextFormatter(ObjectFormatter, logging.Formatter):
    pass


class ObjectJsonFormatter(ObjectFormatter, _pjl_JsonFormatter):
    """
    A JSON formatter with the object reference and the severity as fields.

    The reference goes under the ``refkey`` field (``object`` by default)
    instead of the raw ``k8s_ref`` attribute of the record.
    """

    def __init__(
            self,
            *args: Any,
            refkey: str | None = None,
            **kwargs: Any,
    ) -> None:
        reserved_attrs = set(kwargs.pop('reserved_attrs', _pjl_RESERVED_ATTRS)) | {'k8s_ref'}
        kwargs.setdefault('timestamp', True)
        super().__init__(*args, reserved_attrs=reserved_attrs, **kwargs)
        self._refkey: str = refkey or DEFAULT_JSON_REFKEY

    def add_fields(
            self,
            log_record: dict[str, object],
            record: logging.LogRecord,
            message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        ref = getattr(record, 'k8s_ref', None)
        if ref is not None:
            log_record[self._refkey] = ref
        log_record.setdefault('severity', get_severity(record.levelno))


class ObjectPrefixingMixin(ObjectFormatter):
    """ Prepend the object's ``[namespace/name]`` (or ``[name]``) to the message. """

    def format(self, record: logging.LogRecord) -> str:
        ref = getattr(record, 'k8s_ref', None)
        if ref is not None:
            name = ref.get('name') or ''
            namespace = ref.get('namespace') or ''
            prefix = f"[{namespace}/{name}]" if namespace else f"[{name}]"
            record = copy.copy(record)  # other handlers must see the original message.
            record.msg = f"{prefix} {record.msg}"
        return super().format(record)


class ObjectPrefixingTextFormatter(ObjectPrefixingMixin, ObjectTextFormatter):
    pass


class ObjectPrefixingJsonFormatter(ObjectPrefixingMixin, ObjectJsonFormatter):
    pass


class ObjectLogger(typedefs.LoggerAdapter):
    """
    A logger adapter for the messages about one specific object.

    It attaches the object's reference (as in K8s ``ObjectReference``,
    limited to what is known from the object's metadata) to every record.
    """

    def __init__(self, logger: typedefs.Logger, *, meta: bodies.ResourceMeta) -> None:
        k8s_ref = dict(
            apiVersion=meta.api_version,
            kind=meta.kind,
            name=meta.name,
            namespace=meta.namespace,
        )
        super().__init__(logger, dict(k8s_ref=k8s_ref))

    def process(
            self,
            msg: str,
            kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        # The stdlib's adapters replace the message's extras; we merge them instead.
        kwargs["extra"] = dict(self.extra or {}, **kwargs.get('extra', {}))
        return msg, kwargs


# Our own handlers are recognised by type, so that re-configuring replaces them.
if TYPE_CHECKING:
    class _OperatorStreamHandler(logging.StreamHandler[TextIO]):
        pass
else:
    class _OperatorStreamHandler(logging.StreamHandler):
        pass


def configure(
        debug: bool | None = None,
        verbose: bool | None = None,
        quiet: bool | None = None,
        log_format: LogFormat | str = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> None:
    """
    Configure the root logger for an operator's process (as the CLI does).

    ``debug`` or ``verbose`` log everything, ``quiet`` only warnings & errors.
    The ``asyncio`` messages are only shown in the debug mode.
    """
    handler = _OperatorStreamHandler()
    handler.setFormatter(make_formatter(log_format=log_format, log_prefix=log_prefix,
                                        log_refkey=log_refkey))

    root = logging.getLogger()
    root.handlers[:] = [h for h in root.handlers if not isinstance(h, _OperatorStreamHandler)]
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug or verbose else logging.WARNING if quiet else logging.INFO)

    # A null handler, so that the non-propagated messages are not printed by the last resort.
    asyncio_logger = logging.getLogger('asyncio')
    asyncio_logger.propagate = bool(debug)
    if not debug:
        asyncio_logger.handlers[:] = [logging.NullHandler()]


def make_formatter(
        log_format: LogFormat | str = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> ObjectFormatter:
    """
    Pick a formatter for the format. Without an explicit choice,
    text logs are prefixed with the objects' names, JSON logs are not.
    """
    if log_prefix is None:
        log_prefix = log_format is not LogFormat.JSON

    match log_format:
        case LogFormat.JSON:
            json_cls = ObjectPrefixingJsonFormatter if log_prefix else ObjectJsonFormatter
            return json_cls(refkey=log_refkey)
        case LogFormat(value=fmt) | (str() as fmt):
            text_cls = ObjectPrefixingTextFormatter if log_prefix else ObjectTextFormatter
            return text_cls(fmt)
        case _:
            raise ValueError(f"Unsupported log format: {log_format!r}")
