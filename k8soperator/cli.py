"""
The command-line interface: ``k8soperator run [paths] [-m modules]``.

All the options can also be set via the environment variables
prefixed with ``K8SOPERATOR_``, e.g. ``K8SOPERATOR_RUN_RECONNECT_BACKOFF=0.5``.
"""
import functools
from typing import Any, Callable, List, Optional

import click

from k8soperator._cogs.helpers import loaders
from k8soperator._core.actions import loggers
from k8soperator._core.reactor import running


class LogFormatParamType(click.Choice):
    """ The log format by its lowercase name, e.g. ``--log-format=json``. """

    def __init__(self) -> None:
        super().__init__(choices=[fmt.name.lower() for fmt in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        if isinstance(value, loggers.LogFormat):
            return value
        return loggers.LogFormat[str(super().convert(value, param, ctx)).upper()]


LOGGING_OPTIONS = [
    click.option('-v', '--verbose', is_flag=True),
    click.option('-d', '--debug', is_flag=True),
    click.option('-q', '--quiet', is_flag=True),
    click.option('--log-format', type=LogFormatParamType(), default='full'),
    click.option('--log-refkey', type=str),
    click.option('--log-prefix/--no-log-prefix', default=None),
]


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ Add the logging options to a command and configure logging before it runs. """

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        loggers.configure(
            debug=kwargs.pop('debug'),
            verbose=kwargs.pop('verbose'),
            quiet=kwargs.pop('quiet'),
            log_format=kwargs.pop('log_format'),
            log_prefix=kwargs.pop('log_prefix'),
            log_refkey=kwargs.pop('log_refkey'),
        )
        return fn(*args, **kwargs)

    for option in reversed(LOGGING_OPTIONS):
        wrapper = option(wrapper)
    return wrapper


@click.version_option(prog_name='k8soperator')
@click.group(name='k8soperator', context_settings=dict(
    auto_envvar_prefix='K8SOPERATOR',
))
def main() -> None:
    pass


@main.command()
@logging_options
@click.option('--reconnect-backoff', type=float, default=None)
@click.option('--server-timeout', type=int, default=None)
@click.option('-m', '--module', 'modules', multiple=True)
@click.argument('paths', nargs=-1)
def run(
        paths: List[str],
        modules: List[str],
        reconnect_backoff: Optional[float],
        server_timeout: Optional[int],
) -> None:
    """ Start the operators found in the files/modules, and serve them. """
    loaded = loaders.preload(
        paths=paths,
        modules=modules,
    )

    # Only the module-level instances are served, in the order of their definition.
    operators: List[running.Operator] = []
    for module in loaded:
        for value in vars(module).values():
            if isinstance(value, running.Operator) and value not in operators:
                operators.append(value)
    if not operators:
        raise click.UsageError("No operators are found in the given files/modules.")

    for operator in operators:
        if reconnect_backoff is not None:
            operator.settings.watching.reconnect_backoff = reconnect_backoff
        if server_timeout is not None:
            operator.settings.watching.server_timeout = server_timeout

    return running.run(operators)
