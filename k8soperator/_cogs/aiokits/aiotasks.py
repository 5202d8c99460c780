"""
Helpers for the background tasks of the operators.

The operator runs a few long-living tasks: the dispatcher and one watcher
per resource type. Nobody awaits them until the operator ends, so their
failures must be logged when they happen, and their ends must be awaited
and their errors re-raised explicitly at the operator's exit.
"""
import asyncio
from typing import TYPE_CHECKING, Any, Collection, Coroutine, Optional, Set, Tuple

from k8soperator._cogs.helpers import typedefs

# The generic aliases are only subscriptable for the type-checkers.
if TYPE_CHECKING:
    Future = asyncio.Future[Any]
    Task = asyncio.Task[Any]
else:
    Future = asyncio.Future
    Task = asyncio.Task


async def guard(
        coro: Coroutine[Any, Any, Any],
        name: str,
        *,
        finishable: bool = False,
        cancellable: bool = False,
        logger: Optional[typedefs.Logger] = None,
) -> None:
    """
    Run a background coroutine and log how it ended.

    Failures are always logged (and re-raised, so that the task keeps them).
    A regular exit is a warning unless the task is ``finishable``;
    a cancellation is a debug message unless the task is ``cancellable``.
    """
    title = name[:1].upper() + name[1:]
    try:
        await coro
    except asyncio.CancelledError:
        if logger is not None and not cancellable:
            logger.debug(f"{title} is cancelled.")
        raise
    except Exception as e:
        if logger is not None:
            logger.exception(f"{title} has failed: {e}")
        raise
    if logger is not None and not finishable:
        logger.warning(f"{title} has finished unexpectedly.")


def create_guarded_task(
        coro: Coroutine[Any, Any, Any],
        name: str,
        *,
        finishable: bool = False,
        cancellable: bool = False,
        logger: Optional[typedefs.Logger] = None,
) -> Task:
    """ Start a named task wrapped into :func:`guard`. """
    guarded = guard(coro, name, finishable=finishable, cancellable=cancellable, logger=logger)
    return asyncio.create_task(guarded, name=name)


async def wait(
        tasks: Collection[Task],
        *,
        timeout: Optional[float] = None,
        return_when: Any = asyncio.ALL_COMPLETED,
) -> Tuple[Set[Task], Set[Task]]:
    """ Same as :func:`asyncio.wait`, but an empty collection is not an error. """
    if tasks:
        return await asyncio.wait(tasks, timeout=timeout, return_when=return_when)
    return set(), set()


async def stop(
        tasks: Collection[Task],
        *,
        title: str,
        logger: Optional[typedefs.Logger] = None,
) -> Set[Task]:
    """
    Cancel the tasks and wait until all of them are finished.

    There is no timeout: the tasks are expected to react to the cancellation.
    """
    for task in tasks:
        task.cancel()
    done, pending = await wait(tasks)
    if tasks and logger is not None:
        logger.debug(f"{title} tasks are stopped: {len(done)} done, {len(pending)} pending.")
    return done


async def reraise(
        tasks: Collection[Task],
) -> None:
    """
    Raise the first error of the finished tasks; ignore the cancelled ones.
    """
    for task in tasks:
        if task.done() and not task.cancelled() and task.exception() is not None:
            task.result()
