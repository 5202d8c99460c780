"""
The operator itself: its lifecycle and its public methods for the authors.

An operator is composed of the author-supplied setup coroutine, which
registers the custom resource definitions and starts watching the resources,
and of the machinery to watch, to dispatch, and to update the statuses.

Every operator has its own API session, its own registry of the watches,
and its own dispatch queue with its own worker. Multiple operators can run
in the same process & event loop; they share nothing but the event loop.
"""
import asyncio
import logging
import signal
import threading
from typing import Any, Collection, Dict, Mapping, Optional, Set

from typing_extensions import Protocol

from k8soperator._cogs.aiokits import aiotasks
from k8soperator._cogs.clients import auth, patching
from k8soperator._cogs.configs import configuration
from k8soperator._cogs.helpers import typedefs
from k8soperator._cogs.structs import bodies, credentials, references
from k8soperator._core.intents import piggybacking
from k8soperator._core.reactor import observation, queueing, registration, registries

logger = logging.getLogger('k8soperator')


class OperatorSetup(Protocol):
    """
    The one mandatory hook of an operator: what to register and to watch.

    It is awaited once on the operator's start, after the API session is ready.
    """
    async def __call__(self, operator: "Operator") -> None: ...


class Operator:
    """
    A base for the Kubernetes operators.

    Usage::

        async def setup(operator: k8soperator.Operator) -> None:
            await operator.register_custom_resource_definition('crd.yaml')
            await operator.watch_resource('example.com', 'v1', 'widgets', on_widget)

        async def on_widget(event: k8soperator.ResourceEvent) -> None:
            ...

        operator = k8soperator.Operator(setup)

    The operator is then started with ``k8soperator run module.py``,
    or with ``await operator.run()``, or with ``k8soperator.run([operator])``.
    """

    def __init__(
            self,
            setup: OperatorSetup,
            *,
            settings: Optional[configuration.OperatorSettings] = None,
            connection: Optional[credentials.ConnectionInfo] = None,
            logger: Optional[typedefs.Logger] = None,
    ) -> None:
        super().__init__()
        self.setup = setup
        self.settings = settings if settings is not None else configuration.OperatorSettings()
        self.connection = connection
        self.logger: typedefs.Logger = logger if logger is not None else logging.getLogger('k8soperator')
        self.registry = registries.WatchRegistry()
        self._context: Optional[auth.APIContext] = None
        self._dispatcher: Optional[queueing.Dispatcher] = None
        self._dispatcher_task: Optional[aiotasks.Task] = None
        self._watcher_tasks: Dict[references.ResourceId, aiotasks.Task] = {}
        self._stopped: Optional[asyncio.Event] = None

    @property
    def context(self) -> auth.APIContext:
        if self._context is None:
            raise RuntimeError("The operator is not started yet; the API session is absent.")
        return self._context

    @property
    def dispatcher(self) -> queueing.Dispatcher:
        if self._dispatcher is None:
            raise RuntimeError("The operator is not started yet; the dispatch queue is absent.")
        return self._dispatcher

    async def start(self) -> None:
        """
        Log in, start the dispatching, and then set up the operator.

        Any failure of the login or of the setup (e.g. a failed CRD registration)
        is propagated to the caller; there is no retrying at this stage.
        """
        info = self.connection if self.connection is not None else piggybacking.login(logger=self.logger)
        self._context = auth.APIContext(info)
        self._stopped = asyncio.Event()
        self._dispatcher = queueing.Dispatcher(settings=self.settings, logger=self.logger)
        self._dispatcher_task = aiotasks.create_guarded_task(
            name="dispatcher",
            coro=self._dispatcher(),
            logger=self.logger,
        )
        await self.setup(self)

    def stop(self) -> None:
        """
        Stop all the watches of this operator.

        The currently open watch-requests are closed, and no new ones are made.
        The events that are already queued are still dispatched (if running).
        """
        self.registry.stop_all()
        if self._stopped is not None:
            self._stopped.set()

    async def close(self) -> None:
        """
        Release all the resources of the operator: tasks, connections.
        """
        self.stop()
        tasks = list(self._watcher_tasks.values())
        if self._dispatcher_task is not None:
            tasks.append(self._dispatcher_task)
        await aiotasks.stop(tasks, title="Operator", logger=self.logger)
        if self._context is not None:
            await self._context.close()

    async def run(self) -> None:
        """
        Start the operator and serve it until stopped or until a fatal error.

        The operator ends when all its watchers are stopped (via :meth:`stop`),
        or when the dispatcher has failed on a callback (by default, fatally).
        The fatal callback error is re-raised here after the cleanup.
        """
        try:
            await self.start()
            await self._serve()
        finally:
            await self.close()
        tasks = list(self._watcher_tasks.values())
        if self._dispatcher_task is not None:
            tasks.insert(0, self._dispatcher_task)
        await aiotasks.reraise(tasks)

    async def _serve(self) -> None:
        assert self._stopped is not None
        assert self._dispatcher_task is not None
        stop_waiter = asyncio.create_task(self._stopped.wait(), name="stop-waiter")
        try:
            while True:
                watchers = {task for task in self._watcher_tasks.values() if not task.done()}
                crashed = {task for task in self._watcher_tasks.values()
                           if task.done() and not task.cancelled() and task.exception() is not None}
                if self._dispatcher_task.done() or crashed:
                    break
                if stop_waiter.done() and not watchers:
                    break

                waited: Set[aiotasks.Task] = {self._dispatcher_task} | watchers
                if not stop_waiter.done():
                    waited.add(stop_waiter)
                await aiotasks.wait(waited, return_when=asyncio.FIRST_COMPLETED)

            # Let the already queued events be dispatched, unless the dispatcher is dead.
            if not self._dispatcher_task.done():
                draining = asyncio.create_task(self.dispatcher.join(), name="draining")
                await aiotasks.wait({draining, self._dispatcher_task},
                                    return_when=asyncio.FIRST_COMPLETED)
                await aiotasks.stop([draining], title="Draining", logger=self.logger)
        finally:
            await aiotasks.stop([stop_waiter], title="Stop-waiter", logger=self.logger)

    async def register_custom_resource_definition(
            self,
            definition: registration.DefinitionSource,
    ) -> references.Definition:
        """
        Register a CRD (a parsed body or a path to a YAML file) unless it exists.
        """
        return await registration.register_definition(
            settings=self.settings,
            context=self.context,
            definition=definition,
            logger=self.logger,
        )

    def get_custom_resource_api_uri(
            self,
            group: str,
            version: str,
            plural: str,
            namespace: Optional[str] = None,
    ) -> str:
        """ The URL of the resource collection, either cluster-wide or namespaced. """
        resource = references.Resource(group, version, plural)
        return resource.get_url(
            server=self.context.server,
            namespace=references.NamespaceName(namespace) if namespace else None,
        )

    async def watch_resource(
            self,
            group: str,
            version: str,
            plural: str,
            on_event: queueing.EventCallback,
    ) -> None:
        """
        Start watching a resource type; deliver its events to the callback.

        The events of all the watched resource types are delivered one by one,
        in the order of arrival, via the single dispatch queue of the operator.
        Watching the same resource type again replaces its previous watcher.
        """
        resource = references.Resource(group, version, plural)
        previous = self._watcher_tasks.pop(resource.id, None)
        if previous is not None:
            await aiotasks.stop([previous], title=f"Watcher for {resource.id}", logger=self.logger)

        self.registry.register(resource)
        self._watcher_tasks[resource.id] = aiotasks.create_guarded_task(
            name=f"watcher for {resource.id}",
            finishable=True,
            cancellable=True,
            logger=self.logger,
            coro=observation.watcher(
                settings=self.settings,
                resource=resource,
                context=self.context,
                registry=self.registry,
                dispatcher=self.dispatcher,
                callback=on_event,
                logger=self.logger,
            ),
        )
        self.logger.info(f"watching resource {resource.id}")

    async def set_resource_status(
            self,
            meta: bodies.ResourceMeta,
            status: Any,
    ) -> bodies.ResourceMeta:
        """
        Replace the status of an object as a whole (PUT).

        Return the metadata of the updated object (with the new resource version).
        """
        url = self.registry.get_status_url(meta)
        body = bodies.build_status_body(meta, status)
        raw_body = await patching.replace_status(
            settings=self.settings,
            context=self.context,
            url=url,
            body=body,
            logger=self.logger,
        )
        return bodies.ResourceMeta.from_body(meta.id, raw_body)

    async def patch_resource_status(
            self,
            meta: bodies.ResourceMeta,
            status: Mapping[str, Any],
    ) -> bodies.ResourceMeta:
        """
        Merge the status fields into the object's status (PATCH, RFC 7386).

        Return the metadata of the updated object (with the new resource version).
        """
        url = self.registry.get_status_url(meta)
        body = bodies.build_status_body(meta, status)
        raw_body = await patching.patch_status(
            settings=self.settings,
            context=self.context,
            url=url,
            body=body,
            logger=self.logger,
        )
        return bodies.ResourceMeta.from_body(meta.id, raw_body)


def run(
        operators: Collection[Operator],
) -> None:
    """
    Run the operators synchronously until all of them are stopped.

    This function should be used to run the operators in normal sync mode.
    SIGINT & SIGTERM stop all the operators gracefully.
    """
    asyncio.run(run_all(operators))


async def run_all(
        operators: Collection[Operator],
) -> None:
    """
    Run the operators concurrently; fail if any of them fails.

    A failure of one operator stops all other operators.
    """
    loop = asyncio.get_running_loop()

    def stop_all() -> None:
        for operator in operators:
            operator.stop()

    # On Ctrl+C or pod termination, stop all operators gracefully.
    if threading.current_thread() is threading.main_thread():
        # Handle NotImplementedError when ran on Windows since asyncio only supports Unix signals
        try:
            loop.add_signal_handler(signal.SIGINT, stop_all)
            loop.add_signal_handler(signal.SIGTERM, stop_all)
        except NotImplementedError:
            logger.warning("OS signals are ignored: can't add signal handler in Windows.")
    else:
        logger.warning("OS signals are ignored: running not in the main thread.")

    tasks = [
        asyncio.create_task(operator.run(), name=f"operator #{idx}")
        for idx, operator in enumerate(operators)
    ]
    try:
        done, pending = await aiotasks.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        if pending:
            stop_all()
            await aiotasks.wait(pending)
        await aiotasks.reraise(tasks)
    finally:
        if threading.current_thread() is threading.main_thread():
            try:
                loop.remove_signal_handler(signal.SIGINT)
                loop.remove_signal_handler(signal.SIGTERM)
            except NotImplementedError:
                pass
