"""
Application startup and configuration logic.

Builds the store, the two queue endpoints, the lifecycle engine and the
inbound poller from the configuration, registers them with the container,
and starts them in dependency order.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .container import Container
from ..core.interfaces.lifecycle import IComponent
from ..core.interfaces.queues import IMessageQueue
from ..core.interfaces.storage import ICommandStore
from ..core.services.lifecycle_engine import CommandLifecycleEngine
from ..core.services.queue_poller import FailurePolicy, InboundQueuePoller
from ..infrastructure.config.models import ApplicationConfig

logger = logging.getLogger(__name__)

INBOUND_QUEUE = "inbound_queue"
ORCHESTRATOR_QUEUE = "orchestrator_queue"


class ApplicationStartup:
    """
    Manages application startup and service configuration.

    Components are started in the order store, inbound queue, orchestrator
    queue, engine, poller, and stopped in reverse, so the poller never runs
    without the clients it depends on.
    """

    def __init__(self, container: Container,
                 on_fatal: Optional[Callable[[BaseException], Any]] = None) -> None:
        self._container = container
        self._on_fatal = on_fatal
        self._started_components: List[IComponent] = []
        self._startup_order: List[Any] = [
            ICommandStore,
            INBOUND_QUEUE,
            ORCHESTRATOR_QUEUE,
            CommandLifecycleEngine,
            InboundQueuePoller,
        ]

    @property
    def components(self) -> Dict[str, IComponent]:
        """Registered components by name, in startup order."""
        return {component.name: component for component in self._resolve_components()}

    def configure_services(self, config: ApplicationConfig) -> None:
        """
        Register all application services.

        Args:
            config: Application configuration

        Raises:
            ValueError: If an SQS backend is selected without queue URLs
        """
        logger.info("Configuring application services...")

        self._container.register_instance(ApplicationConfig, config)
        self._container.register_instance(ApplicationStartup, self)

        self._container.register_instance(ICommandStore, self._build_store(config))
        self._container.register_instance(
            INBOUND_QUEUE, self._build_queue(config, config.queues.inbound_queue_url, "InboundQueue"))
        self._container.register_instance(
            ORCHESTRATOR_QUEUE,
            self._build_queue(config, config.queues.orchestrator_queue_url, "OrchestratorQueue"))

        self._container.register(
            CommandLifecycleEngine,
            lambda c: CommandLifecycleEngine(
                store=c.resolve(ICommandStore),
                orchestrator_queue=c.resolve(ORCHESTRATOR_QUEUE),
                inbound_queue=c.resolve(INBOUND_QUEUE),
            ))

        if config.poller.enabled:
            self._container.register(
                InboundQueuePoller,
                lambda c: InboundQueuePoller(
                    engine=c.resolve(CommandLifecycleEngine),
                    inbound_queue=c.resolve(INBOUND_QUEUE),
                    poll_interval=config.poller.poll_interval,
                    max_messages=config.poller.max_messages,
                    wait_time_seconds=config.poller.wait_time_seconds,
                    visibility_timeout=config.poller.visibility_timeout,
                    failure_policy=FailurePolicy(config.poller.failure_policy),
                    max_backoff=config.poller.max_backoff,
                    max_consecutive_failures=config.poller.max_consecutive_failures,
                    on_fatal=self._on_fatal,
                ))
        else:
            logger.warning("Inbound queue poller is disabled")

        logger.info("Service configuration completed")

    async def start_application(self) -> None:
        """Start all application components in order."""
        logger.info("Starting application components...")

        try:
            components = self._resolve_components()
        except Exception as e:
            logger.error(f"Failed to build application components: {e}")
            raise

        for component in components:
            try:
                logger.debug(f"Starting component: {component.name}")
                await component.start()
                self._started_components.append(component)
                logger.info(f"Started component: {component.name}")
            except Exception as e:
                logger.error(f"Failed to start component {component.name}: {e}")
                await self.stop_application()
                raise

        logger.info("Application startup completed successfully")

    async def stop_application(self) -> None:
        """Stop all started components in reverse order."""
        if not self._started_components:
            return

        logger.info("Stopping application components...")

        for component in reversed(self._started_components):
            try:
                await component.stop()
                logger.info(f"Stopped component: {component.name}")
            except Exception as e:
                # Keep stopping the remaining components
                logger.error(f"Error stopping component {component.name}: {e}")

        self._started_components.clear()
        logger.info("Application shutdown completed")

    def _resolve_components(self) -> List[IComponent]:
        """
        Resolve every registered component in startup order.

        Raises:
            ServiceResolutionException: If a component factory failed
        """
        return [self._container.resolve(key) for key in self._startup_order
                if self._container.is_registered(key)]

    def _build_store(self, config: ApplicationConfig) -> ICommandStore:
        if config.store.backend == "memory":
            from ..infrastructure.storage.memory import InMemoryCommandStore
            return InMemoryCommandStore()

        from ..infrastructure.storage.dynamodb import DynamoDBCommandStore
        return DynamoDBCommandStore(config.aws, config.store.table_name)

    def _build_queue(self, config: ApplicationConfig, url: str, name: str) -> IMessageQueue:
        if config.queues.backend == "memory":
            from ..infrastructure.queues.memory import InMemoryMessageQueue
            return InMemoryMessageQueue(url or f"memory://{name}")

        if not url:
            raise ValueError(f"No queue URL configured for {name}")

        from ..infrastructure.queues.sqs import SQSMessageQueue
        return SQSMessageQueue(config.aws, url, name=name)
