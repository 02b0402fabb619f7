"""
Inbound queue poller.

Runs a cancellable periodic task that long-polls the inbound work queue and
hands every received message to the lifecycle engine. Messages of one batch
are processed concurrently and independently: a failure leaves only that
message unacknowledged, to be redelivered to a later tick once its
visibility timeout expires.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..domain.messages import ACTION_ATTRIBUTE, InboundMessage
from ..exceptions import CommandServiceError, MalformedMessageError, PollerTerminatedError
from ..interfaces.lifecycle import IComponent
from ..interfaces.queues import IMessageQueue
from .lifecycle_engine import CommandLifecycleEngine

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    """What the poller does when a receive call fails."""
    BACKOFF = "backoff"       # Retry with exponential backoff
    TERMINATE = "terminate"   # Stop polling and escalate


class MessageOutcome(str, Enum):
    """How one received message was handled."""
    PROCESSED = "processed"   # Applied and acknowledged
    FAILED = "failed"         # Left unacknowledged for redelivery
    DROPPED = "dropped"       # Unknown action or malformed body, not acknowledged


@dataclass
class BatchReport:
    """Summary of one poll tick."""
    received: int = 0
    processed: int = 0
    failed: int = 0
    dropped: int = 0

    @property
    def is_empty(self) -> bool:
        return self.received == 0


class InboundQueuePoller(IComponent):
    """
    Periodic long-poll loop over the inbound work queue.

    Ticks never overlap: the next receive is issued ``poll_interval``
    seconds after the previous one started, or right away if the batch
    took longer than that.
    """

    def __init__(self,
                 engine: CommandLifecycleEngine,
                 inbound_queue: IMessageQueue,
                 poll_interval: float = 10.0,
                 max_messages: int = 10,
                 wait_time_seconds: int = 20,
                 visibility_timeout: int = 60,
                 failure_policy: FailurePolicy = FailurePolicy.BACKOFF,
                 max_backoff: float = 300.0,
                 max_consecutive_failures: int = 0,
                 on_fatal: Optional[Callable[[BaseException], Any]] = None) -> None:
        """
        Initialize the poller.

        Args:
            engine: Lifecycle engine receiving the messages
            inbound_queue: Queue to poll
            poll_interval: Seconds between the start of two ticks
            max_messages: Batch size requested per receive (1-10)
            wait_time_seconds: Long-poll wait per receive
            visibility_timeout: Seconds a received message stays hidden
            failure_policy: Reaction to a failed receive call
            max_backoff: Upper bound of the backoff delay in seconds
            max_consecutive_failures: Receive failures tolerated in a row
                before escalating under the backoff policy, 0 for no limit
            on_fatal: Called with the error when the poller gives up
        """
        self._engine = engine
        self._queue = inbound_queue
        self._poll_interval = poll_interval
        self._max_messages = max_messages
        self._wait_time_seconds = wait_time_seconds
        self._visibility_timeout = visibility_timeout
        self._failure_policy = FailurePolicy(failure_policy)
        self._max_backoff = max_backoff
        self._max_consecutive_failures = max_consecutive_failures
        self._on_fatal = on_fatal

        self._running = False
        self._task: Optional[asyncio.Task[None]] = None
        self._consecutive_failures = 0
        self._fatal_error: Optional[BaseException] = None

        self._metrics: Dict[str, Any] = {
            'ticks': 0,
            'messages_received': 0,
            'messages_processed': 0,
            'messages_failed': 0,
            'messages_dropped': 0,
            'receive_failures': 0,
            'last_poll_at': None,
        }

    @property
    def name(self) -> str:
        """Get component name."""
        return "InboundQueuePoller"

    @property
    def fatal_error(self) -> Optional[BaseException]:
        """Error that made the poller give up, if any."""
        return self._fatal_error

    async def start(self) -> None:
        """Start polling the inbound queue."""
        if self._running:
            logger.warning("Inbound queue poller is already running")
            return

        self._running = True
        self._fatal_error = None
        self._consecutive_failures = 0
        self._task = asyncio.create_task(self._poll_loop())

        logger.info(f"Started polling {self._queue.url} every {self._poll_interval}s")

    async def stop(self) -> None:
        """Stop polling. A batch in progress is cancelled and will be redelivered."""
        if not self._running and self._task is None:
            return

        self._running = False

        if self._task and self._task is not asyncio.current_task():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

        logger.info("Stopped inbound queue poller")

    def is_running(self) -> bool:
        """Check if the poll loop is alive."""
        return self._running and self._task is not None and not self._task.done()

    async def check_health(self) -> Dict[str, Any]:
        """Check poller health."""
        healthy = self.is_running() and self._fatal_error is None
        if self._fatal_error is not None:
            status = 'terminated'
        else:
            status = 'running' if self.is_running() else 'stopped'

        return {
            'healthy': healthy,
            'status': status,
            'details': {
                **self._metrics,
                'queue_url': self._queue.url,
                'consecutive_failures': self._consecutive_failures,
                'failure_policy': self._failure_policy.value,
                'last_error': str(self._fatal_error) if self._fatal_error else None,
            }
        }

    async def poll_once(self) -> BatchReport:
        """
        Run one tick: receive a batch and dispatch every message.

        Returns:
            Counts of what happened to the received messages

        Raises:
            QueueError: If the receive call itself failed
        """
        self._metrics['ticks'] += 1
        self._metrics['last_poll_at'] = time.time()

        messages = await self._queue.receive(
            max_messages=self._max_messages,
            wait_time_seconds=self._wait_time_seconds,
            visibility_timeout=self._visibility_timeout,
            attribute_names=[ACTION_ATTRIBUTE],
        )

        report = BatchReport(received=len(messages))
        if not messages:
            logger.debug("Empty response received from queue")
            return report

        logger.debug(f"Received {len(messages)} messages from queue")
        self._metrics['messages_received'] += len(messages)

        outcomes: List[MessageOutcome] = await asyncio.gather(
            *(self._dispatch(message) for message in messages))

        for outcome in outcomes:
            if outcome is MessageOutcome.PROCESSED:
                report.processed += 1
            elif outcome is MessageOutcome.FAILED:
                report.failed += 1
            else:
                report.dropped += 1

        self._metrics['messages_processed'] += report.processed
        self._metrics['messages_failed'] += report.failed
        self._metrics['messages_dropped'] += report.dropped

        return report

    async def _dispatch(self, message: InboundMessage) -> MessageOutcome:
        """Hand one message to the engine, isolating its failure from the batch."""
        action = message.action
        if action is None:
            logger.warning(f"Dropping message {message.message_id}: "
                           f"unrecognized action {message.action_name!r}")
            return MessageOutcome.DROPPED

        logger.debug(f"Received action : {action.value}")

        try:
            await self._engine.handle_message(action, message)
        except MalformedMessageError as e:
            logger.warning(f"Dropping message {message.message_id}: {e}")
            return MessageOutcome.DROPPED
        except CommandServiceError as e:
            logger.error(f"Message {message.message_id} ({action.value}) not processed, "
                         f"left for redelivery: {e}")
            return MessageOutcome.FAILED
        except Exception as e:
            logger.exception(f"Unexpected error processing message {message.message_id}: {e}")
            return MessageOutcome.FAILED

        return MessageOutcome.PROCESSED

    async def _poll_loop(self) -> None:
        """Main polling loop."""
        loop = asyncio.get_running_loop()

        try:
            while self._running:
                started = loop.time()
                try:
                    await self.poll_once()
                    self._consecutive_failures = 0
                    delay = max(0.0, self._poll_interval - (loop.time() - started))

                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self._consecutive_failures += 1
                    self._metrics['receive_failures'] += 1

                    if self._should_terminate():
                        await self._escalate(e)
                        return

                    delay = self._backoff_delay()
                    logger.warning(f"Receive from {self._queue.url} failed "
                                   f"({self._consecutive_failures} in a row), "
                                   f"retrying in {delay:.1f}s: {e}")

                await asyncio.sleep(delay)

        except asyncio.CancelledError:
            logger.debug("Polling loop cancelled")
            raise

    def _should_terminate(self) -> bool:
        if self._failure_policy is FailurePolicy.TERMINATE:
            return True
        return 0 < self._max_consecutive_failures <= self._consecutive_failures

    def _backoff_delay(self) -> float:
        exponent = max(0, self._consecutive_failures - 1)
        return float(min(self._poll_interval * (2 ** exponent), self._max_backoff))

    async def _escalate(self, error: Exception) -> None:
        """Give up polling and report the failure."""
        self._running = False
        self._fatal_error = PollerTerminatedError(
            f"Inbound queue poller terminated after {self._consecutive_failures} "
            f"receive failure(s): {error}")
        logger.critical(str(self._fatal_error))

        if self._on_fatal is None:
            return

        try:
            result = self._on_fatal(self._fatal_error)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Fatal error callback failed: {e}")
