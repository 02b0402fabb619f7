"""
Base client for the AWS-backed adapters.

boto3 clients are blocking, so every call runs on a small thread pool and
is awaited from the event loop. Retries are left to botocore's standard
retry mode; this class only adds call metrics and lifecycle management.
"""

import asyncio
import logging
import time
from abc import ABC
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config

from ...core.interfaces.lifecycle import IComponent
from ..config.models import AWSConfig

logger = logging.getLogger(__name__)


@dataclass
class ClientMetrics:
    """Client call metrics."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_response_time: float = 0.0
    max_response_time: float = 0.0
    last_request_time: Optional[float] = None
    last_error: Optional[str] = None

    @property
    def average_response_time(self) -> float:
        """Calculate average response time."""
        if self.total_requests == 0:
            return 0.0
        return self.total_response_time / self.total_requests

    @property
    def success_rate(self) -> float:
        """Calculate success rate percentage."""
        if self.total_requests == 0:
            return 100.0
        return (self.successful_requests / self.total_requests) * 100.0

    def record_request(self, success: bool, response_time: float) -> None:
        """Record a request result."""
        self.total_requests += 1
        self.total_response_time += response_time
        self.last_request_time = time.time()

        if success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1

        if response_time > self.max_response_time:
            self.max_response_time = response_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_requests': self.total_requests,
            'success_rate': self.success_rate,
            'average_response_time': self.average_response_time,
            'max_response_time': self.max_response_time,
            'last_request_time': self.last_request_time,
            'last_error': self.last_error,
        }


def create_boto3_client(service_name: str, config: AWSConfig) -> Any:
    """
    Create a boto3 client for one AWS service.

    Explicit credentials are only passed when configured, otherwise boto3's
    default credential chain applies.
    """
    session = boto3.Session(
        aws_access_key_id=config.access_key_id or None,
        aws_secret_access_key=config.secret_access_key or None,
        aws_session_token=config.session_token or None,
        region_name=config.region,
    )
    return session.client(
        service_name,
        endpoint_url=config.endpoint_url or None,
        config=Config(retries={"max_attempts": config.max_attempts, "mode": "standard"}),
    )


class AWSClient(IComponent, ABC):
    """
    Base class for adapters wrapping one boto3 client.

    Subclasses call :meth:`_call` with the boto3 operation name and its
    keyword arguments, and translate botocore errors into the service's
    exception types.
    """

    service_name: str = ""

    def __init__(self,
                 config: AWSConfig,
                 client: Optional[Any] = None,
                 name: Optional[str] = None) -> None:
        """
        Initialize the client.

        Args:
            config: AWS configuration
            client: Pre-built boto3 client, created from ``config`` if omitted
            name: Component name for logs and health reports
        """
        self._config = config
        self._client = client
        self._name = name or self.__class__.__name__
        self._executor = ThreadPoolExecutor(
            max_workers=config.max_workers, thread_name_prefix=self._name)
        self._metrics = ClientMetrics()
        self._running = False

    @property
    def name(self) -> str:
        """Get component name."""
        return self._name

    @property
    def client(self) -> Any:
        """Underlying boto3 client, created on first use."""
        if self._client is None:
            self._client = create_boto3_client(self.service_name, self._config)
        return self._client

    async def start(self) -> None:
        """Start the client service."""
        if self._running:
            return

        # Building the client resolves credentials, fail at startup rather than first call
        _ = self.client
        self._running = True
        logger.info(f"Client {self._name} started ({self.service_name}, {self._config.region})")

    async def stop(self) -> None:
        """Stop the client service."""
        if not self._running:
            return

        self._running = False
        self._executor.shutdown(wait=False)
        logger.info(f"Client {self._name} stopped")

    async def check_health(self) -> Dict[str, Any]:
        """Perform health check."""
        return {
            'healthy': self._running,
            'status': 'running' if self._running else 'stopped',
            'details': {
                'service': self.service_name,
                'region': self._config.region,
                **self._metrics.to_dict(),
            }
        }

    def get_metrics(self) -> ClientMetrics:
        """Get client metrics."""
        return self._metrics

    async def _call(self, operation: str, **kwargs: Any) -> Dict[str, Any]:
        """
        Run one boto3 operation on the thread pool.

        Args:
            operation: boto3 client method name, e.g. ``put_item``
            **kwargs: Operation parameters

        Returns:
            Operation response

        Raises:
            Exception: Whatever botocore raised, after recording it
        """
        method = getattr(self.client, operation)
        start_time = time.time()

        try:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(self._executor, partial(method, **kwargs))
        except Exception as e:
            self._metrics.record_request(False, time.time() - start_time)
            self._metrics.last_error = f"{operation}: {e}"
            raise

        self._metrics.record_request(True, time.time() - start_time)
        return result  # type: ignore[no-any-return]
