"""
Configuration models and data structures.

This module defines the configuration models used throughout the application,
providing type safety and validation for configuration values.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


STORE_BACKENDS = ("dynamodb", "memory")
QUEUE_BACKENDS = ("sqs", "memory")
FAILURE_POLICIES = ("backoff", "terminate")


@dataclass
class ServerConfig:
    """HTTP listener configuration."""
    host: str = "0.0.0.0"
    port: int = 3001


@dataclass
class AWSConfig:
    """Credentials and client settings for the backing AWS services."""
    region: str = "us-east-1"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    endpoint_url: Optional[str] = None
    max_attempts: int = 3
    max_workers: int = 8


@dataclass
class StoreConfig:
    """Command record store configuration."""
    backend: str = "dynamodb"
    table_name: str = "commands"


@dataclass
class QueueConfig:
    """Inbound work queue and orchestrator queue configuration."""
    backend: str = "sqs"
    inbound_queue_url: str = ""
    orchestrator_queue_url: str = ""


@dataclass
class PollerConfig:
    """Inbound queue polling configuration."""
    enabled: bool = True
    poll_interval: float = 10.0
    max_messages: int = 10
    wait_time_seconds: int = 20
    visibility_timeout: int = 60
    failure_policy: str = "backoff"
    max_backoff: float = 300.0
    max_consecutive_failures: int = 0


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    max_file_size: str = "10 MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    # Basic application settings
    name: str = "Commands Service"
    version: str = "0.1.0"
    debug: bool = False
    environment: str = "production"

    # Component configurations
    server: ServerConfig = field(default_factory=ServerConfig)
    aws: AWSConfig = field(default_factory=AWSConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    queues: QueueConfig = field(default_factory=QueueConfig)
    poller: PollerConfig = field(default_factory=PollerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_server()
        self._validate_backends()
        self._validate_poller()

    def _validate_server(self) -> None:
        if not (1 <= self.server.port <= 65535):
            raise ValueError(
                f"Server port must be between 1 and 65535, got {self.server.port}")

        if self.aws.max_attempts < 1:
            raise ValueError(f"AWS max attempts must be at least 1, got {self.aws.max_attempts}")
        if self.aws.max_workers < 1:
            raise ValueError(f"AWS max workers must be at least 1, got {self.aws.max_workers}")

    def _validate_backends(self) -> None:
        if self.store.backend not in STORE_BACKENDS:
            raise ValueError(
                f"Unknown store backend {self.store.backend!r}, expected one of {STORE_BACKENDS}")
        if self.queues.backend not in QUEUE_BACKENDS:
            raise ValueError(
                f"Unknown queue backend {self.queues.backend!r}, expected one of {QUEUE_BACKENDS}")
        if self.store.backend == "dynamodb" and not self.store.table_name:
            raise ValueError("DynamoDB store requires a table name")

    def _validate_poller(self) -> None:
        poller = self.poller

        if poller.poll_interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {poller.poll_interval}")
        if not (1 <= poller.max_messages <= 10):
            raise ValueError(f"Max messages must be between 1 and 10, got {poller.max_messages}")
        if not (0 <= poller.wait_time_seconds <= 20):
            raise ValueError(
                f"Wait time must be between 0 and 20 seconds, got {poller.wait_time_seconds}")
        if not (0 <= poller.visibility_timeout <= 43200):
            raise ValueError(
                f"Visibility timeout must be between 0 and 43200 seconds, "
                f"got {poller.visibility_timeout}")
        if poller.failure_policy not in FAILURE_POLICIES:
            raise ValueError(
                f"Unknown failure policy {poller.failure_policy!r}, "
                f"expected one of {FAILURE_POLICIES}")
        if poller.max_backoff < poller.poll_interval:
            raise ValueError("Max backoff must not be shorter than the poll interval")
        if poller.max_consecutive_failures < 0:
            raise ValueError("Max consecutive failures cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        return cls(
            name=data.get('name', 'Commands Service'),
            version=data.get('version', '0.1.0'),
            debug=data.get('debug', False),
            environment=data.get('environment', 'production'),
            server=ServerConfig(**data.get('server', {})),
            aws=AWSConfig(**data.get('aws', {})),
            store=StoreConfig(**data.get('store', {})),
            queues=QueueConfig(**data.get('queues', {})),
            poller=PollerConfig(**data.get('poller', {})),
            logging=LoggingConfig(**data.get('logging', {})),
            config_file_path=data.get('config_file_path'),
        )
