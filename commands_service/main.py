"""
Main entry point for the Commands Service.

This module provides the command-line interface and application startup logic.
"""

import asyncio
import logging
import sys
from typing import Optional

import aiohttp
import typer
import uvicorn

from .application.container import Container
from .application.startup import ApplicationStartup
from .core.services.queue_poller import InboundQueuePoller
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ApplicationConfig
from .infrastructure.logging.setup import setup_logging
from .presentation.api.app import create_app

# Create CLI application
cli = typer.Typer(
    name="commands-service",
    help="Command record service bridging HTTP clients and the orchestrator queues"
)

logger = logging.getLogger(__name__)


@cli.command()
def start(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Server host address"
    ),
    port: Optional[int] = typer.Option(
        None, "--port", "-p", help="Server port"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug mode"
    )
) -> None:
    """Start the Commands Service."""

    # Load configuration
    config_loader = ConfigLoader()
    try:
        config = config_loader.load_config(config_file)
    except (OSError, ValueError) as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    # Override with command line arguments
    if host:
        config.server.host = host
    if port:
        config.server.port = port
    if log_level:
        config.logging.level = log_level.upper()
    if debug:
        config.debug = True
        config.logging.level = "DEBUG"

    # Setup logging
    setup_logging(config.logging)

    logger.info(f"Starting {config.name} v{config.version}")
    logger.info(f"Environment: {config.environment}")
    logger.info(f"Store: {config.store.backend}, queues: {config.queues.backend}")

    try:
        asyncio.run(run_application(config))
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except Exception as e:
        logger.error(f"Application failed: {e}")
        sys.exit(1)


@cli.command()
def init_config(
    output: str = typer.Option(
        "config.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a default configuration file."""

    config = ApplicationConfig()
    config_loader = ConfigLoader(env_file=None)

    try:
        config_loader.save_config(config, output, format)
        typer.echo(f"Default configuration saved to {output}")
    except (OSError, ValueError) as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(...,
                                      help="Configuration file to validate")
) -> None:
    """Validate a configuration file."""

    config_loader = ConfigLoader(env_file=None)

    try:
        config = config_loader.load_config(config_file)
        typer.echo(f"Configuration file {config_file} is valid")
        typer.echo(f"Application: {config.name} v{config.version}")
        typer.echo(f"Environment: {config.environment}")
        typer.echo(f"Store: {config.store.backend}, queues: {config.queues.backend}")
    except (OSError, ValueError) as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)


@cli.command()
def health_check(
    host: str = typer.Option("localhost", "--host", help="Server host"),
    port: int = typer.Option(3001, "--port", help="Server port"),
    timeout: float = typer.Option(10.0, "--timeout", help="Request timeout")
) -> None:
    """Check the health of a running server."""

    async def check_health() -> bool:
        url = f"http://{host}:{port}/health"
        timeout_config = aiohttp.ClientTimeout(total=timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                async with session.get(url) as response:
                    if response.status == 200:
                        data = await response.json()
                        typer.echo(
                            f"Server is healthy: {data.get('status', 'unknown')}")
                        return True
                    else:
                        typer.echo(f"Server returned status {response.status}")
                        return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            typer.echo(f"Health check failed: {e}")
            return False

    result = asyncio.run(check_health())
    if not result:
        sys.exit(1)


async def run_application(config: ApplicationConfig) -> None:
    """
    Run the application with the given configuration.

    uvicorn handles SIGINT and SIGTERM by finishing the server loop; the
    components are stopped afterwards in reverse startup order. If the
    inbound poller gives up, the server is asked to exit the same way.

    Args:
        config: Application configuration
    """
    container = Container()
    server: Optional[uvicorn.Server] = None

    def on_fatal(error: BaseException) -> None:
        logger.critical(f"Shutting down after fatal poller error: {error}")
        if server is not None:
            server.should_exit = True

    startup = ApplicationStartup(container, on_fatal=on_fatal)

    try:
        startup.configure_services(config)
        await startup.start_application()

        app = create_app(container, config)

        server_config = uvicorn.Config(
            app=app,
            host=config.server.host,
            port=config.server.port,
            log_level=config.logging.level.lower(),
            access_log=config.debug,
            log_config=None,
        )
        server = uvicorn.Server(server_config)

        if _poller_fatal_error(startup) is None:
            await server.serve()

    except Exception as e:
        logger.error(f"Application error: {e}")
        raise
    finally:
        await startup.stop_application()

    poller_error = _poller_fatal_error(startup)
    if poller_error is not None:
        raise poller_error


def _poller_fatal_error(startup: ApplicationStartup) -> Optional[BaseException]:
    for component in startup.components.values():
        if isinstance(component, InboundQueuePoller):
            return component.fatal_error
    return None


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
