"""
Tests for loguru-based logging setup.
"""

import logging
from pathlib import Path
from typing import Iterator, List

import pytest
from loguru import logger as loguru_logger

from commands_service.infrastructure.config.models import LoggingConfig
from commands_service.infrastructure.logging.setup import InterceptHandler, setup_logging


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root_handlers = logging.root.handlers[:]
    root_level = logging.root.level
    uvicorn_logger = logging.getLogger("uvicorn")
    uvicorn_handlers = uvicorn_logger.handlers[:]
    uvicorn_propagate = uvicorn_logger.propagate

    yield

    loguru_logger.remove()
    logging.root.handlers = root_handlers
    logging.root.setLevel(root_level)
    uvicorn_logger.handlers = uvicorn_handlers
    uvicorn_logger.propagate = uvicorn_propagate


class TestInterceptHandler:
    """Test cases for forwarding stdlib records to loguru."""

    def test_forwards_records(self) -> None:
        messages: List[str] = []
        loguru_logger.remove()
        loguru_logger.add(lambda msg: messages.append(msg.record["message"]), level="DEBUG")

        std_logger = logging.getLogger("commands_service.tests.intercept")
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
        std_logger.setLevel(logging.DEBUG)
        try:
            std_logger.warning("queue %s unavailable", "inbound")
        finally:
            std_logger.handlers = []
            std_logger.propagate = True

        assert messages == ["queue inbound unavailable"]

    def test_custom_level_number(self) -> None:
        levels: List[str] = []
        loguru_logger.remove()
        loguru_logger.add(lambda msg: levels.append(msg.record["level"].name), level=0)

        record = logging.LogRecord("x", 15, __file__, 1, "custom", None, None)
        record.levelname = "CUSTOM"
        InterceptHandler().emit(record)

        assert levels == ["Level 15"]


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_file_sink(self, tmp_path: Path) -> None:
        config = LoggingConfig(level="INFO", log_directory=str(tmp_path / "logs"),
                               console_enabled=False, file_enabled=True)

        setup_logging(config)
        logging.getLogger("commands_service.tests").info("transition completed")
        logging.getLogger("commands_service.tests").debug("not written")
        loguru_logger.remove()

        content = (tmp_path / "logs" / "app.log").read_text()
        assert "transition completed" in content
        assert "not written" not in content

    def test_routes_uvicorn_loggers(self) -> None:
        setup_logging(LoggingConfig(console_enabled=False))

        uvicorn_logger = logging.getLogger("uvicorn")
        assert uvicorn_logger.propagate is False
        assert any(isinstance(h, InterceptHandler) for h in uvicorn_logger.handlers)
        assert any(isinstance(h, InterceptHandler) for h in logging.root.handlers)
