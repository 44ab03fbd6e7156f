"""
Tests for structured logging setup.
"""

import json
import logging

import structlog

from robotkin.core.logging import configure_logging, get_logger, kinematics_context


class TestLogging:
    """Tests for configure_logging and kinematics_context."""

    def test_level(self):
        """Test that the root level follows the argument."""
        configure_logging(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

        configure_logging(level="nonsense")
        assert logging.getLogger().level == logging.WARNING

    def test_json_output_with_context(self, temp_dir):
        """Test JSON lines carrying bound context values."""
        log_file = temp_dir / "robotkin.log"
        configure_logging(level="INFO", json_output=True, log_file=str(log_file))

        logger = get_logger("robotkin.test")
        with kinematics_context(robot="irb6700"):
            logger.info("ik_solved", cfx=3)

        for handler in logging.getLogger().handlers:
            handler.flush()
        record = json.loads(log_file.read_text().strip().splitlines()[-1])

        assert record["event"] == "ik_solved"
        assert record["robot"] == "irb6700"
        assert record["cfx"] == 3
        assert record["level"] == "info"

    def test_context_is_unbound_after_block(self):
        """Test that context values do not leak out of the block."""
        with kinematics_context(program="demo"):
            assert structlog.contextvars.get_contextvars()["program"] == "demo"
        assert "program" not in structlog.contextvars.get_contextvars()
