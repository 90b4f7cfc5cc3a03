"""
Tests for logging and validation helpers.
"""

import io

import pytest
from structlog.testing import capture_logs

from dao_e2e.errors import ConfigError
from dao_e2e.utils import configure_logging, get_logger, validate_in, validate_positive


class TestLogging:
    """get_logger / configure_logging"""

    def test_logger_bound_to_module_name(self):
        logger = get_logger("dao_e2e.execution.scheduler")

        with capture_logs() as logs:
            logger.info("pool_started", workers=2)

        assert len(logs) == 1
        assert logs[0]["event"] == "pool_started"
        assert logs[0]["logger_name"] == "dao_e2e.scheduler"
        assert logs[0]["workers"] == 2

    def test_configured_output(self):
        stream = io.StringIO()
        configure_logging(stream=stream)

        get_logger("dao_e2e.runner").warning("preflight_failed", url="http://localhost:1")

        output = stream.getvalue()
        assert "preflight_failed" in output
        assert "dao_e2e.runner" in output


class TestValidation:
    """validate_positive / validate_in"""

    def test_positive(self):
        assert validate_positive(3, "max_concurrency") == 3
        with pytest.raises(ConfigError):
            validate_positive(0, "max_concurrency")
        with pytest.raises(ConfigError):
            validate_positive(True, "max_concurrency")

    def test_in(self):
        assert validate_in("erc20", ("erc20", "multisig"), "governance") == "erc20"
        with pytest.raises(ConfigError):
            validate_in("dao", ("erc20", "multisig"), "governance")
