"""Tests for the command-line entry point."""

import io
import json
import logging
from unittest.mock import patch

import pytest

from servicedesk_tools import __version__
from servicedesk_tools.cli import build_parser, main
from servicedesk_tools.config.models import ServiceDeskConfig
from servicedesk_tools.desk_logging import ROOT_LOGGER, get_logger, setup_logging
from servicedesk_tools.exceptions import ConfigurationError
from servicedesk_tools.service import ServiceResponse


def _run(argv):
    stream = io.StringIO()
    with patch("servicedesk_tools.cli.load_config", return_value=ServiceDeskConfig()):
        code = main(argv, stream=stream)
    return code, json.loads(stream.getvalue())


class TestParser:
    """Test argument parsing."""

    def test_correlate_timeout(self):
        args = build_parser().parse_args(["correlate", "--timeout", "7.5"])
        assert args.command == "correlate"
        assert args.timeout == 7.5

    def test_check_defaults_to_all(self):
        assert build_parser().parse_args(["check"]).system == "all"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Test command dispatch and output."""

    def test_correlate_success(self):
        response = ServiceResponse(success=True, data=[], message="No tickets found")
        with patch(
            "servicedesk_tools.service.get_support_dev_items", return_value=response
        ) as mock_op:
            code, body = _run(["--compact", "correlate", "--timeout", "3"])

        assert code == 0
        assert body == {"success": True, "data": [], "message": "No tickets found"}
        assert mock_op.call_args.kwargs["timeout"] == 3.0

    def test_failure_exit_code(self):
        response = ServiceResponse(success=False, error="down", status_code=500)
        with patch("servicedesk_tools.service.get_issue_stats", return_value=response):
            code, body = _run(["stats"])

        assert code == 1
        assert body["error"] == "down"

    def test_check_all_reports_both(self):
        ok = ServiceResponse(success=True, data={"success": True})
        with patch(
            "servicedesk_tools.service.check_freshdesk_connection", return_value=ok
        ), patch("servicedesk_tools.service.check_jira_connection", return_value=ok):
            code, body = _run(["check"])

        assert code == 0
        assert len(body["results"]) == 2

    def test_invalid_configuration(self):
        stream = io.StringIO()
        with patch(
            "servicedesk_tools.cli.load_config",
            side_effect=ConfigurationError("Invalid configuration: bad"),
        ):
            code = main(["issues"], stream=stream)

        assert code == 1
        assert json.loads(stream.getvalue())["error"] == "Invalid configuration: bad"


class TestLogging:
    """Test package logging helpers."""

    def test_logger_namespace(self):
        assert get_logger().name == ROOT_LOGGER
        assert get_logger("jira").name == f"{ROOT_LOGGER}.jira"
        assert get_logger(f"{ROOT_LOGGER}.service").name == f"{ROOT_LOGGER}.service"

    def test_setup_replaces_handler(self):
        logger = setup_logging("WARNING")
        setup_logging("WARNING")

        ours = [h for h in logger.handlers if getattr(h, "_servicedesk_handler", False)]
        assert len(ours) == 1
        assert logger.level == logging.WARNING

    def test_verbose_forces_debug(self):
        assert setup_logging("ERROR", verbose=True).level == logging.DEBUG

    def test_unknown_level_defaults_to_info(self):
        assert setup_logging("CHATTY").level == logging.INFO
