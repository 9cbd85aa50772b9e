"""Unit tests for the domain name provider."""

from unittest.mock import patch

from remsh.modules.domain_name import LOOPBACK_ADDRESS, DomainNameProvider
from remsh.modules.subprocess_helper import ToolResult


class TestDomainNameProvider:
    @patch("remsh.modules.domain_name.run_tool")
    def test_returns_trimmed_fqdn(self, mock_run):
        mock_run.return_value = ToolResult(0, "  dev.example.com\n", "")

        assert DomainNameProvider().domain() == "dev.example.com"
        mock_run.assert_called_once()
        assert mock_run.call_args[0][0] == ["hostname", "-f"]

    @patch("remsh.modules.domain_name.run_tool")
    def test_bare_host_falls_back_to_loopback(self, mock_run):
        """Test a host name without a dot cannot be used in a long name."""
        mock_run.return_value = ToolResult(0, "devbox\n", "")

        assert DomainNameProvider().domain() == LOOPBACK_ADDRESS

    @patch("remsh.modules.domain_name.run_tool")
    def test_failed_lookup_falls_back_to_loopback(self, mock_run):
        mock_run.return_value = ToolResult(1, "", "hostname: Name or service not known")

        assert DomainNameProvider().domain() == "127.0.0.1"

    @patch("remsh.modules.domain_name.run_tool")
    def test_timeout_is_passed_through(self, mock_run):
        mock_run.return_value = ToolResult(0, "a.b\n", "")

        DomainNameProvider(timeout=0.5).lookup()

        assert mock_run.call_args[1]["timeout"] == 0.5
