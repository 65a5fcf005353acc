"""Tests for the command line interface."""
import json
from unittest.mock import AsyncMock, patch

import pytest
import structlog
from click.testing import CliRunner

from lanscope.__main__ import cli, device_to_dict
from lanscope.config import LoggingConfig
from lanscope.models import DeviceIdentity, DiscoveredDevice, IconTag
from lanscope.records import RecordInterpreter
from lanscope.utils.logging_setup import configure_logging


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def device():
    return DiscoveredDevice(
        identity=DeviceIdentity(name="Office", service_type="_ipp._tcp.", domain="local."),
        host_name="npi1.local.",
        port=631,
        addresses=("192.168.1.20",),
        metadata={"ty": "HP LaserJet 400", "pw": "false"},
        hardware_address="3c:5a:37:aa:bb:cc",
        vendor_name="Hewlett Packard",
        display_name="HP LaserJet 400",
        icon_tag=IconTag.PRINTER,
    )


def test_device_to_dict(device):
    """Records are grouped by category with readable labels and values."""
    data = device_to_dict(device, RecordInterpreter())

    assert data["display_name"] == "HP LaserJet 400"
    assert data["icon"] == "Printer"
    assert data["addresses"] == ["192.168.1.20"]
    assert data["vendor"] == "Hewlett Packard"
    assert data["records"]["Network & Security"] == [
        {"key": "pw", "label": "Password Required", "value": "No password required"}
    ]
    assert data["records"]["Identity"][0]["label"] == "Device Type"


def test_interpret_command(runner):
    result = runner.invoke(cli, ["--log-format", "console", "interpret", "sf", "0x05"])

    assert result.exit_code == 0
    assert "[Status]: 0x05 (Ready, Configured)" in result.output


def test_browse_command_prints_json(runner, device):
    with patch("lanscope.__main__.run_browse", new=AsyncMock(return_value=[device])) as mock_browse:
        result = runner.invoke(cli, ["browse", "--duration", "1"])

    assert result.exit_code == 0, result.output
    assert mock_browse.await_args.args[1] == 1.0
    payload = json.loads(result.output)
    assert payload[0]["name"] == "Office"


def test_browse_command_writes_file(runner, device, tmp_path):
    out = tmp_path / "devices.json"
    with patch("lanscope.__main__.run_browse", new=AsyncMock(return_value=[device])):
        result = runner.invoke(cli, ["browse", "-o", str(out)])

    assert result.exit_code == 0
    assert "1 devices written" in result.output
    assert json.loads(out.read_text())[0]["hardware_address"] == "3c:5a:37:aa:bb:cc"


def test_browse_failure_exits_nonzero(runner):
    with patch("lanscope.__main__.run_browse", new=AsyncMock(side_effect=OSError("no network"))):
        result = runner.invoke(cli, ["browse"])

    assert result.exit_code == 1
    assert "no network" in result.output


def test_config_file_option(runner, tmp_path):
    config_path = tmp_path / "lanscope.json"
    config_path.write_text(json.dumps({"interpreter": {"flag_labels": {"0": "Online"}}}))

    result = runner.invoke(cli, ["--config-file", str(config_path), "interpret", "sf", "1"])

    assert result.exit_code == 0
    assert "1 (Online)" in result.output


def test_configure_logging_sets_level():
    configure_logging(LoggingConfig(level="warning", format="json"))

    import logging
    assert logging.getLogger().level == logging.WARNING
    assert structlog.is_configured()
