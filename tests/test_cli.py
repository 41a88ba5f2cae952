from __future__ import annotations

from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from cli.app import app
from cli.config import load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.commands: List[tuple[str, Dict[str, Any]]] = []
        self.cleared: List[str] = []
        self.accept = True
        self.state_payload: Dict[str, Any] = {
            "module_id": "EnvironmentModule",
            "room_id": "Room101",
            "running": True,
            "reading": {
                "timestamp": "2025-10-29T09:00:00Z",
                "room_id": "Room101",
                "temperature": 22.5,
                "humidity": 45.0,
                "co2": 610.0,
            },
            "comfort": {
                "temperature_score": 100.0,
                "humidity_score": 100.0,
                "co2_score": 100.0,
                "composite": 100.0,
            },
            "hvac": {
                "device_id": "Room101_HVAC",
                "setpoint": 22.0,
                "fan_speed": "Medium",
                "mode": "Idle",
                "current_temperature": 22.5,
            },
        }
        self.alarms: List[Dict[str, Any]] = [
            {
                "id": "alarm-1",
                "device_id": "Room101_CO2",
                "severity": "Critical",
                "message": "CO2 level critical: 1600 ppm",
                "start_time": "2025-10-29T09:00:00Z",
                "end_time": None,
            }
        ]
        self.closed = False

    def get_state(self) -> Dict[str, Any]:
        return self.state_payload

    def send_command(self, verb: str, args: Dict[str, Any], correlation_id=None) -> Dict[str, Any]:
        self.commands.append((verb, args))
        return {"correlation_id": "corr-123", "accepted": self.accept}

    def list_alarms(self, active_only: bool = False) -> List[Dict[str, Any]]:
        return [a for a in self.alarms if not active_only or a["end_time"] is None]

    def clear_alarm(self, alarm_id: str) -> Dict[str, Any]:
        self.cleared.append(alarm_id)
        return {"id": alarm_id, "end_time": "2025-10-29T09:05:00Z"}

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    instance = StubClient(config=None)

    def factory(config):
        instance.config = config
        return instance

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return instance


def test_state_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["state"])

    assert result.exit_code == 0
    assert "Room State" in result.stdout
    assert "temperature: 22.5" in result.stdout
    assert "comfort_score: 100.0" in result.stdout
    assert "mode: Idle" in result.stdout
    assert stub.closed is True


def test_set_temperature_sends_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["--room", "Lab7", "set-temperature", "23.5"])

    assert result.exit_code == 0
    assert stub.config.hvac_target_id == "Lab7_HVAC"
    assert stub.commands == [("SetTemperature", {"setpoint": 23.5})]
    assert "correlation_id=corr-123" in result.stdout


def test_set_fan_speed_reports_ignored_command(runner: CliRunner, stub: StubClient) -> None:
    stub.accept = False

    result = runner.invoke(app, ["set-fan-speed", "high"])

    assert result.exit_code == 0
    assert stub.commands == [("SetFanSpeed", {"speed": "high"})]
    assert "Command ignored" in result.stdout


def test_alarms_command_lists_alarms(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["alarms", "--active"])

    assert result.exit_code == 0
    assert "[Critical] Room101_CO2" in result.stdout
    assert "id=alarm-1" in result.stdout


def test_clear_alarm_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["clear-alarm", "alarm-1"])

    assert result.exit_code == 0
    assert stub.cleared == ["alarm-1"]
    assert "Alarm alarm-1 cleared" in result.stdout


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://monitor:9000/")
    monkeypatch.setenv("CLI_ROOM_ID", "Lab7")
    monkeypatch.setenv("CLI_REQUEST_TIMEOUT", "nonsense")

    config = load_config()

    assert config.base_url == "http://monitor:9000"
    assert config.hvac_target_id == "Lab7_HVAC"
    assert config.timeout == 10.0
