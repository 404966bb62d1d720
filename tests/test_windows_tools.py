"""
Tests for the reg.exe, sc.exe and schtasks.exe wrappers.
"""

import subprocess
import sys
from unittest.mock import patch

import pytest

from msp_toolkit.exceptions import CommandFailedError, CommandNotAvailableError
from msp_toolkit.windows.registry import Registry, RegistryValue, parse_reg_query, value_matches
from msp_toolkit.windows.runner import CommandResult, CommandRunner
from msp_toolkit.windows.services import Services
from msp_toolkit.windows.tasks import ScheduledTasks

SQM_KEY = "HKLM\\SOFTWARE\\Microsoft\\SQMClient\\Windows"

REG_QUERY_OUTPUT = (
    "\r\n"
    "HKEY_LOCAL_MACHINE\\SOFTWARE\\Microsoft\\SQMClient\\Windows\r\n"
    "    CEIPEnable    REG_DWORD    0x1\r\n"
    "    InstallPath    REG_SZ    C:\\Program Files\\Acme Agent\r\n"
    "    Empty    REG_SZ\r\n"
    "\r\n"
)

SC_QUERY_RUNNING = (
    "\r\nSERVICE_NAME: SupportAssistAgent\r\n"
    "        TYPE               : 10  WIN32_OWN_PROCESS\r\n"
    "        STATE              : 4  RUNNING\r\n"
    "                                (STOPPABLE, NOT_PAUSABLE, ACCEPTS_SHUTDOWN)\r\n"
)

SC_QC_AUTO = (
    "[SC] QueryServiceConfig SUCCESS\r\n\r\n"
    "SERVICE_NAME: SupportAssistAgent\r\n"
    "        TYPE               : 10  WIN32_OWN_PROCESS\r\n"
    "        START_TYPE         : 2   AUTO_START  (DELAYED)\r\n"
)


class TestCommandRunner:
    """Tests for CommandRunner."""

    def test_captures_output(self):
        completed = subprocess.CompletedProcess(["reg", "query", "X"], 0, stdout="out", stderr="")
        with patch("msp_toolkit.windows.runner.subprocess.run", return_value=completed) as run:
            result = CommandRunner().run(["reg", "query", "X"])

        assert result.ok
        assert result.stdout == "out"
        assert run.call_args.args[0] == ["reg", "query", "X"]
        assert run.call_args.kwargs["check"] is False
        assert run.call_args.kwargs["errors"] == "replace"

    def test_undecodable_output_is_replaced(self):
        """Test console output in an unexpected code page does not raise."""
        script = "import sys; sys.stdout.buffer.write(b\"Zugriff verweigert \\x81\\xff\")"

        result = CommandRunner().run([sys.executable, "-c", script])

        assert result.ok
        assert result.stdout.startswith("Zugriff verweigert")
        assert "\ufffd" in result.stdout

    def test_missing_executable(self):
        with patch("msp_toolkit.windows.runner.subprocess.run", side_effect=FileNotFoundError("reg")):
            with pytest.raises(CommandNotAvailableError) as exc_info:
                CommandRunner().run(["reg", "query", "X"])

        assert "reg" in exc_info.value.message

    def test_timeout(self):
        with patch(
            "msp_toolkit.windows.runner.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["sc", "stop", "X"], 5),
        ):
            with pytest.raises(CommandFailedError):
                CommandRunner(timeout=5).run(["sc", "stop", "X"])

    def test_check(self):
        assert CommandResult(["x"], 0).check().ok
        with pytest.raises(CommandFailedError):
            CommandResult(["x"], 5, "", "Access is denied.").check()


class TestRegistry:
    """Tests for Registry."""

    def test_parse_reg_query(self):
        values = parse_reg_query(SQM_KEY, REG_QUERY_OUTPUT)

        assert values == [
            RegistryValue(SQM_KEY, "CEIPEnable", "REG_DWORD", "0x1"),
            RegistryValue(SQM_KEY, "InstallPath", "REG_SZ", "C:\\Program Files\\Acme Agent"),
            RegistryValue(SQM_KEY, "Empty", "REG_SZ", ""),
        ]

    def test_get_value(self, fake_runner):
        fake_runner.on(["reg", "query", SQM_KEY, "/v", "CEIPEnable"], stdout=REG_QUERY_OUTPUT)

        value = Registry(fake_runner).get_value(SQM_KEY, "ceipenable")

        assert value.data == "0x1"
        assert value.type == "REG_DWORD"

    def test_get_missing_value(self, fake_runner):
        assert Registry(fake_runner).get_value(SQM_KEY, "CEIPEnable") is None

    def test_key_exists(self, fake_runner):
        fake_runner.on(["reg", "query", SQM_KEY], stdout=REG_QUERY_OUTPUT)
        registry = Registry(fake_runner)

        assert registry.key_exists(SQM_KEY)
        assert not registry.key_exists("HKLM\\SOFTWARE\\Nope")

    def test_set_value_command(self, fake_runner):
        fake_runner.on(["reg", "add"])

        Registry(fake_runner).set_value(SQM_KEY, "CEIPEnable", "REG_DWORD", 0)

        assert fake_runner.calls[-1] == ["reg", "add", SQM_KEY, "/v", "CEIPEnable", "/t", "REG_DWORD", "/d", "0", "/f"]

    def test_delete_value_command(self, fake_runner):
        fake_runner.on(["reg", "delete"])

        Registry(fake_runner).delete_value(SQM_KEY, "CEIPEnable")

        assert fake_runner.calls[-1] == ["reg", "delete", SQM_KEY, "/v", "CEIPEnable", "/f"]

    def test_delete_failure_raises(self, fake_runner):
        fake_runner.on(["reg", "delete"], returncode=1, stderr="ERROR: Access is denied.")

        with pytest.raises(CommandFailedError, match="Access is denied"):
            Registry(fake_runner).delete_key("HKLM\\SOFTWARE\\Bitdefender")

    @pytest.mark.parametrize(
        "data,desired,expected",
        [
            ("0x1", 1, True),
            ("0x0", 0, True),
            ("0x2", "2", True),
            ("0x1", 0, False),
            ("garbage", 0, False),
        ],
    )
    def test_value_matches_dword(self, data, desired, expected):
        current = RegistryValue(SQM_KEY, "CEIPEnable", "REG_DWORD", data)
        assert value_matches(current, "REG_DWORD", desired) is expected

    def test_value_matches_string_and_missing(self):
        current = RegistryValue(SQM_KEY, "Mode", "REG_SZ", "off")

        assert value_matches(current, "REG_SZ", "off")
        assert not value_matches(current, "REG_SZ", "Off")
        assert not value_matches(None, "REG_DWORD", 0)


class TestServices:
    """Tests for Services."""

    def test_query_running_service(self, fake_runner):
        fake_runner.on(["sc", "query", "SupportAssistAgent"], stdout=SC_QUERY_RUNNING)
        fake_runner.on(["sc", "qc", "SupportAssistAgent"], stdout=SC_QC_AUTO)

        state = Services(fake_runner).query("SupportAssistAgent")

        assert state.exists
        assert state.running
        assert state.start_type == "AUTO_START"
        assert not state.disabled

    def test_query_missing_service(self, fake_runner):
        fake_runner.on(["sc", "query"], returncode=1060, stdout="[SC] EnumQueryServicesStatus:OpenService FAILED 1060")

        state = Services(fake_runner).query("WRSVC")

        assert not state.exists
        assert fake_runner.calls == [["sc", "query", "WRSVC"]]

    def test_query_access_denied_raises(self, fake_runner):
        """Test a failed query is an error rather than a missing service."""
        fake_runner.on(["sc", "query"], returncode=5, stdout="[SC] OpenService FAILED 5:\r\n\r\nAccess is denied.")

        with pytest.raises(CommandFailedError):
            Services(fake_runner).query("WRSVC")

    def test_stop_already_stopped_is_ok(self, fake_runner):
        fake_runner.on(["sc", "stop"], returncode=1062, stdout="[SC] ControlService FAILED 1062")

        Services(fake_runner).stop("SupportAssistAgent")

    def test_stop_failure_raises(self, fake_runner):
        fake_runner.on(["sc", "stop"], returncode=5, stdout="[SC] OpenService FAILED 5: Access is denied.")

        with pytest.raises(CommandFailedError):
            Services(fake_runner).stop("EPSecurityService")

    def test_set_start_type(self, fake_runner):
        fake_runner.on(["sc", "config"])

        Services(fake_runner).set_start_type("DDVDataCollector", "disabled")

        assert fake_runner.calls[-1] == ["sc", "config", "DDVDataCollector", "start=", "disabled"]

    def test_set_start_type_rejects_unknown(self, fake_runner):
        with pytest.raises(ValueError):
            Services(fake_runner).set_start_type("X", "sometimes")


class TestScheduledTasks:
    """Tests for ScheduledTasks."""

    TASK = "\\Microsoft\\Windows\\Customer Experience Improvement Program\\Consolidator"

    def test_query_status(self, fake_runner):
        fake_runner.on(["schtasks", "/Query"], stdout=f'"{self.TASK}","N/A","Disabled"\r\n')

        state = ScheduledTasks(fake_runner).query(self.TASK)

        assert state.exists
        assert state.disabled

    def test_query_missing(self, fake_runner):
        fake_runner.on(["schtasks", "/Query"], returncode=1, stderr="ERROR: The system cannot find the file specified.")

        assert not ScheduledTasks(fake_runner).query(self.TASK).exists

    def test_disable_and_delete_commands(self, fake_runner):
        fake_runner.on(["schtasks"])
        tasks = ScheduledTasks(fake_runner)

        tasks.disable(self.TASK)
        tasks.delete(self.TASK)

        assert fake_runner.calls == [
            ["schtasks", "/Change", "/TN", self.TASK, "/Disable"],
            ["schtasks", "/Delete", "/TN", self.TASK, "/F"],
        ]
