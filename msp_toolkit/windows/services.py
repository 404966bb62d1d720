"""
Service and kernel driver control through sc.exe.

sc.exe treats drivers (Bitdefender's filter drivers, Webroot's WRkrn) the
same as services, so one wrapper covers both.
"""

import logging
import re
from dataclasses import dataclass

from msp_toolkit.windows.runner import CommandRunner

logger = logging.getLogger(__name__)

# sc.exe reports 1060 when the service does not exist
ERROR_SERVICE_DOES_NOT_EXIST = 1060
# and 1062 when stopping a service that is not running
ERROR_SERVICE_NOT_ACTIVE = 1062

START_TYPES = {
    "auto": "AUTO_START",
    "demand": "DEMAND_START",
    "disabled": "DISABLED",
    "boot": "BOOT_START",
    "system": "SYSTEM_START",
}

_STATE_LINE = re.compile(r"^\s*STATE\s*:\s*\d+\s+(\w+)", re.MULTILINE)
_START_TYPE_LINE = re.compile(r"^\s*START_TYPE\s*:\s*\d+\s+(\w+)", re.MULTILINE)


@dataclass
class ServiceState:
    name: str
    exists: bool
    state: str | None = None
    start_type: str | None = None

    @property
    def disabled(self) -> bool:
        return self.start_type == "DISABLED"

    @property
    def running(self) -> bool:
        return self.state == "RUNNING"


class Services:
    """Query, stop, disable and delete Windows services and drivers."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def query(self, name: str) -> ServiceState:
        """
        Look up a service's run state and start type.

        Returns:
            ServiceState with exists=False when sc.exe does not know the name

        Raises:
            CommandFailedError: If sc.exe fails for any other reason (e.g. access denied)
        """
        status = self.runner.run(["sc", "query", name])
        if status.returncode == ERROR_SERVICE_DOES_NOT_EXIST:
            return ServiceState(name=name, exists=False)
        status.check()

        state_match = _STATE_LINE.search(status.stdout)
        config = self.runner.run(["sc", "qc", name])
        start_match = _START_TYPE_LINE.search(config.stdout) if config.ok else None

        return ServiceState(
            name=name,
            exists=True,
            state=state_match.group(1) if state_match else None,
            start_type=start_match.group(1) if start_match else None,
        )

    def stop(self, name: str) -> None:
        """Stop a service; a service that is already stopped is not an error."""
        result = self.runner.run(["sc", "stop", name])
        if result.ok or result.returncode == ERROR_SERVICE_NOT_ACTIVE:
            return
        result.check()

    def set_start_type(self, name: str, start_type: str) -> None:
        """
        Change a service's start type.

        Args:
            name: Service name
            start_type: One of auto, demand, disabled, boot, system
        """
        if start_type not in START_TYPES:
            raise ValueError(f"Unknown start type: {start_type}. Must be one of: {list(START_TYPES)}")
        logger.info(f"Setting {name} start type to {start_type}")
        self.runner.run(["sc", "config", name, "start=", start_type]).check()

    def delete(self, name: str) -> None:
        logger.info(f"Deleting service {name}")
        self.runner.run(["sc", "delete", name]).check()
