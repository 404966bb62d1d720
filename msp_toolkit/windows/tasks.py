"""
Scheduled task control through schtasks.exe.
"""

import csv
import io
import logging
from dataclasses import dataclass

from msp_toolkit.windows.runner import CommandRunner

logger = logging.getLogger(__name__)


@dataclass
class TaskState:
    name: str
    exists: bool
    status: str | None = None

    @property
    def disabled(self) -> bool:
        return self.status == "Disabled"


class ScheduledTasks:
    """Query, disable and delete scheduled tasks by full path name."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def query(self, name: str) -> TaskState:
        """
        Look up a task's status.

        schtasks prints one CSV row per trigger: "TaskName","Next Run Time","Status".
        """
        result = self.runner.run(["schtasks", "/Query", "/TN", name, "/FO", "CSV", "/NH"])
        if not result.ok:
            return TaskState(name=name, exists=False)

        status = None
        for row in csv.reader(io.StringIO(result.stdout)):
            if len(row) >= 3:
                status = row[2].strip()
                break
        return TaskState(name=name, exists=True, status=status)

    def disable(self, name: str) -> None:
        logger.info(f"Disabling scheduled task {name}")
        self.runner.run(["schtasks", "/Change", "/TN", name, "/Disable"]).check()

    def delete(self, name: str) -> None:
        logger.info(f"Deleting scheduled task {name}")
        self.runner.run(["schtasks", "/Delete", "/TN", name, "/F"]).check()
