"""
Idempotent cleanup actions and the profile runner.

Every action first checks whether the endpoint is already in the desired
state and only then changes it, so a profile can be pushed from the RMM on a
schedule and re-run safely. Audit mode reports what would change without
touching anything.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from msp_toolkit.exceptions import MspToolkitError
from msp_toolkit.windows.registry import Registry, value_matches
from msp_toolkit.windows.runner import CommandRunner
from msp_toolkit.windows.services import Services
from msp_toolkit.windows.tasks import ScheduledTasks

if TYPE_CHECKING:
    from msp_toolkit.windows.catalog import CleanupProfile

logger = logging.getLogger(__name__)

MODES = ("audit", "apply")


@dataclass
class WindowsHost:
    """The system tools a cleanup action can use."""

    registry: Registry
    services: Services
    tasks: ScheduledTasks

    @classmethod
    def local(cls, runner: CommandRunner | None = None) -> "WindowsHost":
        runner = runner or CommandRunner()
        return cls(Registry(runner), Services(runner), ScheduledTasks(runner))


class CleanupAction(ABC):
    """One desired-state check with the change that enforces it."""

    label: str

    @abstractmethod
    def is_compliant(self, host: WindowsHost) -> bool:
        """Return True if the endpoint already matches the desired state."""

    @abstractmethod
    def apply(self, host: WindowsHost) -> None:
        """Change the endpoint to the desired state."""

    def __str__(self) -> str:
        return self.label


class EnsureRegistryValue(CleanupAction):
    def __init__(self, path: str, name: str, data: str | int, value_type: str = "REG_DWORD", label: str | None = None):
        self.path = path
        self.name = name
        self.data = data
        self.value_type = value_type
        self.label = label or f"{path}\\{name} = {data}"

    def is_compliant(self, host: WindowsHost) -> bool:
        return value_matches(host.registry.get_value(self.path, self.name), self.value_type, self.data)

    def apply(self, host: WindowsHost) -> None:
        host.registry.set_value(self.path, self.name, self.value_type, self.data)


class RemoveRegistryKey(CleanupAction):
    def __init__(self, path: str, label: str | None = None):
        self.path = path
        self.label = label or f"remove {path}"

    def is_compliant(self, host: WindowsHost) -> bool:
        return not host.registry.key_exists(self.path)

    def apply(self, host: WindowsHost) -> None:
        host.registry.delete_key(self.path)


class RemoveRegistryValue(CleanupAction):
    def __init__(self, path: str, name: str, label: str | None = None):
        self.path = path
        self.name = name
        self.label = label or f"remove {path}\\{name}"

    def is_compliant(self, host: WindowsHost) -> bool:
        return host.registry.get_value(self.path, self.name) is None

    def apply(self, host: WindowsHost) -> None:
        host.registry.delete_value(self.path, self.name)


class DisableService(CleanupAction):
    """Stop a service and set it to disabled. A missing service is compliant."""

    def __init__(self, name: str, label: str | None = None):
        self.name = name
        self.label = label or f"disable service {name}"

    def is_compliant(self, host: WindowsHost) -> bool:
        state = host.services.query(self.name)
        return not state.exists or (state.disabled and not state.running)

    def apply(self, host: WindowsHost) -> None:
        host.services.stop(self.name)
        host.services.set_start_type(self.name, "disabled")


class RemoveService(CleanupAction):
    """Stop and delete a service or kernel driver."""

    def __init__(self, name: str, label: str | None = None):
        self.name = name
        self.label = label or f"remove service {name}"

    def is_compliant(self, host: WindowsHost) -> bool:
        return not host.services.query(self.name).exists

    def apply(self, host: WindowsHost) -> None:
        host.services.stop(self.name)
        host.services.delete(self.name)


class DisableTask(CleanupAction):
    def __init__(self, name: str, label: str | None = None):
        self.name = name
        self.label = label or f"disable task {name}"

    def is_compliant(self, host: WindowsHost) -> bool:
        state = host.tasks.query(self.name)
        return not state.exists or state.disabled

    def apply(self, host: WindowsHost) -> None:
        host.tasks.disable(self.name)


class RemoveTask(CleanupAction):
    def __init__(self, name: str, label: str | None = None):
        self.name = name
        self.label = label or f"remove task {name}"

    def is_compliant(self, host: WindowsHost) -> bool:
        return not host.tasks.query(self.name).exists

    def apply(self, host: WindowsHost) -> None:
        host.tasks.delete(self.name)


@dataclass
class CleanupReport:
    """Per-action outcome of a profile run."""

    profile: str
    mode: str
    already: list[str] = field(default_factory=list)
    applied: list[str] = field(default_factory=list)
    planned: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)

    def summary(self) -> dict[str, int]:
        return {
            "already": len(self.already),
            "applied": len(self.applied),
            "planned": len(self.planned),
            "failed": len(self.failed),
        }


def run_profile(profile: "CleanupProfile", host: WindowsHost, mode: str = "audit") -> CleanupReport:
    """
    Run every action of a profile against the host.

    Args:
        profile: Profile from the catalog
        host: System tools to act through
        mode: "audit" to only report, "apply" to make changes

    Returns:
        CleanupReport; failing actions are recorded and the run continues
    """
    if mode not in MODES:
        raise ValueError(f"Unknown mode: {mode}. Must be one of: {list(MODES)}")

    report = CleanupReport(profile=profile.key, mode=mode)
    logger.info(f"Running cleanup profile '{profile.key}' in {mode} mode")

    for action in profile.actions:
        try:
            if action.is_compliant(host):
                report.already.append(action.label)
                continue
            if mode == "audit":
                report.planned.append(action.label)
                continue
            action.apply(host)
            report.applied.append(action.label)
        except MspToolkitError as e:
            logger.error(f"{action.label}: {e.message}")
            report.failed.append(f"{action.label} ({e.message.strip().splitlines()[-1]})")

    logger.info(
        f"Profile '{profile.key}': {len(report.already)} already compliant, "
        f"{len(report.applied)} applied, {len(report.planned)} planned, "
        f"{len(report.failed)} failed"
    )
    return report
