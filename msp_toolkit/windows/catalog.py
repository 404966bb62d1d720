"""
Built-in cleanup profiles.

Each profile is a list of desired-state actions that is safe to push to
every managed endpoint: entries for software that is not installed are
simply reported as already compliant.
"""

from dataclasses import dataclass, field

from msp_toolkit.exceptions import UnknownProfileError
from msp_toolkit.windows.cleanup import (
    CleanupAction,
    DisableService,
    DisableTask,
    EnsureRegistryValue,
    RemoveRegistryKey,
    RemoveService,
)

HKLM = "HKLM\\SOFTWARE"
CEIP_TASK_FOLDER = "\\Microsoft\\Windows\\Customer Experience Improvement Program"


@dataclass
class CleanupProfile:
    key: str
    label: str
    description: str
    actions: list[CleanupAction] = field(default_factory=list)


def _ceip() -> CleanupProfile:
    return CleanupProfile(
        key="ceip",
        label="Disable CEIP telemetry",
        description="Opt out of the Customer Experience Improvement Program and disable its scheduled tasks.",
        actions=[
            EnsureRegistryValue(f"{HKLM}\\Policies\\Microsoft\\SQMClient\\Windows", "CEIPEnable", 0),
            EnsureRegistryValue(f"{HKLM}\\Microsoft\\SQMClient\\Windows", "CEIPEnable", 0),
            EnsureRegistryValue(f"{HKLM}\\Policies\\Microsoft\\Windows\\AppCompat", "AITEnable", 0),
            EnsureRegistryValue(f"{HKLM}\\Policies\\Microsoft\\Messenger\\Client", "CEIP", 2),
            DisableTask(f"{CEIP_TASK_FOLDER}\\Consolidator"),
            DisableTask(f"{CEIP_TASK_FOLDER}\\UsbCeip"),
            DisableTask(f"{CEIP_TASK_FOLDER}\\KernelCeipTask"),
        ],
    )


def _bitdefender() -> CleanupProfile:
    services = ["EPIntegrationService", "EPProtectedService", "EPRedline", "EPSecurityService", "EPUpdateService"]
    drivers = ["atc", "bddevflt", "bdelam", "bdfwfpf", "bdprivmon", "gzflt", "trufos"]
    return CleanupProfile(
        key="bitdefender",
        label="Remove Bitdefender Endpoint leftovers",
        description="Delete services, filter drivers and the registry key a failed Bitdefender uninstall leaves behind.",
        actions=[RemoveService(name) for name in services]
        + [RemoveService(name, label=f"remove driver {name}") for name in drivers]
        + [RemoveRegistryKey(f"{HKLM}\\Bitdefender")],
    )


def _legacy_av() -> CleanupProfile:
    return CleanupProfile(
        key="legacy-av",
        label="Remove Webroot leftovers",
        description="Delete Webroot SecureAnywhere services, drivers and registry keys after migration to a new AV.",
        actions=[
            RemoveService("WRSVC"),
            RemoveService("WRCoreService"),
            RemoveService("WRSkyClient"),
            RemoveService("WRkrn", label="remove driver WRkrn"),
            RemoveService("WRBoot", label="remove driver WRBoot"),
            RemoveService("wrUrlFlt", label="remove driver wrUrlFlt"),
            RemoveRegistryKey(f"{HKLM}\\WRData"),
            RemoveRegistryKey(f"{HKLM}\\WRCore"),
            RemoveRegistryKey(f"{HKLM}\\WRMIDData"),
        ],
    )


def _dell_bloat() -> CleanupProfile:
    return CleanupProfile(
        key="dell-bloat",
        label="Disable Dell OEM agents",
        description="Disable SupportAssist, Dell Client Management and Dell Data Vault services and tasks.",
        actions=[
            DisableService("SupportAssistAgent"),
            DisableService("DellClientManagementService"),
            DisableService("DDVDataCollector"),
            DisableService("DDVRulesProcessor"),
            DisableService("DDVCollectorSvcApi"),
            DisableTask("\\Dell SupportAssistAgent AutoUpdate"),
            DisableTask("\\Dell\\SupportAssistAgent\\Dell SupportAssist"),
        ],
    )


CATALOG: dict[str, CleanupProfile] = {
    profile.key: profile for profile in (_ceip(), _bitdefender(), _legacy_av(), _dell_bloat())
}


def get_profile(name: str) -> CleanupProfile:
    """
    Look up a profile by key.

    Raises:
        UnknownProfileError: If the catalog has no such profile
    """
    profile = CATALOG.get(name.strip().lower())
    if profile is None:
        raise UnknownProfileError(name, sorted(CATALOG))
    return profile
