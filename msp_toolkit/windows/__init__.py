"""
Windows endpoint cleanup driven through reg.exe, sc.exe and schtasks.exe.
"""

from msp_toolkit.windows.catalog import CATALOG, CleanupProfile, get_profile
from msp_toolkit.windows.cleanup import CleanupReport, WindowsHost, run_profile
from msp_toolkit.windows.diskspace import DiskCleanupTarget, default_targets, reclaim

__all__ = [
    "CATALOG",
    "CleanupProfile",
    "CleanupReport",
    "DiskCleanupTarget",
    "WindowsHost",
    "default_targets",
    "get_profile",
    "reclaim",
    "run_profile",
]
