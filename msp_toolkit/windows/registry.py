"""
Registry access through reg.exe.
"""

import logging
import re
from dataclasses import dataclass

from msp_toolkit.windows.runner import CommandRunner

logger = logging.getLogger(__name__)

# "    CEIPEnable    REG_DWORD    0x0"
VALUE_LINE = re.compile(r"^\s+(?P<name>.+?)\s{2,}(?P<type>REG_[A-Z_]+)(?:\s{2,}(?P<data>.*))?$")

NUMERIC_TYPES = ("REG_DWORD", "REG_QWORD")


@dataclass
class RegistryValue:
    path: str
    name: str
    type: str
    data: str


def parse_reg_query(path: str, output: str) -> list[RegistryValue]:
    """Parse the value lines of `reg query` output for a single key."""
    values = []
    for line in output.splitlines():
        match = VALUE_LINE.match(line)
        if match:
            values.append(
                RegistryValue(
                    path=path,
                    name=match.group("name").strip(),
                    type=match.group("type"),
                    data=(match.group("data") or "").strip(),
                )
            )
    return values


def _as_int(raw: str | int) -> int | None:
    if isinstance(raw, int):
        return raw
    text = str(raw).strip().lower()
    try:
        return int(text, 16) if text.startswith("0x") else int(text)
    except ValueError:
        return None


def value_matches(current: RegistryValue | None, value_type: str, desired: str | int) -> bool:
    """
    Compare a queried value against the desired one.

    DWORD and QWORD values compare numerically since reg.exe reports them
    in hex (0x1 matches 1); everything else compares as text.
    """
    if current is None:
        return False
    if value_type in NUMERIC_TYPES:
        current_int = _as_int(current.data)
        return current_int is not None and current_int == _as_int(desired)
    return current.data == str(desired)


class Registry:
    """Query and change registry keys and values."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def key_exists(self, path: str) -> bool:
        return self.runner.run(["reg", "query", path]).ok

    def get_value(self, path: str, name: str) -> RegistryValue | None:
        """Return the named value, or None if the key or value is absent."""
        result = self.runner.run(["reg", "query", path, "/v", name])
        if not result.ok:
            return None
        for value in parse_reg_query(path, result.stdout):
            if value.name.lower() == name.lower():
                return value
        return None

    def set_value(self, path: str, name: str, value_type: str, data: str | int) -> None:
        logger.info(f"Setting {path}\\{name} = {data} ({value_type})")
        self.runner.run(
            ["reg", "add", path, "/v", name, "/t", value_type, "/d", str(data), "/f"]
        ).check()

    def delete_value(self, path: str, name: str) -> None:
        logger.info(f"Deleting value {path}\\{name}")
        self.runner.run(["reg", "delete", path, "/v", name, "/f"]).check()

    def delete_key(self, path: str) -> None:
        logger.info(f"Deleting key {path}")
        self.runner.run(["reg", "delete", path, "/f"]).check()
