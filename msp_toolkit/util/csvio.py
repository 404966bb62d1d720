"""
CSV input and output for bulk jobs.

Input files usually come from spreadsheet exports (RMM device lists, vendor
warranty reports), so headers arrive in every casing imaginable. Headers are
normalized to snake case on read so callers can address columns by a single
name.
"""

import csv
import re
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from msp_toolkit.exceptions import CsvInputError, InputFileNotFoundError

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_WORD = re.compile(r"[^0-9a-zA-Z]+")


def normalize_header(name: str) -> str:
    """
    Convert a CSV header to snake case.

    Example:
        >>> normalize_header("DeviceUID")
        'device_uid'
        >>> normalize_header(" Serial Number ")
        'serial_number'
    """
    name = _CAMEL_BOUNDARY.sub("_", name.strip())
    name = _NON_WORD.sub("_", name)
    return name.strip("_").lower()


def read_rows(
    path: str | Path,
    required: Sequence[str] = (),
    require_any: Sequence[str] = (),
) -> list[dict[str, str]]:
    """
    Read a CSV file into dicts keyed by normalized header.

    Args:
        path: CSV file (a UTF-8 byte-order mark from Excel is tolerated)
        required: Normalized column names that must all be present
        require_any: Normalized column names of which at least one must be present

    Returns:
        One dict per data row, values stripped of surrounding whitespace

    Raises:
        InputFileNotFoundError: If the file does not exist
        CsvInputError: If required columns are missing
    """
    p = Path(path)
    if not p.is_file():
        raise InputFileNotFoundError(str(p))

    with open(p, newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f)
        try:
            header = next(reader)
        except StopIteration:
            header = []
        columns = [normalize_header(h) for h in header]

        missing = [c for c in required if c not in columns]
        if require_any and not any(c in columns for c in require_any):
            missing.append(" or ".join(require_any))
        if missing:
            raise CsvInputError(str(p), missing)

        rows = []
        for record in reader:
            if not any(cell.strip() for cell in record):
                continue
            rows.append(
                {column: (record[i].strip() if i < len(record) else "") for i, column in enumerate(columns)}
            )
    return rows


def write_rows(
    path: str | Path,
    rows: Iterable[dict[str, Any]],
    fieldnames: Sequence[str] | None = None,
) -> int:
    """
    Write dicts to a CSV file, creating parent directories if needed.

    Args:
        path: Destination file
        rows: Records to write; missing keys are written as empty cells
        fieldnames: Column order (default: keys in first-seen order)

    Returns:
        Number of data rows written
    """
    rows = list(rows)
    if fieldnames is None:
        fieldnames = []
        for row in rows:
            for key in row:
                if key not in fieldnames:
                    fieldnames.append(key)

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(fieldnames), extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: "" if v is None else v for k, v in row.items()})
    return len(rows)
