"""
Phone number detection and tel: URI normalization.

The matcher is deliberately loose and North-American: it accepts
(870) 830-4352, 870-830-4352, 870.830.4352, 8708304352, an optional +1
prefix and a trailing extension written as x, ext, ext. or extension.
"""

import re
from dataclasses import dataclass

PHONE_PATTERN = re.compile(
    r"(?:\+?1[\s.-]?)?"
    r"(?:\(\s*\d{3}\s*\)|\d{3})[\s.-]?\d{3}[\s.-]?\d{4}"
    r"(?:\s*(?:x|ext\.?|extension)\s*\d{1,6})?",
    re.IGNORECASE,
)
EXTENSION_PATTERN = re.compile(r"\s*(?:x|ext\.?|extension)\s*(\d{1,6})", re.IGNORECASE)

MIN_DIGITS = 10
MAX_DIGITS = 15


@dataclass(frozen=True)
class PhoneMatch:
    start: int
    end: int
    raw: str
    tel: str

    @property
    def href(self) -> str:
        return f"tel:{self.tel}"


def normalize_to_tel(raw: str) -> str | None:
    """
    Normalize a matched phone number to an E.164-style tel: value.

    Args:
        raw: Phone number text as it appeared on the page

    Returns:
        "+<digits>" with ";ext=<n>" appended when an extension was present,
        or None when the digit count is outside 10-15

    Example:
        >>> normalize_to_tel("(870) 830-4352 ext. 12")
        '+18708304352;ext=12'
    """
    extension_match = EXTENSION_PATTERN.search(raw)
    extension = extension_match.group(1) if extension_match else ""
    core = EXTENSION_PATTERN.sub("", raw) if extension_match else raw

    digits = re.sub(r"\D", "", core)
    if len(digits) < MIN_DIGITS or len(digits) > MAX_DIGITS:
        return None

    if len(digits) == 10:
        normalized = f"+1{digits}"
    else:
        # 11 digits with a leading 1 is a US number with country code; anything
        # longer is taken as already international
        normalized = f"+{digits}"

    return f"{normalized};ext={extension}" if extension else normalized


def find_phone_numbers(text: str) -> list[PhoneMatch]:
    """
    Find linkable phone numbers in text.

    Matches that sit directly against another digit (order numbers, serials)
    or that do not normalize are ignored.
    """
    matches = []
    for match in PHONE_PATTERN.finditer(text):
        start, end = match.span()
        before = text[start - 1] if start > 0 else ""
        after = text[end] if end < len(text) else ""
        if before.isdigit() or after.isdigit():
            continue

        tel = normalize_to_tel(match.group(0))
        if tel is None:
            continue
        matches.append(PhoneMatch(start, end, match.group(0), tel))
    return matches
