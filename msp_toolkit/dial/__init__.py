"""
Click-to-dial helpers: phone number detection and tel: linkification.
"""

from msp_toolkit.dial.linkify import LinkifyResult, linkify_html
from msp_toolkit.dial.phone import PhoneMatch, find_phone_numbers, normalize_to_tel

__all__ = [
    "LinkifyResult",
    "PhoneMatch",
    "find_phone_numbers",
    "linkify_html",
    "normalize_to_tel",
]
