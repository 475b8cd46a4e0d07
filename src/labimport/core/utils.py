"""
Utility functions shared across modules: title sanitizing, date parsing.
"""

import re
from datetime import date, datetime
from typing import Optional

_BACKSLASH_ESCAPE = re.compile(r"\\(.?)", re.DOTALL)
_NON_ALNUM_RUN = re.compile(r"[^A-Za-z0-9]+")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")

DATE_FORMATS = ("%Y%m%d", "%Y-%m-%d")


def strip_slashes(text: str) -> str:
    """
    Remove backslash escapes: "\\'" becomes "'" and "\\\\" becomes "\\".
    """
    return _BACKSLASH_ESCAPE.sub(r"\1", text)


def sanitize_title(title: str) -> str:
    """
    Turn a record title into the folder-name fragment used in archives.
    Every run of characters outside [A-Za-z0-9] becomes a single underscore.
    """
    return _NON_ALNUM_RUN.sub("_", strip_slashes(title))


def legacy_sanitize_title(title: str) -> str:
    """Like sanitize_title, but one underscore per replaced character."""
    return _NON_ALNUM.sub("_", strip_slashes(title))


def parse_record_date(value: str) -> Optional[date]:
    """
    Parse a manifest date ("20170131" or "2017-01-31").
    Returns None when the text matches neither format.
    """
    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None
