"""Normalization of arrival credentials and names."""
import re
from typing import Optional, Tuple

_NON_DIGITS = re.compile(r"\D")


def phone_digits(phone: Optional[str]) -> str:
    """Strip everything but digits from a phone number."""
    if not phone:
        return ""
    return _NON_DIGITS.sub("", phone)


def normalize_name(name: Optional[str]) -> str:
    """Lower-case and trim a name for matching."""
    if not name:
        return ""
    return name.strip().lower()


def split_full_name(full_name: Optional[str]) -> Tuple[str, str]:
    """
    Split a display name into (first, last).

    The first word is the first name and everything after it is the last
    name, so "Mary Ann Smith" gives ("Mary", "Ann Smith").
    """
    parts = (full_name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])
