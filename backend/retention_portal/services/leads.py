"""
Lead helpers for VICIdial lead assignment.

Pure functions: phone/name normalization and lead-id extraction from
non-agent API replies.
"""

import re
from typing import List, Optional, Tuple


_ADD_LEAD_SUCCESS = re.compile(r"^SUCCESS:\s*add_lead\b", re.IGNORECASE)
_ERROR_WORD = re.compile(r"\bERROR\b", re.IGNORECASE)
_DIGITS = re.compile(r"[0-9]+")

MAX_LEAD_ID = 1_000_000_000


def normalize_us_phone(value: Optional[str]) -> str:
    """Strip formatting and a leading US country code."""
    digits = re.sub(r"\D", "", value or "")
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return digits


def split_name(
    full_name: Optional[str],
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Tuple[str, str]:
    """
    Resolve (first, last) for a new lead.

    Explicit first/last names win. Otherwise the full name is split on the
    first space. Missing parts fall back to "Unknown" / "Contact".
    """
    first = (first_name or "").strip()
    last = (last_name or "").strip()
    if first or last:
        return first, last

    normalized = " ".join((full_name or "").split())
    if not normalized:
        return "Unknown", "Contact"
    parts = normalized.split(" ")
    if len(parts) == 1:
        return parts[0], "Contact"
    return parts[0], " ".join(parts[1:])


def contains_error(raw: Optional[str]) -> bool:
    return bool(raw and _ERROR_WORD.search(raw))


def parse_added_lead_id(raw: Optional[str]) -> Optional[int]:
    """
    Extract the new lead id from an add_lead reply.

    Format: ``SUCCESS: add_lead LEAD HAS BEEN ADDED - phone|list|lead_id|...``
    """
    for line in (raw or "").split("\n"):
        line = line.strip()
        if not line or not _ADD_LEAD_SUCCESS.match(line):
            continue
        _, _, after_dash = line.partition(" - ")
        parts = [part.strip() for part in after_dash.split("|")]
        if len(parts) < 3:
            continue
        try:
            lead_id = int(parts[2])
        except ValueError:
            continue
        if lead_id > 0:
            return lead_id
    return None


def parse_lead_ids(raw: Optional[str]) -> List[int]:
    """
    Collect every numeric pipe-delimited token that looks like a lead id.

    ``ERROR:`` lines are ignored. Order of first appearance is preserved.
    """
    ids: List[int] = []
    for line in (raw or "").split("\n"):
        line = line.strip()
        if not line or line.upper().startswith("ERROR:"):
            continue
        for token in line.split("|"):
            token = token.strip()
            if not _DIGITS.fullmatch(token):
                continue
            lead_id = int(token)
            if 0 < lead_id < MAX_LEAD_ID and lead_id not in ids:
                ids.append(lead_id)
    return ids
