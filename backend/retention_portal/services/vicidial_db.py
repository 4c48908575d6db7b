"""
VICIdial lead store.

Read-only queries against the dialer's ``vicidial_list`` table: the leads
of a list, names for hopper rows, and the newest lead for a vendor code.
Only used when VICIDIAL_DB_* is configured.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from fastapi import Depends
from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

from ..core.config import Settings, get_settings
from ..core.database import get_vicidial_engine


LEAD_COLUMNS = (
    "lead_id",
    "list_id",
    "status",
    "phone_number",
    "alt_phone",
    "title",
    "first_name",
    "last_name",
    "address1",
    "address2",
    "address3",
    "city",
    "state",
    "postal_code",
    "province",
    "country_code",
    "email",
    "vendor_lead_code",
    "source_id",
    "called_count",
    "entry_date",
    "modify_date",
    "last_local_call_time",
    "comments",
)

_LIST_LEADS = text(f"""
    SELECT {", ".join(LEAD_COLUMNS)}
    FROM vicidial_list
    WHERE list_id = :list_id
      AND (:include_eri = 1 OR status IS NULL OR status <> 'ERI')
    ORDER BY lead_id DESC
    LIMIT :limit
""")

_LEAD_NAMES = text("""
    SELECT lead_id, first_name, last_name
    FROM vicidial_list
    WHERE lead_id IN :lead_ids
""").bindparams(bindparam("lead_ids", expanding=True))

_LEAD_BY_VENDOR_CODE = text("""
    SELECT lead_id, status
    FROM vicidial_list
    WHERE list_id = :list_id AND vendor_lead_code = :vendor_lead_code
    ORDER BY lead_id DESC
    LIMIT 1
""")


def _as_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class ExistingLead:
    lead_id: int
    status: Optional[str] = None


class VicidialLeadStore:
    """Queries over ``vicidial_list``. Every call opens and releases one pooled connection."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def list_leads(
        self, list_id: str, limit: int, include_eri: bool = False
    ) -> List[Dict[str, Optional[str]]]:
        """
        Newest leads of a list, ``ERI`` (unassigned) leads excluded unless asked for.

        Values are returned as strings; empty columns are None except
        ``lead_id`` and ``phone_number``, which are always strings.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_LIST_LEADS, {
                "list_id": str(list_id),
                "include_eri": 1 if include_eri else 0,
                "limit": limit,
            })
            rows = result.mappings().all()

        leads = []
        for row in rows:
            lead = {column: _as_text(row[column]) for column in LEAD_COLUMNS}
            lead["lead_id"] = lead["lead_id"] or ""
            lead["phone_number"] = lead["phone_number"] or ""
            leads.append(lead)
        return leads

    def lead_names(self, lead_ids: Iterable[str]) -> Dict[str, Dict[str, Optional[str]]]:
        """Map lead id -> first/last name for the given ids."""
        ids = list(dict.fromkeys(i.strip() for i in lead_ids if i and i.strip()))
        if not ids:
            return {}

        with self.engine.connect() as conn:
            rows = conn.execute(_LEAD_NAMES, {"lead_ids": ids}).mappings().all()

        names = {}
        for row in rows:
            lead_id = _as_text(row["lead_id"])
            if not lead_id:
                continue
            names[lead_id] = {
                "first_name": None if row["first_name"] is None else str(row["first_name"]),
                "last_name": None if row["last_name"] is None else str(row["last_name"]),
            }
        return names

    def find_lead(self, list_id: str, vendor_lead_code: str) -> Optional[ExistingLead]:
        """Newest lead in ``list_id`` carrying ``vendor_lead_code``, if any."""
        with self.engine.connect() as conn:
            row = conn.execute(_LEAD_BY_VENDOR_CODE, {
                "list_id": str(list_id),
                "vendor_lead_code": str(vendor_lead_code),
            }).mappings().first()

        if row is None or row["lead_id"] is None:
            return None
        return ExistingLead(
            lead_id=int(row["lead_id"]),
            status=_as_text(row["status"]),
        )


def get_vicidial_lead_store(settings: Settings = Depends(get_settings)) -> Optional[VicidialLeadStore]:
    """
    FastAPI dependency for the lead store.

    Returns None when the VICIdial database is not configured, so routes can
    skip their lookups.
    """
    engine = get_vicidial_engine(settings)
    if engine is None:
        return None
    return VicidialLeadStore(engine)
