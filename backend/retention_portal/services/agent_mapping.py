"""
Portal profile -> VICIdial agent mapping.

The mapping is a static JSON table keyed by portal profile id:

    {
        "<profile id>": {
            "campaignId": "RETENTION",
            "listId": 1001,
            "vicidialUser": "6666",
            "webformBaseUrl": "https://..."
        }
    }
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.config import Settings, get_settings


logger = logging.getLogger(__name__)

DEFAULT_PORTAL_BASE_URL = "https://retention-portal-lyart.vercel.app"


class AgentMapping(BaseModel):
    """VICIdial campaign/list/user assigned to a portal profile."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    campaign_id: str = Field(..., alias="campaignId")
    list_id: Union[str, int] = Field(..., alias="listId")
    vicidial_user: Optional[str] = Field(default=None, alias="vicidialUser")
    webform_base_url: Optional[str] = Field(default=None, alias="webformBaseUrl")


def load_agent_mappings(path: Union[str, Path]) -> Dict[str, AgentMapping]:
    """
    Load the mapping table from disk.

    A missing or malformed file yields an empty table. Malformed entries are
    skipped individually.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning(f"Agent mapping file not found at {path} - no agents mapped")
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read agent mapping file {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Agent mapping file {path} is not a JSON object")
        return {}

    mappings = {}
    for profile_id, entry in data.items():
        try:
            mappings[str(profile_id)] = AgentMapping.model_validate(entry)
        except ValidationError as e:
            logger.warning(f"Skipping invalid agent mapping for {profile_id}: {e.error_count()} error(s)")
    return mappings


@lru_cache()
def _cached_mappings(path: str) -> Dict[str, AgentMapping]:
    return load_agent_mappings(path)


def get_agent_mapping(
    profile_id: Optional[str], settings: Optional[Settings] = None
) -> Optional[AgentMapping]:
    """Resolve a portal profile id to its VICIdial mapping, or None."""
    if not profile_id:
        return None
    settings = settings or get_settings()
    return _cached_mappings(settings.vicidial_agent_mapping_path).get(profile_id)


def build_lead_details_url(
    deal_id: Optional[Union[int, str]], settings: Optional[Settings] = None
) -> Optional[str]:
    """
    Build the portal's lead-details URL for a deal.

    Returns None when the deal id is missing or not a positive integer.
    """
    if deal_id is None or isinstance(deal_id, bool):
        return None
    try:
        deal = int(deal_id)
    except (TypeError, ValueError):
        return None
    if deal <= 0:
        return None

    settings = settings or get_settings()
    base = (
        settings.retention_portal_base_url
        or settings.next_public_app_base_url
        or DEFAULT_PORTAL_BASE_URL
    )
    return f"{base.rstrip('/')}/agent/assigned-lead-details?dealId={deal}"
