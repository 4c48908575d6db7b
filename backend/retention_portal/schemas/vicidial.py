"""
Pydantic schemas for the VICIdial proxy routes.

Request bodies are lenient: every field is optional at the schema level so
the route handlers can report missing required fields with the proxy's own
400 response. Numbers are accepted wherever a string is expected.
"""

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


VicidialValue = Optional[Union[bool, int, float, str]]


class VicidialRequestBase(BaseModel):
    """Fields shared by every agent-API request."""

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    agent_user: Optional[str] = Field(
        default=None, description="VICIdial agent user id")
    campaign_id: Optional[str] = Field(
        default=None, description="VICIdial campaign id")
    vicidial_function: Optional[str] = Field(
        default=None, description="Override the VICIdial function name")
    extra_params: Optional[Dict[str, VicidialValue]] = Field(
        default=None,
        description="Additional VICIdial parameters. Never override explicit fields."
    )


class HangupRequest(VicidialRequestBase):
    pass


class ParkRequest(VicidialRequestBase):
    value: Optional[str] = Field(
        default=None, description="Park mode (default PARK_CUSTOMER)")


class TransferRequest(VicidialRequestBase):
    value: Optional[str] = Field(
        default=None, description="Transfer destination / conference mode")
    phone_number: Optional[str] = Field(default=None)
    ingroup_choices: Optional[str] = Field(default=None)


class DialRequest(VicidialRequestBase):
    phone_number: Optional[str] = Field(default=None)
    phone_code: Optional[str] = Field(default=None)
    lead_id: Optional[str] = Field(default=None)
    list_id: Optional[str] = Field(default=None)
    alt_dial: Optional[str] = Field(default=None)
    search: Optional[str] = Field(default=None)
    preview: Optional[str] = Field(default=None)
    focus: Optional[str] = Field(default=None)


class AgentStatusRequest(VicidialRequestBase):
    status: Optional[str] = Field(
        default=None, description="Requested agent status, e.g. PAUSE or RESUME")


class HopperRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    campaign_id: Optional[str] = Field(default=None)


class AddLeadRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    phone_number: Optional[str] = Field(default=None)
    first_name: Optional[str] = Field(default=None)
    last_name: Optional[str] = Field(default=None)
    full_name: Optional[str] = Field(default=None)
    agent_profile_id: Optional[str] = Field(default=None)
    campaign_id: Optional[str] = Field(default=None)
    list_id: Optional[str] = Field(default=None)
    deal_id: Optional[int] = Field(default=None)
    phone_code: Optional[str] = Field(default=None)
    vendor_lead_code: Optional[str] = Field(default=None)
    source_id: Optional[str] = Field(default=None)
    comments: Optional[str] = Field(default=None)
    vicidial_function: Optional[str] = Field(default=None)
    extra_params: Optional[Dict[str, VicidialValue]] = Field(default=None)


class LeadsRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    profile_id: Optional[str] = Field(
        default=None, description="Portal profile id used to look up the agent's list")
    list_id: Optional[str] = Field(default=None)
    campaign_id: Optional[str] = Field(default=None)
    limit: Optional[int] = Field(default=None, description="Rows to return, clamped to 1..200")
    include_eri: Optional[bool] = Field(
        default=None, description="Include leads already marked unassigned (ERI)")


class UnassignLeadRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    deal_id: Optional[str] = Field(default=None)
    phone_number: Optional[str] = Field(default=None)
    list_id: Optional[str] = Field(default=None)


# =============================================================================
# Responses
# =============================================================================

class VicidialRouteResponse(BaseModel):
    """
    Successful relay of a VICIdial call.

    ``ok`` mirrors the remote result and may be False.
    """

    ok: bool
    status: int
    function: str
    raw: str
    parsed: Dict[str, str]
    error: Optional[str] = None
    message: Optional[str] = None
    lead_id: Optional[int] = None


class VicidialErrorResponse(BaseModel):
    ok: bool = False
    error: str
    details: Optional[Union[str, List, Dict]] = None


class HopperRow(BaseModel):
    hopper_order: str = ""
    priority: str = ""
    lead_id: str = ""
    list_id: str = ""
    phone_number: str = ""
    status: str = ""
    last_call_time: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class HopperResponse(BaseModel):
    ok: bool
    rows: List[HopperRow] = Field(default_factory=list)
    raw: str = ""
    error: Optional[str] = None


class LeadRow(BaseModel):
    """One ``vicidial_list`` row. Empty columns are omitted from the JSON."""

    lead_id: str = ""
    phone_number: str = ""
    list_id: Optional[str] = None
    status: Optional[str] = None
    alt_phone: Optional[str] = None
    title: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    address3: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    province: Optional[str] = None
    country_code: Optional[str] = None
    email: Optional[str] = None
    vendor_lead_code: Optional[str] = None
    source_id: Optional[str] = None
    called_count: Optional[str] = None
    entry_date: Optional[str] = None
    modify_date: Optional[str] = None
    last_local_call_time: Optional[str] = None
    comments: Optional[str] = None


class LeadsResponse(BaseModel):
    ok: bool = True
    list_id: str
    campaign_id: Optional[str] = None
    count: int
    leads: List[LeadRow] = Field(default_factory=list)


class UnassignLeadResponse(BaseModel):
    ok: bool = True
    matched: int
    updated: int
    lead_ids: List[int]
    status_set: str
    raw: List[str] = Field(default_factory=list)
