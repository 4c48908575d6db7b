"""
VICIdial Proxy API - call-control relay for the agent dashboard

Relays call-control commands to the VICIdial agent API so credentials are
never exposed to the frontend. Every endpoint is POST-only. Call-control
endpoints make exactly one remote attempt per request; remote failures are
reported verbatim. Lead lookups read the dialer's database when
VICIDIAL_DB_* is configured.

Endpoints:
- POST /api/vicidial/hangup         - Hang up the agent's live call
- POST /api/vicidial/park           - Park the customer
- POST /api/vicidial/transfer       - Transfer / conference the call
- POST /api/vicidial/dial           - Manual dial a phone number
- POST /api/vicidial/agent-status   - Pause / resume / set agent status
- POST /api/vicidial/hopper         - List the campaign hopper
- POST /api/vicidial/leads          - List a VICIdial list's leads (dialer DB)
- POST /api/vicidial/add-lead       - Add a lead on the assignment server
- POST /api/vicidial/unassign-lead  - Mark a deal's leads as unassigned

Parameter precedence for every route: explicit body fields, then
extra_params, then route defaults.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..core.config import Settings, get_settings
from ..schemas.vicidial import (
    AddLeadRequest,
    AgentStatusRequest,
    DialRequest,
    HangupRequest,
    HopperRequest,
    HopperResponse,
    HopperRow,
    LeadRow,
    LeadsRequest,
    LeadsResponse,
    ParkRequest,
    TransferRequest,
    UnassignLeadRequest,
    UnassignLeadResponse,
    VicidialErrorResponse,
    VicidialRouteResponse,
)
from ..services.agent_mapping import build_lead_details_url, get_agent_mapping
from ..services.leads import (
    contains_error,
    normalize_us_phone,
    parse_added_lead_id,
    parse_lead_ids,
    split_name,
)
from ..services.vicidial import (
    VicidialClient,
    VicidialResult,
    get_vicidial_client,
    parse_pipe_table,
)
from ..services.vicidial_db import VicidialLeadStore, get_vicidial_lead_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vicidial", tags=["VICIdial Proxy"])

# =============================================================================
# Constants
# =============================================================================

AGENT_API_USER_REQUIRED = "agent_user is required for VICIdial agent API"

DEFAULT_PARK_VALUE = "PARK_CUSTOMER"
PAUSE_STATUSES = ("PAUSE", "RESUME")

# Statuses that must not carry a response body
NO_BODY_STATUSES = (204, 205, 304)

DEFAULT_LEADS_LIMIT = 50
MAX_LEADS_LIMIT = 200


# =============================================================================
# Helpers
# =============================================================================

def assemble_params(
    explicit: Mapping[str, Any],
    extra_params: Optional[Mapping[str, Any]] = None,
    defaults: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Merge VICIdial parameters: explicit fields > extra_params > defaults.

    None values never override anything, so an omitted explicit field leaves
    room for an extra or a default.
    """
    params: Dict[str, Any] = {}
    for layer in (defaults or {}, extra_params or {}, explicit):
        params.update({k: v for k, v in layer.items() if v is not None})
    return params


def _error(status_code: int, error: str, details: Any = None) -> JSONResponse:
    body = VicidialErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _missing(details: str) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, "Missing required field", details)


def _failed(label: str, exc: Exception) -> JSONResponse:
    logger.error(f"VICIdial {label} request failed: {exc}")
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        f"VICIdial {label} request failed",
        str(exc) or "Unknown error",
    )


def _first_set(*values: Optional[Any]) -> Optional[Any]:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def relay_status_code(remote_status: int) -> int:
    """
    HTTP status used to relay a remote reply.

    The remote status is mirrored, except 1xx, 204, 205 and 304 which cannot
    carry the JSON body; those are answered as 200 and the remote status
    stays in the body's ``status``.
    """
    if remote_status < 200 or remote_status in NO_BODY_STATUSES:
        return status.HTTP_200_OK
    return remote_status


def _relay(result: VicidialResult, function: str, **extra: Any) -> JSONResponse:
    """Mirror the remote status and body back to the caller."""
    body = VicidialRouteResponse(
        ok=extra.pop("ok", result.ok),
        status=result.status,
        function=function,
        raw=result.raw,
        parsed=dict(result.parsed),
        **extra,
    )
    return JSONResponse(
        status_code=relay_status_code(result.status),
        content=body.model_dump(exclude_none=True),
    )


# =============================================================================
# POST /api/vicidial/hangup
# =============================================================================

@router.post("/hangup")
async def hangup(
    body: Optional[HangupRequest] = None,
    client: VicidialClient = Depends(get_vicidial_client),
    settings: Settings = Depends(get_settings),
):
    """Hang up the agent's current call."""
    body = body or HangupRequest()
    fn = body.vicidial_function or settings.vicidial_function_hangup or "external_hangup"

    if not body.agent_user:
        return _missing(AGENT_API_USER_REQUIRED)

    params = assemble_params(
        {"agent_user": body.agent_user, "campaign_id": body.campaign_id},
        body.extra_params,
        {"value": "1"},
    )

    try:
        result = await client.call_agent_api(fn, params)
    except Exception as e:
        return _failed("hangup", e)
    return _relay(result, fn)


# =============================================================================
# POST /api/vicidial/park
# =============================================================================

@router.post("/park")
async def park(
    body: Optional[ParkRequest] = None,
    client: VicidialClient = Depends(get_vicidial_client),
):
    """Park the customer (value defaults to PARK_CUSTOMER)."""
    body = body or ParkRequest()
    fn = body.vicidial_function or "park_call"

    if not body.agent_user:
        return _missing(AGENT_API_USER_REQUIRED)

    params = assemble_params(
        {"agent_user": body.agent_user, "campaign_id": body.campaign_id, "value": body.value},
        body.extra_params,
        {"value": DEFAULT_PARK_VALUE},
    )

    try:
        result = await client.call_agent_api(fn, params)
    except Exception as e:
        return _failed("park", e)
    return _relay(result, fn)


# =============================================================================
# POST /api/vicidial/transfer
# =============================================================================

@router.post("/transfer")
async def transfer(
    body: Optional[TransferRequest] = None,
    client: VicidialClient = Depends(get_vicidial_client),
):
    """Transfer or conference the live call to ``value``."""
    body = body or TransferRequest()
    fn = body.vicidial_function or "transfer_conference"

    if not body.agent_user:
        return _missing(AGENT_API_USER_REQUIRED)
    if not body.value:
        return _missing("value is required for transfer_conference")

    params = assemble_params(
        {
            "agent_user": body.agent_user,
            "campaign_id": body.campaign_id,
            "value": body.value,
            "phone_number": body.phone_number,
            "ingroup_choices": body.ingroup_choices,
        },
        body.extra_params,
    )

    try:
        result = await client.call_agent_api(fn, params)
    except Exception as e:
        return _failed("transfer", e)
    return _relay(result, fn)


# =============================================================================
# POST /api/vicidial/dial
# =============================================================================

@router.post("/dial")
async def dial(
    body: Optional[DialRequest] = None,
    client: VicidialClient = Depends(get_vicidial_client),
    settings: Settings = Depends(get_settings),
):
    """Manual-dial ``phone_number`` from the agent's session."""
    body = body or DialRequest()
    fn = body.vicidial_function or settings.vicidial_function_dial or "external_dial"

    if not body.phone_number:
        return _missing("phone_number is required")
    if not body.agent_user:
        return _missing(AGENT_API_USER_REQUIRED)

    params = assemble_params(
        {
            "value": body.phone_number,
            "phone_code": body.phone_code,
            "agent_user": body.agent_user,
            "campaign_id": body.campaign_id,
            "lead_id": body.lead_id,
            "list_id": body.list_id,
            "alt_dial": body.alt_dial,
            "search": body.search,
            "preview": body.preview,
            "focus": body.focus,
        },
        body.extra_params,
        {
            "phone_code": settings.vicidial_default_phone_code or "1",
            "search": "YES",
            "preview": "NO",
            "focus": "NO",
        },
    )

    try:
        result = await client.call_agent_api(fn, params)
    except Exception as e:
        return _failed("dial", e)
    return _relay(result, fn)


# =============================================================================
# POST /api/vicidial/agent-status
# =============================================================================

def resolve_status_function(requested: str, configured: Optional[str]) -> str:
    """
    Pick the agent API function for a status change.

    A configured legacy ``agent_status`` (non-agent API) maps to
    ``external_status``. Without configuration PAUSE/RESUME use
    ``external_pause`` and everything else ``external_status``.
    """
    if configured == "agent_status":
        configured = "external_status"
    if configured:
        return configured
    return "external_pause" if requested in PAUSE_STATUSES else "external_status"


@router.post("/agent-status")
async def agent_status(
    body: Optional[AgentStatusRequest] = None,
    client: VicidialClient = Depends(get_vicidial_client),
    settings: Settings = Depends(get_settings),
):
    """
    Pause, resume or set the agent's status.

    VICIdial rejects commands with HTTP 200 and an ``ERROR:`` body, so the
    body is inspected and ``ok`` is False when it carries an error.
    """
    body = body or AgentStatusRequest()
    requested = (body.status or "").strip().upper()
    fn = resolve_status_function(
        requested, body.vicidial_function or settings.vicidial_function_agent_status
    )

    if not body.status:
        return _missing("status is required")
    if not body.agent_user:
        return _missing(AGENT_API_USER_REQUIRED)

    if fn == "external_pause":
        value = "PAUSE" if requested == "PAUSE" else "RESUME"
    else:
        value = requested

    params = assemble_params(
        {
            "agent_user": body.agent_user,
            "status": requested,
            "value": value,
            "campaign_id": body.campaign_id,
        },
        body.extra_params,
    )

    try:
        result = await client.call_agent_api(fn, params)
    except Exception as e:
        return _failed("agent-status", e)

    remote_error = result.has_error
    if not remote_error:
        return _relay(result, fn)

    message = result.parsed.get("ERROR") or result.first_line or "VICIdial returned an error"
    logger.warning(f"VICIdial {fn} rejected for agent {body.agent_user}: {message}")
    return _relay(result, fn, ok=False, error=message, message=message)


# =============================================================================
# POST /api/vicidial/hopper
# =============================================================================

HOPPER_COLUMNS = (
    "hopper_order",
    "priority",
    "lead_id",
    "list_id",
    "phone_number",
    "status",
    "last_call_time",
)


def add_lead_names(store: VicidialLeadStore, rows: List[HopperRow]) -> List[HopperRow]:
    """Copy first/last names from ``vicidial_list`` onto hopper rows."""
    try:
        names = store.lead_names(row.lead_id for row in rows)
    except Exception as e:
        logger.warning(f"VICIdial hopper name lookup failed, returning rows without names: {e}")
        return rows

    return [
        row.model_copy(update=names[row.lead_id.strip()])
        if row.lead_id.strip() in names else row
        for row in rows
    ]


@router.post("/hopper")
async def hopper(
    body: Optional[HopperRequest] = None,
    client: VicidialClient = Depends(get_vicidial_client),
    store: Optional[VicidialLeadStore] = Depends(get_vicidial_lead_store),
):
    """
    List the leads queued in a campaign's hopper.

    With the dialer database configured, rows also carry the lead's first
    and last name. A failed name lookup still returns the hopper rows.
    """
    body = body or HopperRequest()
    if not body.campaign_id:
        return _missing("campaign_id is required")

    try:
        result = await client.call_non_agent_api(
            "hopper_list",
            {"campaign_id": body.campaign_id, "stage": "pipe", "header": "YES"},
        )
    except Exception as e:
        return _failed("hopper_list", e)

    raw = result.raw.strip()
    if raw.upper().startswith("ERROR:"):
        response = HopperResponse(ok=False, error=result.first_line, raw=raw)
        return JSONResponse(status_code=200, content=response.model_dump(exclude_none=True))

    rows = [
        HopperRow(**{column: row.get(column, "") for column in HOPPER_COLUMNS})
        for row in parse_pipe_table(raw)
    ]
    if store is not None and rows:
        rows = add_lead_names(store, rows)

    response = HopperResponse(ok=True, rows=rows, raw=raw)
    return JSONResponse(status_code=200, content=response.model_dump(exclude_none=True))


# =============================================================================
# POST /api/vicidial/leads
# =============================================================================

@router.post("/leads")
async def leads(
    body: Optional[LeadsRequest] = None,
    store: Optional[VicidialLeadStore] = Depends(get_vicidial_lead_store),
    settings: Settings = Depends(get_settings),
):
    """
    List the newest leads of the agent's VICIdial list from the dialer database.

    The list and campaign come from the body, then the agent mapping for
    ``profile_id``. ``limit`` is clamped to 1..200 (default 50). Leads marked
    ERI (unassigned) are left out unless ``include_eri`` is true.
    """
    body = body or LeadsRequest()
    mapping = get_agent_mapping(body.profile_id, settings)
    list_id = _first_set(body.list_id, mapping.list_id if mapping else None)
    campaign_id = _first_set(body.campaign_id, mapping.campaign_id if mapping else None)
    limit = body.limit if body.limit is not None else DEFAULT_LEADS_LIMIT
    limit = max(1, min(MAX_LEADS_LIMIT, limit))

    if list_id is None:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "Missing list mapping",
            "list_id or profile_id is required",
        )
    if store is None:
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Missing VICIDIAL_DB_* envs",
            "Set VICIDIAL_DB_HOST, VICIDIAL_DB_USER, VICIDIAL_DB_PASS, VICIDIAL_DB_NAME",
        )

    try:
        rows = store.list_leads(str(list_id), limit, include_eri=body.include_eri is True)
    except Exception as e:
        return _failed("leads", e)

    response = LeadsResponse(
        list_id=str(list_id),
        campaign_id=campaign_id,
        count=len(rows),
        leads=[LeadRow(**row) for row in rows],
    )
    return JSONResponse(status_code=200, content=response.model_dump(exclude_none=True))


# =============================================================================
# POST /api/vicidial/add-lead
# =============================================================================

async def reuse_existing_lead(
    client: VicidialClient,
    store: VicidialLeadStore,
    params: Mapping[str, Any],
) -> Optional[JSONResponse]:
    """
    Refresh the newest lead already holding this vendor code in the list.

    An ERI (unassigned) lead goes back to NEW. Returns None, so the caller
    adds a new lead, when nothing matches, the update is rejected, or the
    lookup fails.
    """
    try:
        existing = store.find_lead(str(params["list_id"]), str(params["vendor_lead_code"]))
        if existing is None:
            return None

        result = await client.call_assignment_api("update_lead", {
            "lead_id": existing.lead_id,
            "phone_number": params.get("phone_number"),
            "first_name": params.get("first_name"),
            "last_name": params.get("last_name"),
            "status": "NEW" if existing.status == "ERI" else (existing.status or "NEW"),
            "comments": params.get("comments"),
        })
    except Exception as e:
        logger.warning(f"VICIdial dedupe lookup failed, falling back to add_lead: {e}")
        return None

    if contains_error(result.raw):
        logger.warning(f"VICIdial update_lead {existing.lead_id} rejected: {result.raw.strip()}")
        return None

    message = f"reused existing VICIdial lead_id={existing.lead_id}"
    logger.info(f"VICIdial lead {existing.lead_id} reused for vendor code {params['vendor_lead_code']}")
    body = VicidialRouteResponse(
        ok=True,
        status=200,
        function="update_lead",
        raw=f"SUCCESS: {message}",
        parsed={"SUCCESS": message},
        lead_id=existing.lead_id,
    )
    return JSONResponse(status_code=200, content=body.model_dump(exclude_none=True))


@router.post("/add-lead")
async def add_lead(
    body: Optional[AddLeadRequest] = None,
    client: VicidialClient = Depends(get_vicidial_client),
    settings: Settings = Depends(get_settings),
    store: Optional[VicidialLeadStore] = Depends(get_vicidial_lead_store),
):
    """
    Add a lead to the agent's VICIdial list on the assignment server.

    Campaign and list resolve from the body, then the agent mapping, then
    the configured defaults. A lead-details link is appended to comments
    when a deal id is given. With the dialer database configured, a lead
    already holding the vendor code in the list is updated and reused
    instead of added again.
    """
    body = body or AddLeadRequest()
    fn = _first_set(
        body.vicidial_function,
        settings.vicidial_assign_function_add_lead,
        settings.vicidial_function_add_lead,
    ) or "add_lead"

    if not body.phone_number:
        return _missing("phone_number is required")

    try:
        phone_number = normalize_us_phone(body.phone_number)
        first_name, last_name = split_name(body.full_name, body.first_name, body.last_name)
        mapping = get_agent_mapping(body.agent_profile_id, settings)

        webform_url = build_lead_details_url(body.deal_id, settings)
        comments = " | ".join(
            part for part in [
                (body.comments or "").strip(),
                f"Lead Details: {webform_url}" if webform_url else "",
            ] if part
        )

        params = assemble_params(
            {
                "phone_number": phone_number,
                "phone_code": body.phone_code,
                "first_name": first_name,
                "last_name": last_name,
                "campaign_id": body.campaign_id,
                "list_id": body.list_id,
                "vendor_lead_code": _first_set(body.vendor_lead_code, body.deal_id),
                "source_id": _first_set(
                    body.source_id,
                    body.agent_profile_id,
                    mapping.vicidial_user if mapping else None,
                ),
                "comments": comments or None,
            },
            body.extra_params,
            {
                "phone_code": _first_set(
                    settings.vicidial_assign_default_phone_code,
                    settings.vicidial_default_phone_code,
                    "1",
                ),
                "campaign_id": _first_set(
                    mapping.campaign_id if mapping else None,
                    settings.vicidial_assign_default_campaign_id,
                    settings.vicidial_default_campaign_id,
                ),
                "list_id": _first_set(
                    mapping.list_id if mapping else None,
                    settings.vicidial_assign_default_list_id,
                    settings.vicidial_default_list_id,
                ),
            },
        )

        if store is not None and params.get("vendor_lead_code") and params.get("list_id"):
            reused = await reuse_existing_lead(client, store, params)
            if reused is not None:
                return reused

        result = await client.call_assignment_api(fn, params)
    except Exception as e:
        return _failed("add_lead", e)

    vicidial_error = result.parsed.get("ERROR") or (
        result.raw.strip() if contains_error(result.raw) else None
    )
    if vicidial_error:
        logger.warning(f"VICIdial {fn} rejected lead {phone_number}: {vicidial_error}")
        return _error(status.HTTP_200_OK, "VICIdial add_lead failed", vicidial_error)

    lead_id = parse_added_lead_id(result.raw)
    if lead_id:
        logger.info(f"VICIdial lead {lead_id} added for deal {body.deal_id}")
    return _relay(result, fn, lead_id=lead_id)


# =============================================================================
# POST /api/vicidial/unassign-lead
# =============================================================================

async def find_lead_ids(
    client: VicidialClient,
    deal_id: str,
    phone: str,
    list_id: Optional[str],
) -> Tuple[List[int], List[str]]:
    """Search the assignment server for leads matching a deal or phone."""
    raws: List[str] = []
    lead_ids: List[int] = []

    searches = []
    if deal_id:
        searches.append(("lead_search", {
            "search_method": "VENDOR_LEAD_CODE", "search_value": deal_id, "list_id": list_id,
        }))
    if phone:
        searches.append(("check_phone_number", {"phone_number": phone}))
        searches.append(("lead_search", {
            "search_method": "PHONE_NUMBER", "search_value": phone, "list_id": list_id,
        }))

    for fn, params in searches:
        result = await client.call_assignment_api(fn, assemble_params(params))
        raws.append(result.raw)
        for lead_id in parse_lead_ids(result.raw):
            if lead_id not in lead_ids:
                lead_ids.append(lead_id)

    return lead_ids, raws


@router.post("/unassign-lead")
async def unassign_lead(
    body: Optional[UnassignLeadRequest] = None,
    client: VicidialClient = Depends(get_vicidial_client),
    settings: Settings = Depends(get_settings),
):
    """
    Mark every VICIdial lead for a deal or phone number as unassigned.

    Leads are found by vendor code (deal id) and phone number, then each is
    updated to the configured unassign status.
    """
    body = body or UnassignLeadRequest()
    deal_id = (body.deal_id or "").strip()
    phone = normalize_us_phone(body.phone_number)
    list_id = (body.list_id or "").strip() or None
    status_set = settings.vicidial_unassign_status or "ERI"

    if not deal_id and not phone:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "Missing identifiers",
            "deal_id or phone_number is required",
        )

    try:
        lead_ids, raws = await find_lead_ids(client, deal_id, phone, list_id)

        updated = 0
        for lead_id in lead_ids:
            result = await client.call_assignment_api("update_lead", {
                "lead_id": lead_id,
                "status": status_set,
                "comments": "Unassigned from Retention Portal",
            })
            raws.append(result.raw)
            if not contains_error(result.raw):
                updated += 1
    except Exception as e:
        logger.error(f"VICIdial unassign cleanup failed: {e}")
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "VICIdial unassign cleanup failed",
            str(e) or "Unknown error",
        )

    logger.info(f"Unassigned {updated}/{len(lead_ids)} VICIdial leads (deal={deal_id or '-'})")
    response = UnassignLeadResponse(
        matched=len(lead_ids),
        updated=updated,
        lead_ids=lead_ids,
        status_set=status_set,
        raw=raws,
    )
    return JSONResponse(status_code=200, content=response.model_dump())
