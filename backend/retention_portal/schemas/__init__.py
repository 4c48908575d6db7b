"""
Pydantic schemas for request/response validation.
"""

from .common import HealthResponse
from .vicidial import (
    HangupRequest,
    ParkRequest,
    TransferRequest,
    DialRequest,
    AgentStatusRequest,
    HopperRequest,
    AddLeadRequest,
    LeadsRequest,
    UnassignLeadRequest,
    VicidialRouteResponse,
    VicidialErrorResponse,
    HopperRow,
    HopperResponse,
    LeadRow,
    LeadsResponse,
    UnassignLeadResponse,
)

__all__ = [
    "HealthResponse",
    "HangupRequest",
    "ParkRequest",
    "TransferRequest",
    "DialRequest",
    "AgentStatusRequest",
    "HopperRequest",
    "AddLeadRequest",
    "LeadsRequest",
    "UnassignLeadRequest",
    "VicidialRouteResponse",
    "VicidialErrorResponse",
    "HopperRow",
    "HopperResponse",
    "LeadRow",
    "LeadsResponse",
    "UnassignLeadResponse",
]
