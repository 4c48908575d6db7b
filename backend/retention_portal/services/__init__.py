"""
Services for the Retention Portal backend.

Contains the VICIdial API client, the read-only lead store and the
agent-mapping lookup.
"""

from .vicidial import (
    VicidialClient,
    VicidialResult,
    VicidialError,
    VicidialConfigurationError,
    VicidialTransportError,
    get_vicidial_client,
    parse_vicidial_response,
    parse_pipe_table,
)
from .vicidial_db import VicidialLeadStore, get_vicidial_lead_store
from .agent_mapping import AgentMapping, get_agent_mapping, build_lead_details_url

__all__ = [
    "VicidialClient",
    "VicidialResult",
    "VicidialError",
    "VicidialConfigurationError",
    "VicidialTransportError",
    "get_vicidial_client",
    "parse_vicidial_response",
    "parse_pipe_table",
    "VicidialLeadStore",
    "get_vicidial_lead_store",
    "AgentMapping",
    "get_agent_mapping",
    "build_lead_details_url",
]
