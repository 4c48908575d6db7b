"""
VICIdial API client.

Relays call-control commands to the VICIdial agent API (agc/api.php) and
lead-management commands to the non-agent API (non_agent_api.php).

Every call is a single form-encoded POST. Replies are plaintext lines such as
``SUCCESS: external_hangup function set - 1|6666`` which are parsed into a
key/value mapping on a best-effort basis. The raw body is always preserved.

Service architecture:
- Agent API: hangup, park, transfer, dial, pause/status
- Non-agent API: hopper listing
- Assignment server (non-agent API): add/update/search leads
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx

from ..core.config import Settings, get_settings


logger = logging.getLogger(__name__)


VicidialValue = Optional[Union[str, int, float, bool]]
VicidialParams = Mapping[str, VicidialValue]

# Always taken from configuration and the function argument, never from params.
RESERVED_PARAMS = frozenset({"source", "user", "pass", "function"})

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded;charset=UTF-8"


# =============================================================================
# Errors
# =============================================================================

class VicidialError(Exception):
    """Base class for errors raised by the VICIdial client."""


class VicidialConfigurationError(VicidialError):
    """A required VICIdial base URL or credential is not configured."""


class VicidialTransportError(VicidialError):
    """The request never produced an HTTP response (timeout, DNS, refused)."""


# =============================================================================
# Result & Parsing
# =============================================================================

@dataclass(frozen=True)
class VicidialResult:
    """
    Normalized reply from a VICIdial API call.

    ``ok`` reflects remote HTTP success only; VICIdial also answers rejected
    commands with HTTP 200 and an ``ERROR:`` body.
    """

    ok: bool
    status: int
    raw: str
    parsed: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "parsed", MappingProxyType(dict(self.parsed)))

    @property
    def has_error(self) -> bool:
        """True when the body carries an ``ERROR:`` line."""
        return "ERROR" in self.parsed or any(
            line.strip().upper().startswith("ERROR:") for line in self.raw.split("\n")
        )

    @property
    def first_line(self) -> str:
        for line in self.raw.split("\n"):
            if line.strip():
                return line.strip()
        return ""


def parse_vicidial_response(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse a VICIdial plaintext reply into a key/value mapping.

    Each non-blank line of the form ``KEY: value`` contributes one entry;
    the key is the text before the first colon. Lines without a colon, or
    starting with one, are skipped. Later duplicates win.

    Never raises: unparseable input yields an empty or partial mapping.
    """
    parsed: Dict[str, str] = {}
    if not raw:
        return parsed

    for line in raw.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue
        idx = trimmed.find(":")
        if idx <= 0:
            continue
        key = trimmed[:idx].strip()
        if not key:
            continue
        parsed[key] = trimmed[idx + 1:].strip()

    return parsed


def parse_pipe_table(raw: Optional[str]) -> List[Dict[str, str]]:
    """
    Parse a pipe-delimited table whose first non-blank line is the header.

    Short rows are padded with empty strings; extra columns are ignored.
    """
    if not raw:
        return []

    lines = [line.strip() for line in raw.split("\n") if line.strip()]
    if not lines:
        return []

    header = [column.strip() for column in lines[0].split("|")]
    rows = []
    for line in lines[1:]:
        cols = line.split("|")
        rows.append({
            name: (cols[idx] if idx < len(cols) else "")
            for idx, name in enumerate(header)
            if name
        })
    return rows


def _serialize_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_form(
    source: str,
    user: str,
    password: str,
    function: str,
    params: Optional[VicidialParams] = None,
) -> Dict[str, str]:
    """
    Build the form body for a VICIdial API call.

    ``None`` values are dropped. Reserved keys in ``params`` are ignored so
    callers cannot replace credentials or the function name.
    """
    form: Dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if key in RESERVED_PARAMS:
            logger.warning(f"Ignoring reserved VICIdial parameter '{key}'")
            continue
        form[key] = _serialize_value(value)

    form.update({
        "source": source,
        "user": user,
        "pass": password,
        "function": function,
    })
    return form


# =============================================================================
# Client
# =============================================================================

@dataclass(frozen=True)
class _Endpoint:
    url: str
    user: str
    password: str
    source: str


def _require(name: str, value: Optional[str]) -> str:
    if not value:
        raise VicidialConfigurationError(f"{name} is required")
    return value


class VicidialClient:
    """
    Stateless client for the VICIdial agent and non-agent APIs.

    Configuration is injected at construction. ``transport`` lets tests
    substitute an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.timeout = settings.vicidial_timeout_seconds
        self._transport = transport

    # -------------------------------------------------------------------------
    # Endpoint resolution
    # -------------------------------------------------------------------------

    def _base_url(self) -> str:
        return _require("VICIDIAL_BASE_URL", self.settings.vicidial_base_url).rstrip("/")

    def agent_endpoint(self) -> _Endpoint:
        s = self.settings
        url = s.vicidial_agent_api_url.strip() or f"{self._base_url()}/agc/api.php"
        return _Endpoint(
            url=url,
            user=s.vicidial_agent_api_user or _require("VICIDIAL_API_USER", s.vicidial_api_user),
            password=s.vicidial_agent_api_pass or _require("VICIDIAL_API_PASS", s.vicidial_api_pass),
            source=s.vicidial_api_source,
        )

    def non_agent_endpoint(self) -> _Endpoint:
        s = self.settings
        return _Endpoint(
            url=f"{self._base_url()}/non_agent_api.php",
            user=_require("VICIDIAL_API_USER", s.vicidial_api_user),
            password=_require("VICIDIAL_API_PASS", s.vicidial_api_pass),
            source=s.vicidial_api_source,
        )

    def assignment_endpoint(self) -> _Endpoint:
        s = self.settings
        base = (s.vicidial_assign_base_url or self._base_url()).rstrip("/")
        return _Endpoint(
            url=f"{base}/non_agent_api.php",
            user=s.vicidial_assign_api_user or _require("VICIDIAL_API_USER", s.vicidial_api_user),
            password=s.vicidial_assign_api_pass or _require("VICIDIAL_API_PASS", s.vicidial_api_pass),
            source=s.vicidial_assign_api_source or s.vicidial_api_source,
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def call_agent_api(
        self, function: str, params: Optional[VicidialParams] = None
    ) -> VicidialResult:
        """Call a function on the VICIdial agent API (agc/api.php)."""
        return await self._post(self.agent_endpoint(), function, params)

    async def call_non_agent_api(
        self, function: str, params: Optional[VicidialParams] = None
    ) -> VicidialResult:
        """Call a function on the VICIdial non-agent API."""
        return await self._post(self.non_agent_endpoint(), function, params)

    async def call_assignment_api(
        self, function: str, params: Optional[VicidialParams] = None
    ) -> VicidialResult:
        """Call a function on the lead-assignment server's non-agent API."""
        return await self._post(self.assignment_endpoint(), function, params)

    async def _post(
        self, endpoint: _Endpoint, function: str, params: Optional[VicidialParams]
    ) -> VicidialResult:
        form = build_form(endpoint.source, endpoint.user, endpoint.password, function, params)
        logger.debug(f"VICIdial {function} -> {endpoint.url} ({len(form) - 4} params)")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    endpoint.url,
                    data=form,
                    headers={"Content-Type": FORM_CONTENT_TYPE},
                )
        except httpx.TimeoutException as e:
            logger.error(f"VICIdial {function} request timed out: {e}")
            raise VicidialTransportError(f"VICIdial request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"VICIdial {function} connection error: {e}")
            raise VicidialTransportError(f"VICIdial connection error: {e}") from e

        raw = response.text
        if not response.is_success:
            logger.warning(f"VICIdial {function} returned {response.status_code}: {raw[:200]}")

        return VicidialResult(
            ok=response.is_success,
            status=response.status_code,
            raw=raw,
            parsed=parse_vicidial_response(raw),
        )


@lru_cache()
def get_vicidial_client() -> VicidialClient:
    """
    Get the process-wide VICIdial client.

    Used as a FastAPI dependency; tests replace it via dependency_overrides.
    """
    return VicidialClient(get_settings())
