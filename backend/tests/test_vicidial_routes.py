import pytest

from retention_portal.api.vicidial import relay_status_code
from retention_portal.services.vicidial import VicidialResult, VicidialTransportError


CORE_ROUTES = ["hangup", "park", "transfer"]

VALID_BODIES = {
    "hangup": {"agent_user": "1001"},
    "park": {"agent_user": "1001"},
    "transfer": {"agent_user": "1001", "value": "8300"},
}


def url(route):
    return f"/api/vicidial/{route}"


# =============================================================================
# Method guard & validation
# =============================================================================

@pytest.mark.parametrize("route", CORE_ROUTES)
@pytest.mark.parametrize("method", ["get", "put", "delete", "patch"])
def test_non_post_is_rejected(client, stub_client, route, method):
    response = getattr(client, method)(url(route))

    assert response.status_code == 405
    assert response.json() == {"ok": False, "error": "Method not allowed"}
    assert stub_client.calls == []


@pytest.mark.parametrize("route", CORE_ROUTES)
@pytest.mark.parametrize("body", [{}, {"agent_user": ""}, {"campaign_id": "RET", "value": "8300"}])
def test_missing_agent_user_is_rejected_before_dispatch(client, stub_client, route, body):
    response = client.post(url(route), json=body)

    assert response.status_code == 400
    assert response.json()["ok"] is False
    assert "agent_user" in response.json()["details"]
    assert stub_client.calls == []


@pytest.mark.parametrize("route", CORE_ROUTES)
def test_empty_body_is_rejected(client, stub_client, route):
    response = client.post(url(route))

    assert response.status_code == 400
    assert stub_client.calls == []


@pytest.mark.parametrize("route", CORE_ROUTES)
def test_malformed_body_is_rejected(client, stub_client, route):
    response = client.post(url(route), content=b"[1, 2", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["ok"] is False
    assert response.json()["error"] == "Invalid request body"
    assert stub_client.calls == []


def test_transfer_requires_value(client, stub_client):
    response = client.post(url("transfer"), json={"agent_user": "1001"})

    assert response.status_code == 400
    assert response.json() == {
        "ok": False,
        "error": "Missing required field",
        "details": "value is required for transfer_conference",
    }
    assert stub_client.calls == []


def test_numeric_agent_user_is_accepted(client, stub_client):
    response = client.post(url("hangup"), json={"agent_user": 1001})

    assert response.status_code == 200
    assert stub_client.last["params"]["agent_user"] == "1001"


# =============================================================================
# Parameter assembly
# =============================================================================

def test_park_defaults_value(client, stub_client):
    stub_client.queue(VicidialResult(
        ok=True,
        status=200,
        raw="SUCCESS: park_call",
        parsed={"message": "SUCCESS", "function": "park_call"},
    ))

    response = client.post(url("park"), json={"agent_user": "1001"})

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "status": 200,
        "function": "park_call",
        "raw": "SUCCESS: park_call",
        "parsed": {"message": "SUCCESS", "function": "park_call"},
    }
    assert stub_client.last["api"] == "agent"
    assert stub_client.last["function"] == "park_call"
    assert stub_client.last["params"] == {"agent_user": "1001", "value": "PARK_CUSTOMER"}


def test_park_explicit_value(client, stub_client):
    client.post(url("park"), json={"agent_user": "1001", "value": "GRAB_CUSTOMER", "campaign_id": "RET"})

    assert stub_client.last["params"] == {
        "agent_user": "1001",
        "campaign_id": "RET",
        "value": "GRAB_CUSTOMER",
    }


def test_hangup_defaults(client, stub_client):
    client.post(url("hangup"), json={"agent_user": "1001", "campaign_id": "RET"})

    assert stub_client.last["function"] == "external_hangup"
    assert stub_client.last["params"] == {"agent_user": "1001", "campaign_id": "RET", "value": "1"}


def test_hangup_function_from_settings(client, stub_client, test_settings):
    test_settings.vicidial_function_hangup = "custom_hangup"

    response = client.post(url("hangup"), json={"agent_user": "1001"})

    assert response.json()["function"] == "custom_hangup"
    assert stub_client.last["function"] == "custom_hangup"


def test_hangup_explicit_function_overrides_settings(client, stub_client, test_settings):
    test_settings.vicidial_function_hangup = "custom_hangup"

    response = client.post(url("hangup"), json={"agent_user": "1001", "vicidial_function": "ra_call_control"})

    assert response.json()["function"] == "ra_call_control"
    assert stub_client.last["function"] == "ra_call_control"


def test_transfer_params(client, stub_client):
    client.post(url("transfer"), json={
        "agent_user": "1001",
        "value": "LOCAL_CLOSER",
        "phone_number": "5551234567",
        "ingroup_choices": "SALES",
    })

    assert stub_client.last["function"] == "transfer_conference"
    assert stub_client.last["params"] == {
        "agent_user": "1001",
        "value": "LOCAL_CLOSER",
        "phone_number": "5551234567",
        "ingroup_choices": "SALES",
    }


@pytest.mark.parametrize("route", CORE_ROUTES)
def test_extra_params_pass_through(client, stub_client, route):
    body = dict(VALID_BODIES[route], extra_params={"lead_id": 42, "dial_override": "YES", "consultative": True})

    client.post(url(route), json=body)

    params = stub_client.last["params"]
    assert params["lead_id"] == 42
    assert params["dial_override"] == "YES"
    assert params["consultative"] is True


@pytest.mark.parametrize("route", CORE_ROUTES)
def test_extra_params_never_override_explicit_fields(client, stub_client, route):
    body = dict(
        VALID_BODIES[route],
        campaign_id="RET",
        extra_params={"agent_user": "9999", "campaign_id": "OTHER"},
    )

    client.post(url(route), json=body)

    assert stub_client.last["params"]["agent_user"] == "1001"
    assert stub_client.last["params"]["campaign_id"] == "RET"


def test_extra_params_override_route_defaults(client, stub_client):
    client.post(url("hangup"), json={"agent_user": "1001", "extra_params": {"value": "0"}})
    assert stub_client.last["params"]["value"] == "0"

    client.post(url("park"), json={"agent_user": "1001", "extra_params": {"value": "GRAB_CUSTOMER"}})
    assert stub_client.last["params"]["value"] == "GRAB_CUSTOMER"


def test_transfer_value_is_pinned(client, stub_client):
    client.post(url("transfer"), json={"agent_user": "1001", "value": "8300", "extra_params": {"value": "9999"}})

    assert stub_client.last["params"]["value"] == "8300"


# =============================================================================
# Response mapping
# =============================================================================

@pytest.mark.parametrize("route", CORE_ROUTES)
def test_remote_status_and_ok_pass_through(client, stub_client, route):
    stub_client.queue(VicidialResult(ok=False, status=502, raw="Bad Gateway", parsed={}))

    response = client.post(url(route), json=VALID_BODIES[route])

    assert response.status_code == 502
    assert response.json()["ok"] is False
    assert response.json()["status"] == 502
    assert response.json()["raw"] == "Bad Gateway"


@pytest.mark.parametrize("remote_status", [204, 205, 304])
def test_no_body_remote_status_is_answered_as_200(client, stub_client, remote_status):
    stub_client.queue(VicidialResult(ok=remote_status < 300, status=remote_status, raw="", parsed={}))

    response = client.post(url("hangup"), json={"agent_user": "1001"})

    assert response.status_code == 200
    assert response.json() == {
        "ok": remote_status < 300,
        "status": remote_status,
        "function": "external_hangup",
        "raw": "",
        "parsed": {},
    }


@pytest.mark.parametrize("remote_status, expected", [(101, 200), (200, 200), (204, 200), (304, 200), (404, 404)])
def test_relay_status_code(remote_status, expected):
    assert relay_status_code(remote_status) == expected


def test_remote_application_error_is_not_interpreted(client, stub_client):
    stub_client.queue(VicidialResult(
        ok=True,
        status=200,
        raw="ERROR: agent_user is not logged in - 1001",
        parsed={"ERROR": "agent_user is not logged in - 1001"},
    ))

    response = client.post(url("hangup"), json={"agent_user": "1001"})

    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert response.json()["parsed"] == {"ERROR": "agent_user is not logged in - 1001"}


@pytest.mark.parametrize("route", CORE_ROUTES)
def test_client_error_becomes_500(client, stub_client, route):
    stub_client.error = Exception("timeout")

    response = client.post(url(route), json=VALID_BODIES[route])

    assert response.status_code == 500
    assert response.json() == {
        "ok": False,
        "error": f"VICIdial {route} request failed",
        "details": "timeout",
    }
    assert len(stub_client.calls) == 1


def test_transport_error_details(client, stub_client):
    stub_client.error = VicidialTransportError("VICIdial request timed out: timeout")

    response = client.post(url("park"), json={"agent_user": "1001"})

    assert response.status_code == 500
    assert "timeout" in response.json()["details"]
