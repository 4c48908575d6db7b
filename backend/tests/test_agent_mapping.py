import json
import logging

import pytest

from retention_portal.core.config import Settings
from retention_portal.services.agent_mapping import (
    DEFAULT_PORTAL_BASE_URL,
    build_lead_details_url,
    get_agent_mapping,
    load_agent_mappings,
)


def test_get_agent_mapping(test_settings):
    mapping = get_agent_mapping("profile-1", test_settings)

    assert mapping.campaign_id == "RETENTION"
    assert mapping.list_id == 1001
    assert mapping.vicidial_user == "6666"
    assert mapping.webform_base_url is None


@pytest.mark.parametrize("profile_id", [None, "", "unknown"])
def test_unknown_profile(test_settings, profile_id):
    assert get_agent_mapping(profile_id, test_settings) is None


def test_missing_file_is_empty(tmp_path, caplog):
    path = tmp_path / "missing.json"

    with caplog.at_level(logging.WARNING, logger="retention_portal.services.agent_mapping"):
        assert load_agent_mappings(path) == {}

    assert f"Agent mapping file not found at {path}" in caplog.text


def test_malformed_file_is_empty(tmp_path):
    path = tmp_path / "mapping.json"
    path.write_text("{not json")
    assert load_agent_mappings(path) == {}


def test_non_object_file_is_empty(tmp_path, caplog):
    path = tmp_path / "mapping.json"
    path.write_text(json.dumps(["profile-1"]))

    with caplog.at_level(logging.WARNING, logger="retention_portal.services.agent_mapping"):
        assert load_agent_mappings(path) == {}

    assert f"Agent mapping file {path} is not a JSON object" in caplog.text


def test_invalid_entries_are_skipped(tmp_path):
    path = tmp_path / "mapping.json"
    path.write_text(json.dumps({
        "good": {"campaignId": "RET", "listId": "2002"},
        "bad": {"listId": 1},
    }))

    mappings = load_agent_mappings(path)

    assert list(mappings) == ["good"]
    assert mappings["good"].list_id == "2002"


class TestBuildLeadDetailsUrl:
    def test_uses_portal_base_url(self, test_settings):
        assert build_lead_details_url(77, test_settings) == (
            "https://portal.example.com/agent/assigned-lead-details?dealId=77"
        )

    def test_falls_back_to_public_app_url(self):
        settings = Settings(_env_file=None, next_public_app_base_url="https://app.example.com///")
        assert build_lead_details_url("12", settings) == (
            "https://app.example.com/agent/assigned-lead-details?dealId=12"
        )

    def test_default_base(self):
        settings = Settings(_env_file=None)
        assert build_lead_details_url(5, settings).startswith(DEFAULT_PORTAL_BASE_URL)

    @pytest.mark.parametrize("deal_id", [None, 0, -3, "abc", True])
    def test_invalid_deal_id(self, test_settings, deal_id):
        assert build_lead_details_url(deal_id, test_settings) is None
