"""Tests for Home Connect Monitor diagnostics."""

from datetime import UTC, datetime
from unittest.mock import Mock

import pytest
from homeassistant.components.diagnostics import REDACTED

from custom_components.home_connect_monitor.const import (
    CONF_ACCESS_TOKEN,
    CONF_CLIENT_ID,
    CONF_REFRESH_TOKEN,
    DOMAIN,
)
from custom_components.home_connect_monitor.diagnostics import (
    async_get_config_entry_diagnostics,
)
from custom_components.home_connect_monitor.models import (
    ApiRequestRecord,
    Channel,
    ChannelFlag,
    EventKind,
    EventRecord,
    HomeAppliance,
    HttpRequestSnapshot,
    HttpResponseSnapshot,
)
from custom_components.home_connect_monitor.monitor import MonitorState
from custom_components.home_connect_monitor.resources import resource_by_name

HA_ID = "SIEMENS-KI36FP60-68A40E000001"
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def mock_entry() -> Mock:
    """Create a mock config entry holding tokens."""
    entry = Mock()
    entry.entry_id = "test_entry"
    entry.title = "Home Connect"
    entry.data = {
        CONF_CLIENT_ID: "client",
        CONF_ACCESS_TOKEN: "secret_access",
        CONF_REFRESH_TOKEN: "secret_refresh",
    }
    entry.options = {}
    return entry


@pytest.fixture
def mock_coordinator(fridge: HomeAppliance) -> Mock:
    """Create a mock coordinator with one monitor."""
    monitor = Mock()
    monitor.state = MonitorState.SUBSCRIBED
    monitor.online = True
    monitor.miss_count = 0
    monitor.channels = [
        Channel(
            "door",
            HA_ID,
            resource_by_name("DOOR_STATE"),
            flag=ChannelFlag.NO_VALUE_RECEIVED_YET,
        )
    ]

    coordinator = Mock()
    coordinator.appliances = {HA_ID: fridge}
    coordinator.monitors = {HA_ID: monitor}
    coordinator.event_stream.active_count.return_value = 1
    coordinator.event_stream.latest_events.return_value = [
        EventRecord(HA_ID, EventKind.KEEP_ALIVE, timestamp=NOW)
    ]
    coordinator.event_stream.latest_api_requests.return_value = [
        ApiRequestRecord(
            timestamp=NOW,
            ha_id=HA_ID,
            request=HttpRequestSnapshot(
                url=f"https://api.home-connect.com/api/homeappliances/{HA_ID}/events",
                method="GET",
                headers={"authorization": "Bearer ***"},
            ),
            response=HttpResponseSnapshot(code=429, headers={}, body=None),
        )
    ]
    coordinator.client.latest_api_requests.return_value = [
        ApiRequestRecord(
            timestamp=NOW,
            ha_id=HA_ID,
            request=HttpRequestSnapshot(
                url="https://api.home-connect.com/api/homeappliances",
                method="GET",
                headers={"authorization": "Bearer ***"},
            ),
            response=None,
        )
    ]
    return coordinator


class TestDiagnostics:
    """Tests for async_get_config_entry_diagnostics."""

    @pytest.mark.asyncio
    async def test_diagnostics_redacts_credentials(
        self, mock_entry: Mock, mock_coordinator: Mock
    ) -> None:
        """Test that tokens and appliance identifiers are redacted."""
        hass = Mock()
        hass.data = {DOMAIN: {"test_entry": mock_coordinator}}

        result = await async_get_config_entry_diagnostics(hass, mock_entry)

        assert result["entry"]["data"][CONF_ACCESS_TOKEN] == REDACTED
        assert result["entry"]["data"][CONF_REFRESH_TOKEN] == REDACTED
        assert result["entry"]["data"][CONF_CLIENT_ID] == REDACTED
        appliance = result["coordinator"]["appliances"][0]
        assert appliance["ha_id"] == HA_ID
        assert appliance["vib"] == REDACTED
        assert appliance["enumber"] == REDACTED

    @pytest.mark.asyncio
    async def test_diagnostics_reports_monitors_and_logs(
        self, mock_entry: Mock, mock_coordinator: Mock
    ) -> None:
        """Test that monitor states, requests and events are included."""
        hass = Mock()
        hass.data = {DOMAIN: {"test_entry": mock_coordinator}}

        result = await async_get_config_entry_diagnostics(hass, mock_entry)

        coordinator = result["coordinator"]
        monitor = coordinator["monitors"][HA_ID]
        assert monitor["state"] == "subscribed"
        assert monitor["channels"]["door"]["flag"] == "no_value_received_yet"
        assert monitor["channels"]["door"]["record"] is None
        assert coordinator["active_event_streams"] == 1
        assert coordinator["events"][0]["kind"] == "KEEP-ALIVE"
        assert coordinator["events"][0]["timestamp"] == NOW.isoformat()
        request = coordinator["api_requests"][0]["request"]
        assert request["headers"]["authorization"] == REDACTED
        stream_request = coordinator["event_stream_requests"][0]
        assert stream_request["response"]["code"] == 429  # noqa: PLR2004
        assert stream_request["request"]["headers"]["authorization"] == REDACTED

    @pytest.mark.asyncio
    async def test_diagnostics_without_coordinator(self, mock_entry: Mock) -> None:
        """Test that an unloaded entry reports no coordinator."""
        hass = Mock()
        hass.data = {}

        result = await async_get_config_entry_diagnostics(hass, mock_entry)

        assert result["coordinator"] is None
