"""Tests for the Home Connect Monitor setpoint numbers."""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock

import pytest
from homeassistant.components.number import NumberDeviceClass
from homeassistant.const import UnitOfTemperature

from custom_components.home_connect_monitor.api import build_data_payload
from custom_components.home_connect_monitor.const import DOMAIN
from custom_components.home_connect_monitor.models import (
    Channel,
    ChannelFlag,
    ChannelRecord,
    HomeAppliance,
    Value,
    ValueKind,
)
from custom_components.home_connect_monitor.number import (
    HomeConnectSetpointNumber,
    async_setup_entry,
)
from custom_components.home_connect_monitor.resources import resource_by_name

HA_ID = "SIEMENS-KI36FP60-68A40E000001"
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def channels() -> list[Channel]:
    """Create the channels of one fridge."""
    return [
        Channel("fridge_setpoint", HA_ID, resource_by_name("FRIDGE_TEMPERATURE_SETPOINT")),
        Channel("freezer_setpoint", HA_ID, resource_by_name("FREEZER_TEMPERATURE_SETPOINT")),
        Channel("door", HA_ID, resource_by_name("DOOR_STATE")),
    ]


@pytest.fixture
def mock_coordinator(fridge: HomeAppliance, channels: list[Channel]) -> Mock:
    """Create a mock coordinator."""
    coordinator = Mock()
    coordinator.data = {}
    coordinator.last_update_success = True
    coordinator.appliances = {HA_ID: fridge}
    coordinator.channels = {HA_ID: channels}
    coordinator.is_online = Mock(return_value=True)
    coordinator.async_write = AsyncMock(return_value=True)
    return coordinator


class TestAsyncSetupEntry:
    """Tests for async_setup_entry function."""

    @pytest.mark.asyncio
    async def test_async_setup_entry_creates_numbers_for_setpoints(
        self, mock_coordinator: Mock
    ) -> None:
        """Test that only setpoint channels become numbers."""
        hass = Mock()
        entry = Mock()
        entry.entry_id = "test_entry"
        hass.data = {DOMAIN: {"test_entry": mock_coordinator}}
        async_add_entities = Mock()

        await async_setup_entry(hass, entry, async_add_entities)

        entities = async_add_entities.call_args[0][0]
        assert [entity.unique_id for entity in entities] == [
            f"{DOMAIN}_fridge_setpoint",
            f"{DOMAIN}_freezer_setpoint",
        ]


class TestHomeConnectSetpointNumber:
    """Tests for HomeConnectSetpointNumber."""

    def test_setpoint_attributes(
        self, mock_coordinator: Mock, channels: list[Channel]
    ) -> None:
        """Test that setpoints are temperature numbers with compartment limits."""
        fridge = HomeConnectSetpointNumber(mock_coordinator, channels[0])
        freezer = HomeConnectSetpointNumber(mock_coordinator, channels[1])

        assert fridge.device_class == NumberDeviceClass.TEMPERATURE
        assert fridge.native_unit_of_measurement == UnitOfTemperature.CELSIUS
        assert (fridge.native_min_value, fridge.native_max_value) == (2, 8)
        assert (freezer.native_min_value, freezer.native_max_value) == (-24, -16)
        assert fridge.name == "Fridge temperature setpoint"

    def test_native_value(self, mock_coordinator: Mock, channels: list[Channel]) -> None:
        """Test that the number shows valid records only."""
        number = HomeConnectSetpointNumber(mock_coordinator, channels[0])
        assert number.native_value is None

        mock_coordinator.data = {
            "fridge_setpoint": ChannelRecord("fridge_setpoint", 4, NOW)
        }
        assert number.native_value == 4  # noqa: PLR2004

        mock_coordinator.data = {
            "fridge_setpoint": ChannelRecord(
                "fridge_setpoint", "x", NOW, ChannelFlag.READ_FAILURE
            )
        }
        assert number.native_value is None

    @pytest.mark.asyncio
    async def test_set_native_value_writes_through_coordinator(
        self, mock_coordinator: Mock, channels: list[Channel]
    ) -> None:
        """Test that a new setpoint is written in whole degrees Celsius."""
        number = HomeConnectSetpointNumber(mock_coordinator, channels[0])

        await number.async_set_native_value(5.0)

        channel_id, value = mock_coordinator.async_write.await_args[0]
        assert channel_id == "fridge_setpoint"
        assert value == Value(
            "Refrigeration.FridgeFreezer.Setting.SetpointTemperatureRefrigerator",
            "5",
            "°C",
        )
        assert json.loads(build_data_payload(value, ValueKind.INT)) == {
            "data": {
                "key": "Refrigeration.FridgeFreezer.Setting.SetpointTemperatureRefrigerator",
                "value": 5,
                "unit": "°C",
            }
        }
