"""Tests for the Home Connect appliance monitor."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from custom_components.home_connect_monitor.api import (
    ApplianceOfflineError,
    CommunicationError,
    InvalidScopeOrIdError,
    RateLimitedError,
    UnsupportedOperationError,
)
from custom_components.home_connect_monitor.const import (
    APPLIANCE_OFFLINE_MESSAGE,
    DRIVER_ID,
    TOO_MANY_REQUESTS_MESSAGE,
)
from custom_components.home_connect_monitor.models import (
    Channel,
    ChannelFlag,
    EventKind,
    EventRecord,
    ParseError,
    Resource,
    Value,
)
from custom_components.home_connect_monitor.monitor import (
    ApplianceMonitor,
    MonitorState,
    scale_measured_temperature,
)
from custom_components.home_connect_monitor.ratelimit import RateLimiterTimeoutError
from custom_components.home_connect_monitor.resources import (
    SETTING_FRIDGE_SUPER_MODE,
    STATUS_DOOR_STATE,
    STATUS_FRIDGE_MEASURED_TEMPERATURE,
    resource_by_name,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

HA_ID = "SIEMENS-KI36FP60-68A40E000001"
DOOR_OPEN = "BSH.Common.EnumType.DoorState.Open"

SEED_VALUES = {
    STATUS_DOOR_STATE: "BSH.Common.EnumType.DoorState.Closed",
    SETTING_FRIDGE_SUPER_MODE: "false",
    STATUS_FRIDGE_MEASURED_TEMPERATURE: "40",
}


def _channels() -> list[Channel]:
    return [
        Channel("door", HA_ID, resource_by_name("DOOR_STATE")),
        Channel("super", HA_ID, resource_by_name("FRIDGE_SUPER_MODE")),
        Channel("temp", HA_ID, resource_by_name("FRIDGE_MEASURED_TEMPERATURE")),
    ]


async def _read_seed_value(ha_id: str, resource: Resource) -> Value:
    return Value(resource.key, SEED_VALUES[resource.key])


@pytest.fixture
def client() -> Mock:
    """Create a mock appliance client answering seed reads."""
    client = Mock()
    client.async_read_resource = AsyncMock(side_effect=_read_seed_value)
    client.async_write_resource = AsyncMock()
    return client


@pytest.fixture
def event_stream() -> Mock:
    """Create a mock event stream."""
    stream = Mock()
    stream.subscribe = Mock(return_value="handle")
    stream.async_unsubscribe = AsyncMock()
    return stream


@pytest.fixture
def sink() -> Mock:
    """Create a mock record sink."""
    return Mock()


@pytest_asyncio.fixture
async def monitor(
    client: Mock, event_stream: Mock, sink: Mock
) -> AsyncIterator[ApplianceMonitor]:
    """Create a monitor whose watchdog never fires on its own."""
    monitor = ApplianceMonitor(
        HA_ID, _channels(), client, event_stream, sink, watchdog_interval=3600
    )
    yield monitor
    await monitor.async_stop()


def _delivered(sink: Mock) -> dict[str, object]:
    values: dict[str, object] = {}
    for call in sink.new_records.call_args_list:
        for record in call.args[0]:
            values[record.channel_id] = record.value
    return values


class TestScaleMeasuredTemperature:
    """Tests for scale_measured_temperature function."""

    def test_measured_temperature_is_divided_by_eight(self) -> None:
        """Test that measured temperatures are reported in eighths of a degree."""
        assert scale_measured_temperature(STATUS_FRIDGE_MEASURED_TEMPERATURE, "160") == "20.0"

    def test_other_keys_are_unchanged(self) -> None:
        """Test that other values pass through untouched."""
        assert scale_measured_temperature(STATUS_DOOR_STATE, "160") == "160"
        assert scale_measured_temperature(STATUS_FRIDGE_MEASURED_TEMPERATURE, None) is None

    def test_non_numeric_temperature_raises(self) -> None:
        """Test that a malformed temperature raises ParseError."""
        with pytest.raises(ParseError):
            scale_measured_temperature(STATUS_FRIDGE_MEASURED_TEMPERATURE, "warm")


class TestApplianceMonitorStart:
    """Tests for seeding and subscribing."""

    @pytest.mark.asyncio
    async def test_start_seeds_channels_and_subscribes(
        self,
        monitor: ApplianceMonitor,
        event_stream: Mock,
        sink: Mock,
    ) -> None:
        """Test that a successful seed delivers one batch and subscribes."""
        state = await monitor.async_start()

        assert state is MonitorState.SUBSCRIBED
        assert monitor.online is True
        event_stream.subscribe.assert_called_once_with(HA_ID, monitor)
        sink.new_records.assert_called_once()
        assert _delivered(sink) == {
            "door": "BSH.Common.EnumType.DoorState.Closed",
            "super": False,
            "temp": 5.0,
        }
        assert all(channel.flag is ChannelFlag.VALID for channel in monitor.channels)

    @pytest.mark.asyncio
    async def test_offline_appliance_marks_string_channels(
        self,
        monitor: ApplianceMonitor,
        client: Mock,
        event_stream: Mock,
        sink: Mock,
    ) -> None:
        """Test that an offline appliance degrades without subscribing."""
        client.async_read_resource.side_effect = ApplianceOfflineError(
            409, "Conflict", '{"error": "offline"}'
        )

        state = await monitor.async_start()

        assert state is MonitorState.DEGRADED
        assert monitor.online is False
        event_stream.subscribe.assert_not_called()
        assert _delivered(sink) == {"door": APPLIANCE_OFFLINE_MESSAGE}
        assert monitor.channel("door").flag is ChannelFlag.APPLIANCE_OFFLINE
        assert monitor.channel("super").flag is ChannelFlag.NO_VALUE_RECEIVED_YET
        sink.connection_interrupted.assert_not_called()

    @pytest.mark.parametrize(
        "error",
        [
            RateLimitedError(429, "Too Many Requests"),
            RateLimiterTimeoutError("waited too long"),
        ],
    )
    @pytest.mark.asyncio
    async def test_rate_limit_marks_string_channels(
        self,
        monitor: ApplianceMonitor,
        client: Mock,
        sink: Mock,
        error: Exception,
    ) -> None:
        """Test that hitting the rate limit while seeding degrades the monitor."""
        client.async_read_resource.side_effect = error

        state = await monitor.async_start()

        assert state is MonitorState.DEGRADED
        assert _delivered(sink) == {"door": TOO_MANY_REQUESTS_MESSAGE}
        assert monitor.channel("door").flag is ChannelFlag.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_unreadable_channels_are_flagged_and_skipped(
        self,
        monitor: ApplianceMonitor,
        client: Mock,
        sink: Mock,
    ) -> None:
        """Test that per-channel read failures do not stop seeding."""

        async def read(ha_id: str, resource: Resource) -> Value:
            if resource.name == "DOOR_STATE":
                raise UnsupportedOperationError("not readable")
            if resource.name == "FRIDGE_SUPER_MODE":
                raise InvalidScopeOrIdError(404, "Not Found")
            return Value(resource.key, "160")

        client.async_read_resource.side_effect = read

        state = await monitor.async_start()

        assert state is MonitorState.SUBSCRIBED
        assert monitor.channel("door").flag is ChannelFlag.UNSUPPORTED
        assert monitor.channel("super").flag is ChannelFlag.READ_FAILURE
        assert _delivered(sink) == {"temp": 20.0}

    @pytest.mark.asyncio
    async def test_fatal_error_closes_and_notifies_owner(
        self,
        monitor: ApplianceMonitor,
        client: Mock,
        event_stream: Mock,
        sink: Mock,
    ) -> None:
        """Test that an unexpected API error closes the monitor."""
        client.async_read_resource.side_effect = CommunicationError(
            500, "Internal Server Error"
        )

        state = await monitor.async_start()

        assert state is MonitorState.CLOSED
        event_stream.subscribe.assert_not_called()
        sink.connection_interrupted.assert_called_once_with(DRIVER_ID, monitor)


class TestApplianceMonitorEvents:
    """Tests for event handling."""

    @pytest.mark.asyncio
    async def test_status_event_updates_matching_channel(
        self, monitor: ApplianceMonitor, sink: Mock
    ) -> None:
        """Test that events reach channels with the same key, ignoring case."""
        await monitor.async_start()
        sink.new_records.reset_mock()

        monitor.on_event(
            EventRecord(HA_ID, EventKind.STATUS_CHANGE, STATUS_DOOR_STATE.upper(), DOOR_OPEN)
        )

        assert _delivered(sink) == {"door": DOOR_OPEN}

    @pytest.mark.asyncio
    async def test_measured_temperature_event_is_scaled(
        self, monitor: ApplianceMonitor, sink: Mock
    ) -> None:
        """Test that a measured temperature of 160 is delivered as 20.0."""
        await monitor.async_start()
        sink.new_records.reset_mock()

        monitor.on_event(
            EventRecord(
                HA_ID, EventKind.STATUS_CHANGE, STATUS_FRIDGE_MEASURED_TEMPERATURE, "160"
            )
        )

        assert _delivered(sink) == {"temp": 20.0}

    @pytest.mark.asyncio
    async def test_unmatched_event_delivers_nothing(
        self, monitor: ApplianceMonitor, sink: Mock
    ) -> None:
        """Test that events for unconfigured keys are ignored."""
        await monitor.async_start()
        sink.new_records.reset_mock()

        monitor.on_event(
            EventRecord(HA_ID, EventKind.NOTIFY, "BSH.Common.Option.ProgramProgress", "5")
        )

        sink.new_records.assert_not_called()

    @pytest.mark.asyncio
    async def test_disconnect_and_connect(
        self, monitor: ApplianceMonitor, sink: Mock
    ) -> None:
        """Test that connection events toggle the online state."""
        await monitor.async_start()

        monitor.on_event(EventRecord(HA_ID, EventKind.DISCONNECTED))
        assert monitor.online is False
        assert monitor.channel("door").record.value == APPLIANCE_OFFLINE_MESSAGE

        monitor.on_event(EventRecord(HA_ID, EventKind.CONNECTED))
        assert monitor.online is True

    @pytest.mark.asyncio
    async def test_closed_stream_tears_down_once(
        self,
        monitor: ApplianceMonitor,
        event_stream: Mock,
        sink: Mock,
    ) -> None:
        """Test that a server close tears down and notifies the owner once."""
        await monitor.async_start()

        monitor.on_closed()
        monitor.on_rate_limit_reached()
        await monitor._teardown_task

        assert monitor.state is MonitorState.CLOSED
        sink.connection_interrupted.assert_called_once_with(DRIVER_ID, monitor)
        event_stream.async_unsubscribe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_events_after_close_are_ignored(
        self, monitor: ApplianceMonitor, sink: Mock
    ) -> None:
        """Test that a closed monitor delivers nothing."""
        await monitor.async_start()
        await monitor.async_stop()
        sink.new_records.reset_mock()

        monitor.on_event(
            EventRecord(HA_ID, EventKind.STATUS_CHANGE, STATUS_DOOR_STATE, DOOR_OPEN)
        )

        sink.new_records.assert_not_called()


class TestApplianceMonitorWatchdog:
    """Tests for the keepalive watchdog."""

    @pytest.mark.asyncio
    async def test_first_miss_degrades(self, monitor: ApplianceMonitor) -> None:
        """Test that one quiet period moves the monitor to DEGRADED."""
        await monitor.async_start()

        await monitor.async_watchdog_tick()

        assert monitor.state is MonitorState.DEGRADED
        assert monitor.miss_count == 1

    @pytest.mark.asyncio
    async def test_event_resets_miss_count(self, monitor: ApplianceMonitor) -> None:
        """Test that any event returns a degraded monitor to SUBSCRIBED."""
        await monitor.async_start()
        await monitor.async_watchdog_tick()
        await monitor.async_watchdog_tick()

        monitor.on_event(EventRecord(HA_ID, EventKind.KEEP_ALIVE))

        assert monitor.miss_count == 0
        assert monitor.state is MonitorState.SUBSCRIBED

    @pytest.mark.asyncio
    async def test_seven_quiet_ticks_interrupt_exactly_once(
        self,
        monitor: ApplianceMonitor,
        event_stream: Mock,
        sink: Mock,
    ) -> None:
        """Test that six missed keepalives tear the connection down once."""
        await monitor.async_start()

        for _ in range(7):
            await monitor.async_watchdog_tick()

        assert monitor.state is MonitorState.CLOSED
        sink.connection_interrupted.assert_called_once_with(DRIVER_ID, monitor)
        event_stream.async_unsubscribe.assert_awaited_once_with("handle")

    @pytest.mark.asyncio
    async def test_degraded_start_is_torn_down_by_watchdog(
        self, monitor: ApplianceMonitor, client: Mock, sink: Mock
    ) -> None:
        """Test that an offline monitor is eventually replaced."""
        client.async_read_resource.side_effect = ApplianceOfflineError(
            409, "Conflict", "error: offline"
        )
        await monitor.async_start()

        for _ in range(5):
            await monitor.async_watchdog_tick()
        sink.connection_interrupted.assert_not_called()

        await monitor.async_watchdog_tick()
        sink.connection_interrupted.assert_called_once_with(DRIVER_ID, monitor)


class TestApplianceMonitorWrite:
    """Tests for channel writes."""

    @pytest.mark.asyncio
    async def test_write_converts_plain_values(
        self, monitor: ApplianceMonitor, client: Mock
    ) -> None:
        """Test that a plain value is wrapped with the resource key."""
        assert await monitor.async_write("super", True) is True

        client.async_write_resource.assert_awaited_once_with(
            HA_ID,
            resource_by_name("FRIDGE_SUPER_MODE"),
            Value(SETTING_FRIDGE_SUPER_MODE, "true"),
        )
        assert monitor.channel("super").flag is ChannelFlag.VALID

    @pytest.mark.asyncio
    async def test_write_to_read_only_resource(
        self, monitor: ApplianceMonitor, client: Mock
    ) -> None:
        """Test that an unsupported write is reported and flagged."""
        client.async_write_resource.side_effect = UnsupportedOperationError("read only")

        assert await monitor.async_write("door", "x") is False
        assert monitor.channel("door").flag is ChannelFlag.UNSUPPORTED

    @pytest.mark.asyncio
    async def test_write_api_error_propagates(
        self, monitor: ApplianceMonitor, client: Mock
    ) -> None:
        """Test that API failures are raised to the caller."""
        client.async_write_resource.side_effect = CommunicationError(500, "Error")
        with pytest.raises(CommunicationError):
            await monitor.async_write("super", False)

    @pytest.mark.asyncio
    async def test_write_unknown_channel(self, monitor: ApplianceMonitor) -> None:
        """Test that writing an unconfigured channel raises KeyError."""
        with pytest.raises(KeyError):
            await monitor.async_write("missing", 1)
