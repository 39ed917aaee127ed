"""Per-appliance connection monitor.

An :class:`ApplianceMonitor` seeds the configured channels with one poll,
subscribes to the appliance's event stream and watches the stream for
keepalives. When the stream goes quiet for too long it tears itself down
and tells its owner, which is expected to start a fresh monitor.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from .api import (
    ApplianceOfflineError,
    HomeConnectError,
    InvalidScopeOrIdError,
    RateLimitedError,
    UnsupportedOperationError,
)
from .const import (
    APPLIANCE_OFFLINE_MESSAGE,
    DRIVER_ID,
    MAX_MISSED_KEEPALIVES,
    MEASURED_TEMPERATURE_DIVISOR,
    MEASURED_TEMPERATURE_MARKERS,
    TOO_MANY_REQUESTS_MESSAGE,
    WATCHDOG_INTERVAL,
)
from .models import (
    Channel,
    ChannelFlag,
    ChannelRecord,
    EventKind,
    EventRecord,
    ParseError,
    Value,
    ValueKind,
)
from .ratelimit import RateLimiterTimeoutError

if TYPE_CHECKING:
    from .api import HomeConnectApiClient
    from .event_stream import HomeConnectEventStream, SubscriptionHandle

_LOGGER = logging.getLogger(__name__)


class MonitorState(Enum):
    """Lifecycle of an appliance monitor."""

    SEEDING = "seeding"
    SUBSCRIBED = "subscribed"
    DEGRADED = "degraded"
    CLOSED = "closed"


class MonitorSink(Protocol):
    """Consumer of channel records and connection notifications."""

    def new_records(self, records: list[ChannelRecord]) -> None:
        """Handle a batch of new channel records."""

    def connection_interrupted(self, driver_id: str, monitor: ApplianceMonitor) -> None:
        """Handle a monitor that gave up its connection."""


def scale_measured_temperature(key: str, raw_value: str | None) -> str | None:
    """Convert a measured temperature from eighths of a degree.

    Args:
        key: Wire key of the value.
        raw_value: Raw value as received.

    Returns:
        The scaled value for measured-temperature keys, otherwise the raw
        value unchanged.

    Raises:
        ParseError: If a measured temperature is not numeric.

    """
    if raw_value is None or not any(
        marker in key for marker in MEASURED_TEMPERATURE_MARKERS
    ):
        return raw_value
    try:
        return str(float(raw_value) / MEASURED_TEMPERATURE_DIVISOR)
    except ValueError as err:
        error_msg = f"Measured temperature of {key} is not numeric: {raw_value!r}"
        raise ParseError(error_msg) from err


def _to_raw(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ApplianceMonitor:
    """Keep one appliance's channels up to date from its event stream."""

    def __init__(  # noqa: PLR0913
        self,
        ha_id: str,
        channels: list[Channel],
        client: HomeConnectApiClient,
        event_stream: HomeConnectEventStream,
        sink: MonitorSink,
        *,
        driver_id: str = DRIVER_ID,
        watchdog_interval: float = WATCHDOG_INTERVAL,
        max_missed_keepalives: int = MAX_MISSED_KEEPALIVES,
    ) -> None:
        """Initialize the monitor.

        Args:
            ha_id: Appliance id.
            channels: Channels configured for the appliance.
            client: Client used for seeding and writes.
            event_stream: Event stream to subscribe to.
            sink: Receiver of records and the interrupted notification.
            driver_id: Identifier passed along with the interrupted
                notification.
            watchdog_interval: Seconds between watchdog ticks.
            max_missed_keepalives: Ticks without any event before the
                connection is considered dead.

        """
        self.ha_id = ha_id
        self.channels = channels
        self._client = client
        self._event_stream = event_stream
        self._sink = sink
        self._driver_id = driver_id
        self._watchdog_interval = watchdog_interval
        self._max_missed_keepalives = max_missed_keepalives

        self._state = MonitorState.SEEDING
        self._online = False
        self._miss_count = 0
        self._handle: SubscriptionHandle | None = None
        self._watchdog_task: asyncio.Task[None] | None = None
        self._teardown_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def online(self) -> bool:
        return self._online

    @property
    def miss_count(self) -> int:
        return self._miss_count

    def channel(self, channel_id: str) -> Channel | None:
        for channel in self.channels:
            if channel.channel_id == channel_id:
                return channel
        return None

    async def async_start(self) -> MonitorState:
        """Seed the channels, subscribe to events and start the watchdog.

        Returns:
            The state reached: SUBSCRIBED on success, DEGRADED when the
            appliance is offline or the API is rate limiting, CLOSED after
            a fatal error.

        """
        _LOGGER.debug("Starting monitor for %s", self.ha_id)
        self._state = MonitorState.SEEDING

        if not await self._async_seed():
            if self._state is MonitorState.CLOSED:
                return self._state
            self._state = MonitorState.DEGRADED
        else:
            self._online = True
            self._handle = self._event_stream.subscribe(self.ha_id, self)
            self._state = MonitorState.SUBSCRIBED

        self._watchdog_task = asyncio.create_task(
            self._async_watchdog(), name=f"home_connect_watchdog_{self.ha_id}"
        )
        _LOGGER.info("Monitor for %s started in state %s", self.ha_id, self._state)
        return self._state

    async def async_stop(self) -> None:
        """Close the monitor without notifying the owner."""
        self._state = MonitorState.CLOSED
        self._online = False
        await self._async_release()
        if self._teardown_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._teardown_task
            self._teardown_task = None
        _LOGGER.debug("Monitor for %s stopped", self.ha_id)

    async def async_write(self, channel_id: str, value: Any) -> bool:
        """Write a value to a channel's resource.

        Args:
            channel_id: Channel to write.
            value: A wire value, or a plain Python value converted to one.

        Returns:
            True if the value was written, False if the resource does not
            support writing.

        Raises:
            KeyError: If the channel is not configured on this monitor.
            HomeConnectError: If the API rejected the write.

        """
        channel = self.channel(channel_id)
        if channel is None:
            error_msg = f"Unknown channel {channel_id} for {self.ha_id}"
            raise KeyError(error_msg)

        if not isinstance(value, Value):
            value = Value(channel.resource.key, _to_raw(value))

        _LOGGER.debug(
            "Write channel '%s': %s@%s", channel_id, channel.resource.name, self.ha_id
        )
        try:
            await self._client.async_write_resource(self.ha_id, channel.resource, value)
        except UnsupportedOperationError:
            _LOGGER.warning("Unable to write to resource %s", channel.resource.name)
            channel.flag = ChannelFlag.UNSUPPORTED
            return False
        channel.flag = ChannelFlag.VALID
        return True

    async def _async_seed(self) -> bool:
        timestamp = datetime.now(UTC)
        records: list[ChannelRecord] = []

        for channel in self.channels:
            _LOGGER.debug(
                "Read channel '%s': %s@%s",
                channel.channel_id,
                channel.resource.name,
                self.ha_id,
            )
            try:
                value = await self._client.async_read_resource(
                    self.ha_id, channel.resource
                )
                record = self._update_channel(channel, value, timestamp)
            except UnsupportedOperationError:
                _LOGGER.warning("Unable to read resource %s", channel.resource.name)
                channel.flag = ChannelFlag.UNSUPPORTED
                continue
            except (InvalidScopeOrIdError, ParseError) as err:
                _LOGGER.warning(
                    "Could not read resource %s of %s: %s",
                    channel.resource.name,
                    self.ha_id,
                    err,
                )
                channel.flag = ChannelFlag.READ_FAILURE
                continue
            except ApplianceOfflineError:
                _LOGGER.info("Appliance %s is offline", self.ha_id)
                self._put_marker(APPLIANCE_OFFLINE_MESSAGE, ChannelFlag.APPLIANCE_OFFLINE)
                return False
            except (RateLimitedError, RateLimiterTimeoutError):
                _LOGGER.warning("Rate limit reached while seeding %s", self.ha_id)
                self._put_marker(TOO_MANY_REQUESTS_MESSAGE, ChannelFlag.RATE_LIMITED)
                return False
            except HomeConnectError:
                _LOGGER.exception("Seeding %s failed, closing connection", self.ha_id)
                await self._async_teardown()
                return False
            if record is not None:
                records.append(record)

        if records:
            self._sink.new_records(records)
        return True

    def _update_channel(
        self, channel: Channel, value: Value, timestamp: datetime
    ) -> ChannelRecord | None:
        scaled = Value(
            value.key, scale_measured_temperature(value.key, value.raw_value), value.unit
        )
        return channel.update(scaled, timestamp)

    def _put_values(self, value: Value, timestamp: datetime) -> None:
        try:
            raw_value = scale_measured_temperature(value.key, value.raw_value)
        except ParseError:
            _LOGGER.warning("Dropping malformed value for %s: %s", value.key, value)
            return
        scaled = Value(value.key, raw_value, value.unit)

        records = []
        for channel in self.channels:
            if not channel.matches(value.key):
                continue
            try:
                records.append(channel.update(scaled, timestamp))
            except ParseError as err:
                _LOGGER.warning(
                    "Could not convert value for channel '%s': %s",
                    channel.channel_id,
                    err,
                )
                channel.flag = ChannelFlag.READ_FAILURE

        if records:
            self._sink.new_records(records)

    def _put_marker(self, message: str, flag: ChannelFlag) -> None:
        timestamp = datetime.now(UTC)
        records = []
        for channel in self.channels:
            if channel.resource.value_kind is not ValueKind.STRING:
                continue
            channel.record = ChannelRecord(
                channel_id=channel.channel_id,
                value=message,
                timestamp=timestamp,
                flag=flag,
            )
            channel.flag = flag
            records.append(channel.record)
        self._online = False
        if records:
            self._sink.new_records(records)

    def on_event(self, event: EventRecord) -> None:
        """Handle an event from the stream."""
        if self._state is MonitorState.CLOSED:
            return
        self._miss_count = 0
        if self._state is MonitorState.DEGRADED and self._handle is not None:
            self._state = MonitorState.SUBSCRIBED

        if event.kind is EventKind.CONNECTED:
            _LOGGER.info("Appliance %s connected", self.ha_id)
            self._online = True
        elif event.kind is EventKind.DISCONNECTED:
            _LOGGER.info("Appliance %s disconnected", self.ha_id)
            self._put_marker(APPLIANCE_OFFLINE_MESSAGE, ChannelFlag.APPLIANCE_OFFLINE)
        elif event.kind is not EventKind.KEEP_ALIVE:
            value = event.to_value()
            if value is not None:
                self._online = True
                self._put_values(value, event.timestamp)

    def on_closed(self) -> None:
        _LOGGER.warning("Event stream of %s was closed", self.ha_id)
        self._schedule_teardown()

    def on_rate_limit_reached(self) -> None:
        _LOGGER.warning("Event stream of %s closed due to rate limits", self.ha_id)
        self._schedule_teardown()

    def _schedule_teardown(self) -> None:
        if self._state is MonitorState.CLOSED:
            return
        if self._teardown_task is not None and not self._teardown_task.done():
            return
        self._handle = None
        self._teardown_task = asyncio.create_task(self._async_teardown())

    async def async_watchdog_tick(self) -> None:
        """Count one watchdog period without events."""
        if self._state is MonitorState.CLOSED:
            return
        self._miss_count += 1
        if self._state is MonitorState.SUBSCRIBED:
            self._state = MonitorState.DEGRADED
        _LOGGER.debug(
            "No event from %s for %d watchdog periods", self.ha_id, self._miss_count
        )
        if self._miss_count >= self._max_missed_keepalives:
            _LOGGER.warning(
                "No keepalive from %s for %s seconds, connection considered dead",
                self.ha_id,
                self._miss_count * self._watchdog_interval,
            )
            await self._async_teardown()

    async def _async_watchdog(self) -> None:
        while self._state is not MonitorState.CLOSED:
            await asyncio.sleep(self._watchdog_interval)
            await self.async_watchdog_tick()

    async def _async_teardown(self) -> None:
        if self._state is MonitorState.CLOSED:
            return
        self._state = MonitorState.CLOSED
        self._online = False
        await self._async_release()
        _LOGGER.info("Connection to %s interrupted", self.ha_id)
        self._sink.connection_interrupted(self._driver_id, self)

    async def _async_release(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            await self._event_stream.async_unsubscribe(handle)

        task, self._watchdog_task = self._watchdog_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
