"""Coordinator for Home Connect Monitor integration."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import (
    CONF_ACCESS_TOKEN,
    CONF_REFRESH_TOKEN,
    CONF_TOKEN_EXPIRE_AT,
    DOMAIN,
    RECONNECT_DELAY,
)
from .models import Channel, ChannelRecord, Credential, HomeAppliance
from .monitor import ApplianceMonitor, MonitorState
from .resources import resource_by_name, resources_for_appliance

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .api import HomeConnectApiClient
    from .event_stream import HomeConnectEventStream

_LOGGER = logging.getLogger(__name__)


def credential_from_entry(entry: ConfigEntry) -> Credential:
    """Restore the stored OAuth credential of a config entry."""
    expire_at = entry.data.get(CONF_TOKEN_EXPIRE_AT)
    return Credential(
        access_token=entry.data.get(CONF_ACCESS_TOKEN),
        refresh_token=entry.data.get(CONF_REFRESH_TOKEN),
        expire_at=datetime.fromtimestamp(expire_at, UTC) if expire_at else None,
    )


def update_entry_tokens(
    hass: HomeAssistant, entry: ConfigEntry, credential: Credential
) -> None:
    """Persist a refreshed credential into the config entry."""
    data = {
        **entry.data,
        CONF_ACCESS_TOKEN: credential.access_token,
        CONF_REFRESH_TOKEN: credential.refresh_token,
        CONF_TOKEN_EXPIRE_AT: (
            int(credential.expire_at.timestamp()) if credential.expire_at else None
        ),
    }
    hass.config_entries.async_update_entry(entry, data=data)


def build_channels(
    appliances: list[HomeAppliance],
    channel_options: list[dict[str, Any]] | None = None,
) -> dict[str, list[Channel]]:
    """Create the channels of every appliance.

    Args:
        appliances: Appliances paired with the account.
        channel_options: Explicit channel configuration, a list of
            ``{"channel_id", "ha_id", "resource"}`` mappings. When omitted,
            every resource that applies to an appliance's type becomes a
            channel.

    Returns:
        Channels keyed by appliance id.

    """
    channels: dict[str, list[Channel]] = {appliance.ha_id: [] for appliance in appliances}

    if not channel_options:
        for appliance in appliances:
            channels[appliance.ha_id] = [
                Channel(
                    channel_id=f"{appliance.ha_id}_{resource.name.lower()}",
                    ha_id=appliance.ha_id,
                    resource=resource,
                )
                for resource in resources_for_appliance(appliance.type)
            ]
        return channels

    for option in channel_options:
        ha_id = option.get("ha_id")
        resource = resource_by_name(str(option.get("resource", "")))
        if ha_id not in channels or resource is None:
            _LOGGER.warning("Ignoring invalid channel configuration: %s", option)
            continue
        channel_id = option.get("channel_id") or f"{ha_id}_{resource.name.lower()}"
        channels[ha_id].append(
            Channel(channel_id=channel_id, ha_id=ha_id, resource=resource)
        )
    return channels


class HomeConnectCoordinator(DataUpdateCoordinator[dict[str, ChannelRecord]]):
    """Coordinator receiving channel records pushed by appliance monitors.

    It does not poll. Monitors deliver records through :meth:`new_records`
    and report dead connections through :meth:`connection_interrupted`, upon
    which the coordinator starts a replacement monitor after a delay.
    """

    def __init__(  # noqa: PLR0913
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        client: HomeConnectApiClient,
        event_stream: HomeConnectEventStream,
        appliances: list[HomeAppliance],
        channels: dict[str, list[Channel]],
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            update_interval=None,
        )
        self.client = client
        self.event_stream = event_stream
        self.appliances = {appliance.ha_id: appliance for appliance in appliances}
        self.channels = channels
        self.monitors: dict[str, ApplianceMonitor] = {}
        self._start_tasks: dict[str, asyncio.Task[None]] = {}
        self._shutdown = False
        self.data = {}

    async def _async_update_data(self) -> dict[str, ChannelRecord]:
        return dict(self.data or {})

    def is_online(self, ha_id: str) -> bool:
        monitor = self.monitors.get(ha_id)
        return monitor is not None and monitor.online

    def channel(self, channel_id: str) -> Channel | None:
        for channels in self.channels.values():
            for channel in channels:
                if channel.channel_id == channel_id:
                    return channel
        return None

    def new_records(self, records: list[ChannelRecord]) -> None:
        """Merge a batch of records and notify entities."""
        data = dict(self.data or {})
        for record in records:
            data[record.channel_id] = record
        _LOGGER.debug("Received %d channel records", len(records))
        self.async_set_updated_data(data)

    def connection_interrupted(self, driver_id: str, monitor: ApplianceMonitor) -> None:
        """Replace a monitor whose connection died."""
        if self.monitors.get(monitor.ha_id) is not monitor:
            return
        _LOGGER.warning(
            "Connection of %s (%s) interrupted, reconnecting in %s seconds",
            monitor.ha_id,
            driver_id,
            RECONNECT_DELAY,
        )
        self.async_update_listeners()
        self._schedule_start(monitor.ha_id, RECONNECT_DELAY)

    def async_start(self) -> None:
        """Start one monitor per appliance in the background."""
        for ha_id in self.appliances:
            self._schedule_start(ha_id)

    def _schedule_start(self, ha_id: str, delay: float = 0) -> None:
        if self._shutdown:
            return
        task = self._start_tasks.get(ha_id)
        if (
            task is not None
            and not task.done()
            and task is not asyncio.current_task()
        ):
            return  # Start already scheduled

        async def start() -> None:
            if delay:
                await asyncio.sleep(delay)
            if self._shutdown:
                return
            try:
                await self.async_start_monitor(ha_id)
            except Exception:
                _LOGGER.exception("Unexpected error starting monitor for %s", ha_id)

        self._start_tasks[ha_id] = asyncio.create_task(start())

    async def async_start_monitor(self, ha_id: str) -> ApplianceMonitor:
        """Create and start a fresh monitor for an appliance."""
        previous = self.monitors.pop(ha_id, None)
        if previous is not None and previous.state is not MonitorState.CLOSED:
            await previous.async_stop()

        monitor = ApplianceMonitor(
            ha_id,
            self.channels.get(ha_id, []),
            self.client,
            self.event_stream,
            self,
        )
        self.monitors[ha_id] = monitor
        _LOGGER.info("Starting monitor for appliance %s", ha_id)
        state = await monitor.async_start()
        _LOGGER.debug("Monitor for %s is %s", ha_id, state)
        self.async_update_listeners()
        return monitor

    async def async_write(self, channel_id: str, value: Any) -> bool:
        """Write a value through the monitor owning the channel.

        Raises:
            KeyError: If no monitor owns the channel.

        """
        channel = self.channel(channel_id)
        monitor = self.monitors.get(channel.ha_id) if channel else None
        if monitor is None:
            error_msg = f"No active monitor for channel {channel_id}"
            raise KeyError(error_msg)
        return await monitor.async_write(channel_id, value)

    async def async_shutdown(self) -> None:
        """Stop all monitors and close the event streams."""
        self._shutdown = True
        tasks = list(self._start_tasks.values())
        self._start_tasks.clear()
        for task in tasks:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        for monitor in list(self.monitors.values()):
            await monitor.async_stop()
        self.monitors.clear()
        await self.event_stream.async_dispose_all()
        await super().async_shutdown()
