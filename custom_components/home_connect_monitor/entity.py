"""Base entity for Home Connect appliance channels."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .api import HomeConnectError
from .const import DOMAIN
from .coordinator import HomeConnectCoordinator
from .models import Channel, ChannelFlag, ChannelRecord
from .ratelimit import RateLimiterTimeoutError

_LOGGER = logging.getLogger(__name__)


class HomeConnectChannelEntity(CoordinatorEntity[HomeConnectCoordinator]):
    """Entity bound to one configured appliance channel."""

    _attr_has_entity_name = True

    def __init__(self, coordinator: HomeConnectCoordinator, channel: Channel) -> None:
        super().__init__(coordinator)
        self._channel = channel
        self._attr_unique_id = f"{DOMAIN}_{channel.channel_id}"
        self._attr_name = channel.resource.name.replace("_", " ").capitalize()

        appliance = coordinator.appliances.get(channel.ha_id)
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, channel.ha_id)},
            name=appliance.name if appliance else channel.ha_id,
            manufacturer=appliance.brand if appliance else None,
            model=appliance.vib if appliance else None,
        )

    @property
    def _record(self) -> ChannelRecord | None:
        return (self.coordinator.data or {}).get(self._channel.channel_id)

    @property
    def available(self) -> bool:
        if not super().available or self._channel.flag is ChannelFlag.UNSUPPORTED:
            return False
        return (
            self.coordinator.is_online(self._channel.ha_id)
            or self._channel.record is not None
        )

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        attributes: dict[str, Any] = {
            "key": self._channel.resource.key,
            "flag": self._channel.flag.value,
        }
        record = self._record
        if record is not None:
            attributes["timestamp"] = record.timestamp.isoformat()
        return attributes

    async def _async_write(self, value: Any) -> None:
        """Write a value to the channel through its appliance monitor.

        Raises:
            HomeAssistantError: If the write was rejected or not possible.

        """
        channel_id = self._channel.channel_id
        try:
            written = await self.coordinator.async_write(channel_id, value)
        except (HomeConnectError, RateLimiterTimeoutError, KeyError) as err:
            _LOGGER.warning("Failed to write %s to %s: %s", value, channel_id, err)
            error_msg = f"Could not write {self.name}: {err}"
            raise HomeAssistantError(error_msg) from err

        if not written:
            error_msg = f"{self.name} does not support writing"
            raise HomeAssistantError(error_msg)
