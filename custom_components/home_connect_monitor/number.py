"""Number entities for Home Connect refrigeration setpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from homeassistant.components.number import NumberDeviceClass, NumberEntity, NumberMode
from homeassistant.const import UnitOfTemperature

from .const import DOMAIN
from .coordinator import HomeConnectCoordinator
from .entity import HomeConnectChannelEntity
from .models import Channel, ChannelFlag, Value
from .resources import SETPOINT_RESOURCE_NAMES

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

_LOGGER = logging.getLogger(__name__)

# Allowed setpoints in °C
_SETPOINT_RANGES: dict[str, tuple[int, int]] = {
    "FRIDGE_TEMPERATURE_SETPOINT": (2, 8),
    "FREEZER_TEMPERATURE_SETPOINT": (-24, -16),
}


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up one number per setpoint channel."""
    coordinator: HomeConnectCoordinator = hass.data[DOMAIN][entry.entry_id]

    entities = [
        HomeConnectSetpointNumber(coordinator, channel)
        for channels in coordinator.channels.values()
        for channel in channels
        if channel.resource.name in SETPOINT_RESOURCE_NAMES
    ]
    _LOGGER.debug("Adding %d setpoint numbers", len(entities))
    async_add_entities(entities)


class HomeConnectSetpointNumber(HomeConnectChannelEntity, NumberEntity):
    """Target temperature of a fridge or freezer compartment."""

    _attr_device_class = NumberDeviceClass.TEMPERATURE
    _attr_native_unit_of_measurement = UnitOfTemperature.CELSIUS
    _attr_native_step = 1
    _attr_mode = NumberMode.BOX

    def __init__(self, coordinator: HomeConnectCoordinator, channel: Channel) -> None:
        super().__init__(coordinator, channel)
        minimum, maximum = _SETPOINT_RANGES[channel.resource.name]
        self._attr_native_min_value = minimum
        self._attr_native_max_value = maximum

    @property
    def native_value(self) -> float | None:
        record = self._record
        if record is None or record.flag is not ChannelFlag.VALID:
            return None
        return record.value

    async def async_set_native_value(self, value: float) -> None:
        """Write the new setpoint, rounded to whole degrees."""
        await self._async_write(
            Value(
                self._channel.resource.key,
                str(round(value)),
                UnitOfTemperature.CELSIUS.value,
            )
        )
