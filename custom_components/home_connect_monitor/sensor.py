"""Sensor entities for Home Connect appliance channels.

Every configured channel that is not exposed as a number or switch becomes
one sensor whose state is the latest record pushed by the appliance monitor.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.const import UnitOfTemperature

from .const import DOMAIN
from .coordinator import HomeConnectCoordinator
from .entity import HomeConnectChannelEntity
from .models import Channel, ChannelFlag, ValueKind
from .resources import SETPOINT_RESOURCE_NAMES, TOGGLE_RESOURCE_NAMES

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

_LOGGER = logging.getLogger(__name__)

_NUMERIC_KINDS = {ValueKind.INT, ValueKind.DOUBLE, ValueKind.LONG, ValueKind.SHORT}
_CONTROL_RESOURCE_NAMES = SETPOINT_RESOURCE_NAMES | TOGGLE_RESOURCE_NAMES


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up one sensor per read-only channel."""
    coordinator: HomeConnectCoordinator = hass.data[DOMAIN][entry.entry_id]

    entities = [
        HomeConnectChannelSensor(coordinator, channel)
        for channels in coordinator.channels.values()
        for channel in channels
        if channel.resource.name not in _CONTROL_RESOURCE_NAMES
    ]
    _LOGGER.debug("Adding %d channel sensors", len(entities))
    async_add_entities(entities)


class HomeConnectChannelSensor(HomeConnectChannelEntity, SensorEntity):
    """Sensor showing the latest value of one appliance channel."""

    def __init__(self, coordinator: HomeConnectCoordinator, channel: Channel) -> None:
        super().__init__(coordinator, channel)
        resource = channel.resource
        if resource.value_kind in _NUMERIC_KINDS and "Temperature" in resource.key:
            self._attr_device_class = SensorDeviceClass.TEMPERATURE
            self._attr_native_unit_of_measurement = UnitOfTemperature.CELSIUS

    @property
    def native_value(self) -> Any:
        record = self._record
        if record is None:
            return None
        value = record.value
        if isinstance(value, bool):
            return "on" if value else "off"
        if isinstance(value, bytes):
            return value.hex()
        if record.flag is not ChannelFlag.VALID and self.device_class:
            return None
        return value
