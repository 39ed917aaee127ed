"""Switch entities for Home Connect refrigeration modes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.switch import SwitchEntity

from .const import DOMAIN
from .coordinator import HomeConnectCoordinator
from .entity import HomeConnectChannelEntity
from .models import ChannelFlag
from .resources import TOGGLE_RESOURCE_NAMES

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up one switch per super mode or eco mode channel."""
    coordinator: HomeConnectCoordinator = hass.data[DOMAIN][entry.entry_id]

    entities = [
        HomeConnectModeSwitch(coordinator, channel)
        for channels in coordinator.channels.values()
        for channel in channels
        if channel.resource.name in TOGGLE_RESOURCE_NAMES
    ]
    _LOGGER.debug("Adding %d mode switches", len(entities))
    async_add_entities(entities)


class HomeConnectModeSwitch(HomeConnectChannelEntity, SwitchEntity):
    """Boolean appliance setting such as super cooling or eco mode."""

    @property
    def is_on(self) -> bool | None:
        record = self._record
        if record is None or record.flag is not ChannelFlag.VALID:
            return None
        return bool(record.value)

    async def async_turn_on(self, **kwargs: Any) -> None:  # noqa: ANN401, ARG002
        await self._async_write(True)  # noqa: FBT003

    async def async_turn_off(self, **kwargs: Any) -> None:  # noqa: ANN401, ARG002
        await self._async_write(False)  # noqa: FBT003
