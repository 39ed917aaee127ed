"""Diagnostics for Home Connect Monitor.

Exposes monitor states, channel flags and the latest API requests and
events, with credentials and appliance identifiers redacted.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from homeassistant.components.diagnostics import async_redact_data

from .const import (
    CONF_ACCESS_TOKEN,
    CONF_CLIENT_ID,
    CONF_CLIENT_SECRET,
    CONF_REFRESH_TOKEN,
    DOMAIN,
)

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .coordinator import HomeConnectCoordinator

TO_REDACT = {
    CONF_ACCESS_TOKEN,
    CONF_CLIENT_ID,
    CONF_CLIENT_SECRET,
    CONF_REFRESH_TOKEN,
    "Authorization",
    "authorization",
    "enumber",
    "vib",
}


def _jsonable(obj: Any) -> Any:
    """Turn enums, datetimes and bytes into plain JSON values."""
    if isinstance(obj, dict):
        return {key: _jsonable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(value) for value in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, bytes):
        return obj.hex()
    return obj


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    coordinator: HomeConnectCoordinator | None = hass.data.get(DOMAIN, {}).get(
        entry.entry_id
    )

    entry_summary = {
        "title": entry.title,
        "data": dict(entry.data),
        "options": dict(entry.options),
    }

    coord_summary = None
    if coordinator is not None:
        coord_summary = {
            "appliances": [
                asdict(appliance) for appliance in coordinator.appliances.values()
            ],
            "monitors": {
                ha_id: {
                    "state": monitor.state,
                    "online": monitor.online,
                    "miss_count": monitor.miss_count,
                    "channels": {
                        channel.channel_id: {
                            "resource": channel.resource.name,
                            "flag": channel.flag,
                            "record": asdict(channel.record) if channel.record else None,
                        }
                        for channel in monitor.channels
                    },
                }
                for ha_id, monitor in coordinator.monitors.items()
            },
            "active_event_streams": coordinator.event_stream.active_count(),
            "api_requests": [
                asdict(record) for record in coordinator.client.latest_api_requests()
            ],
            "event_stream_requests": [
                asdict(record)
                for record in coordinator.event_stream.latest_api_requests()
            ],
            "events": [asdict(event) for event in coordinator.event_stream.latest_events()],
        }

    raw = {"entry": entry_summary, "coordinator": coord_summary}
    return async_redact_data(_jsonable(raw), TO_REDACT)
