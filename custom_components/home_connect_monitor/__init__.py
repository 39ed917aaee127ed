"""Home Connect Monitor integration for Home Assistant."""

from __future__ import annotations

import logging
from functools import partial

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady

from .api import (
    AuthenticatedTransport,
    AuthError,
    HomeConnectApiClient,
    HomeConnectError,
    create_event_stream_client,
    create_session_client,
)
from .auth import OAuthCredentialProvider
from .const import (
    API_BASE_URL,
    API_SIMULATOR_BASE_URL,
    CONF_CHANNELS,
    CONF_CLIENT_ID,
    CONF_CLIENT_SECRET,
    CONF_SIMULATOR,
    DATA_RATE_LIMITER,
    DOMAIN,
)
from .coordinator import (
    HomeConnectCoordinator,
    build_channels,
    credential_from_entry,
    update_entry_tokens,
)
from .event_stream import HomeConnectEventStream
from .models import ParseError
from .ratelimit import RateLimiter, RateLimiterTimeoutError

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.NUMBER, Platform.SENSOR, Platform.SWITCH]


def get_rate_limiter(hass: HomeAssistant) -> RateLimiter:
    """Return the rate limiter shared by every entry of the integration."""
    domain_data = hass.data.setdefault(DOMAIN, {})
    if DATA_RATE_LIMITER not in domain_data:
        domain_data[DATA_RATE_LIMITER] = RateLimiter()
    return domain_data[DATA_RATE_LIMITER]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up Home Connect Monitor for entry %s", entry.entry_id)

    base_url = API_SIMULATOR_BASE_URL if entry.data.get(CONF_SIMULATOR) else API_BASE_URL
    session = create_session_client(hass)
    credentials = OAuthCredentialProvider(
        session,
        entry.data[CONF_CLIENT_ID],
        entry.data[CONF_CLIENT_SECRET],
        credential_from_entry(entry),
        base_url,
        on_refresh=partial(update_entry_tokens, hass, entry),
    )
    transport = AuthenticatedTransport(
        session, credentials, get_rate_limiter(hass), base_url
    )
    client = HomeConnectApiClient(transport)
    event_stream = HomeConnectEventStream(transport, create_event_stream_client(hass))

    try:
        _LOGGER.debug("Fetching home appliances from Home Connect API")
        appliances = await client.async_get_home_appliances()
        _LOGGER.info("Successfully retrieved %d home appliances", len(appliances))
    except AuthError as err:
        error_msg = f"Authentication failed for entry {entry.entry_id}: {err}"
        raise ConfigEntryAuthFailed(error_msg) from err
    except (HomeConnectError, ParseError, RateLimiterTimeoutError) as err:
        error_msg = f"Could not list home appliances: {err}"
        raise ConfigEntryNotReady(error_msg) from err

    channels = build_channels(appliances, entry.options.get(CONF_CHANNELS))
    coordinator = HomeConnectCoordinator(
        hass, entry, client, event_stream, appliances, channels
    )
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = coordinator
    _LOGGER.debug(
        "Stored coordinator for entry %s: %d appliances, %d channels",
        entry.entry_id,
        len(appliances),
        sum(len(appliance_channels) for appliance_channels in channels.values()),
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    coordinator.async_start()
    _LOGGER.info("Successfully set up Home Connect Monitor for entry %s", entry.entry_id)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading Home Connect Monitor for entry %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unload_ok:
        _LOGGER.warning("Failed to unload some platforms for entry %s", entry.entry_id)
        return False

    coordinator: HomeConnectCoordinator | None = hass.data.get(DOMAIN, {}).pop(
        entry.entry_id, None
    )
    if coordinator is not None:
        await coordinator.async_shutdown()
        _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)
    return True
