"""
Configuration flow for Home Connect Monitor integration.

This module handles the setup of the integration through Home Assistant's
config flow system. The user supplies the credentials of a registered Home
Connect application and a refresh token; the flow validates them by
refreshing the token and listing the appliances.
"""

import logging
from typing import Any

import httpx
import voluptuous as vol
from homeassistant.config_entries import ConfigFlow, ConfigFlowResult
from homeassistant.helpers.httpx_client import get_async_client

from . import get_rate_limiter
from .api import (
    AuthenticatedTransport,
    AuthError,
    CommunicationError,
    HomeConnectApiClient,
    HomeConnectError,
)
from .auth import OAuthCredentialProvider
from .const import (
    API_BASE_URL,
    API_SIMULATOR_BASE_URL,
    CONF_ACCESS_TOKEN,
    CONF_CLIENT_ID,
    CONF_CLIENT_SECRET,
    CONF_REFRESH_TOKEN,
    CONF_SIMULATOR,
    CONF_TOKEN_EXPIRE_AT,
    DOMAIN,
    ERROR_API_ERROR,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_TIMEOUT,
    ERROR_UNKNOWN,
)
from .models import Credential, ParseError
from .ratelimit import RateLimiterTimeoutError

_LOGGER = logging.getLogger(__name__)


def communication_error_code(err: CommunicationError) -> str:
    """Map a communication error to a config flow error code."""
    if isinstance(err.__cause__, httpx.TimeoutException):
        return ERROR_TIMEOUT
    if err.code is None:
        return ERROR_CANNOT_CONNECT
    return ERROR_API_ERROR


class HomeConnectMonitorConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for Home Connect Monitor integration."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle the initial step of the config flow.

        Args:
            user_input: User input data containing the application
                credentials and the refresh token.

        Returns:
            ConfigFlowResult indicating the next step or errors.

        """
        errors: dict[str, str] = {}

        if user_input is not None:
            client_id = user_input[CONF_CLIENT_ID]
            simulator = user_input.get(CONF_SIMULATOR, False)

            try:
                credential = await self._async_validate(user_input)
                _LOGGER.info("Successfully authenticated with Home Connect API")

            except AuthError as err:
                _LOGGER.warning(
                    "Authentication failed (%s): %s", ERROR_INVALID_AUTH, err
                )
                errors["base"] = ERROR_INVALID_AUTH
            except CommunicationError as err:
                errors["base"] = communication_error_code(err)
                _LOGGER.exception("Communication error (%s)", errors["base"])
            except (HomeConnectError, ParseError, RateLimiterTimeoutError):
                _LOGGER.exception("API client error (%s)", ERROR_API_ERROR)
                errors["base"] = ERROR_API_ERROR
            except Exception:
                _LOGGER.exception(
                    "Unexpected error during authentication (%s)",
                    ERROR_UNKNOWN,
                )
                errors["base"] = ERROR_UNKNOWN

            else:
                await self.async_set_unique_id(client_id.lower())
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title=f"Home Connect ({'simulator' if simulator else client_id})",
                    data={
                        CONF_CLIENT_ID: client_id,
                        CONF_CLIENT_SECRET: user_input[CONF_CLIENT_SECRET],
                        CONF_SIMULATOR: simulator,
                        CONF_ACCESS_TOKEN: credential.access_token,
                        CONF_REFRESH_TOKEN: credential.refresh_token,
                        CONF_TOKEN_EXPIRE_AT: (
                            int(credential.expire_at.timestamp())
                            if credential.expire_at
                            else None
                        ),
                    },
                )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_CLIENT_ID): str,
                    vol.Required(CONF_CLIENT_SECRET): str,
                    vol.Required(CONF_REFRESH_TOKEN): str,
                    vol.Optional(CONF_SIMULATOR, default=False): bool,
                }
            ),
            errors=errors,
        )

    async def _async_validate(self, user_input: dict[str, Any]) -> Credential:
        """Refresh the token and list the appliances with it."""
        base_url = (
            API_SIMULATOR_BASE_URL if user_input.get(CONF_SIMULATOR) else API_BASE_URL
        )
        session = get_async_client(self.hass)
        credentials = OAuthCredentialProvider(
            session,
            user_input[CONF_CLIENT_ID],
            user_input[CONF_CLIENT_SECRET],
            Credential(access_token=None, refresh_token=user_input[CONF_REFRESH_TOKEN]),
            base_url,
        )
        transport = AuthenticatedTransport(
            session, credentials, get_rate_limiter(self.hass), base_url
        )
        client = HomeConnectApiClient(transport)
        appliances = await client.async_get_home_appliances()
        _LOGGER.debug("Found %d home appliances", len(appliances))
        return credentials.credential
