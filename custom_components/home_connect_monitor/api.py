"""API client for the Home Connect cloud.

This module provides the error types, the authenticated transport shared by
all API users and the appliance client mapping settings, status and program
operations onto HTTP calls.
"""

from __future__ import annotations

import contextlib
import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import (
    API_BASE_URL,
    API_REQUEST_LOG_SIZE,
    APPLIANCES_PATH,
    BSH_JSON_V1,
    EVENT_STREAM_READ_TIMEOUT,
    REQUEST_TIMEOUT,
    TEXT_EVENT_STREAM,
    TOKEN_REFRESH_MARGIN,
)
from .models import (
    ApiRequestRecord,
    AvailableProgram,
    DiagnosticLog,
    HomeAppliance,
    HttpRequestSnapshot,
    HttpResponseSnapshot,
    ParseError,
    Program,
    ProgramOption,
    Resource,
    ResourceCategory,
    Value,
    ValueKind,
    format_json_body,
)
from .resources import (
    SETTING_AMBIENT_LIGHT_BRIGHTNESS,
    SETTING_AMBIENT_LIGHT_COLOR,
    SETTING_AMBIENT_LIGHT_CUSTOM_COLOR,
    SETTING_AMBIENT_LIGHT_ENABLED,
    SETTING_FREEZER_SETPOINT_TEMPERATURE,
    SETTING_FREEZER_SUPER_MODE,
    SETTING_FRIDGE_SETPOINT_TEMPERATURE,
    SETTING_FRIDGE_SUPER_MODE,
    SETTING_FUNCTIONAL_LIGHT,
    SETTING_FUNCTIONAL_LIGHT_BRIGHTNESS,
    SETTING_POWER_STATE,
    STATUS_CURRENT_CAVITY_TEMPERATURE,
    STATUS_DOOR_STATE,
    STATUS_LOCAL_CONTROL_ACTIVE,
    STATUS_OPERATION_STATE,
    STATUS_REMOTE_CONTROL_ACTIVE,
    STATUS_REMOTE_CONTROL_START_ALLOWED,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from homeassistant.core import HomeAssistant

    from .auth import CredentialProvider
    from .ratelimit import RateLimiter

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_NO_CONTENT = 204
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_TOO_MANY_REQUESTS = 429


class HomeConnectError(Exception):
    """Base exception for Home Connect errors."""


class AuthError(HomeConnectError):
    """Exception raised for missing, invalid or expired tokens."""


class TokenRejectedError(AuthError):
    """Exception raised when the API answered a request with 401."""


class CommunicationError(HomeConnectError):
    """Exception raised for an unexpected HTTP response or transport failure.

    Attributes:
        code: HTTP status code, or None when no response was received.
        message: HTTP reason phrase or transport error description.
        body: Response body, empty when none was obtainable.

    """

    def __init__(self, code: int | None, message: str, body: str = "") -> None:
        self.code = code
        self.message = message
        self.body = body
        super().__init__(
            f"Communication error! response code: {code}, message: {message}, "
            f"body: {body}"
        )


class ApplianceOfflineError(CommunicationError):
    """Exception raised when the appliance is not reachable by the cloud."""


class RateLimitedError(CommunicationError):
    """Exception raised when the API rejected the request with 429."""


class InvalidScopeOrIdError(CommunicationError):
    """Exception raised for a missing scope or an unknown appliance or key."""


class UnsupportedOperationError(HomeConnectError):
    """Exception raised for a resource/operation combination that is not valid."""


def is_auth_error(status: int, expected: tuple[int, ...]) -> bool:
    """Check if a status code means the access token was rejected.

    Args:
        status: HTTP status code to check.
        expected: Status codes the caller accepts as success.

    Returns:
        True if status is 401 and 401 is not itself expected.

    """
    return status == HTTP_UNAUTHORIZED and HTTP_UNAUTHORIZED not in expected


def is_offline_error(status: int, body: str) -> bool:
    """Check if a response reports the appliance as offline.

    Args:
        status: HTTP status code.
        body: Response body.

    Returns:
        True for 409 responses mentioning both "error" and "offline".

    """
    lowered = body.lower()
    return status == HTTP_CONFLICT and "error" in lowered and "offline" in lowered


def classify_response(
    status: int, expected: tuple[int, ...], message: str, body: str
) -> CommunicationError | TokenRejectedError | None:
    """Turn an HTTP status into the matching error, or None on success.

    Args:
        status: HTTP status code of the response.
        expected: Status codes considered successful.
        message: HTTP reason phrase.
        body: Response body as text.

    Returns:
        None if the status is expected, otherwise the error to raise.

    """
    if status in expected:
        return None
    if is_auth_error(status, expected):
        return TokenRejectedError("Token invalid!")
    if is_offline_error(status, body):
        return ApplianceOfflineError(status, message, body)
    if status == HTTP_TOO_MANY_REQUESTS:
        return RateLimitedError(status, message, body)
    if status in (HTTP_FORBIDDEN, HTTP_NOT_FOUND):
        return InvalidScopeOrIdError(status, message, body)
    return CommunicationError(status, message, body)


def create_headers(
    token: str | None = None,
    *,
    accept: str = BSH_JSON_V1,
    content_type: str | None = None,
) -> dict[str, str]:
    """Create HTTP headers for Home Connect API requests.

    Args:
        token: Optional bearer token to include in headers.
        accept: Accepted media type.
        content_type: Optional media type of the request body.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    headers = {"Accept": accept}
    if content_type:
        headers["Content-Type"] = content_type
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _snapshot_headers(headers: httpx.Headers | dict[str, str]) -> dict[str, str]:
    snapshot = {}
    for key, value in headers.items():
        if key.lower() == "authorization":
            value = "Bearer ***"  # noqa: PLW2901
        snapshot[key] = value
    return snapshot


def _record_request(
    request_log: DiagnosticLog[ApiRequestRecord] | None,
    ha_id: str | None,
    request: httpx.Request,
    body: str | None,
    response: httpx.Response | None,
    response_body: str | None,
) -> None:
    request_snapshot = HttpRequestSnapshot(
        url=str(request.url),
        method=request.method,
        headers=_snapshot_headers(request.headers),
        body=format_json_body(body),
    )
    response_snapshot = None
    if response is not None:
        response_snapshot = HttpResponseSnapshot(
            code=response.status_code,
            headers=_snapshot_headers(response.headers),
            body=format_json_body(response_body),
        )

    _LOGGER.debug(
        "[%s] %s %s %s\n> %s\n%s\n< %s",
        ha_id or "-",
        request_snapshot.method,
        response_snapshot.code if response_snapshot else "no response",
        request_snapshot.url,
        request_snapshot.headers,
        request_snapshot.body or "",
        response_snapshot.body if response_snapshot else "",
    )
    if request_log is not None:
        request_log.append(
            ApiRequestRecord(
                timestamp=datetime.now(UTC),
                ha_id=ha_id,
                request=request_snapshot,
                response=response_snapshot,
            )
        )


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for Home Connect API.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=REQUEST_TIMEOUT)
    retry = Retry(total=3, backoff_factor=0.5)
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


def create_event_stream_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client for long-lived event streams.

    The read timeout is long enough to span several keepalive frames; the
    retry transport reopens connections that fail to establish.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient for server-sent events.

    """
    base_client = create_async_httpx_client(
        hass,
        timeout=httpx.Timeout(REQUEST_TIMEOUT, read=EVENT_STREAM_READ_TIMEOUT),
    )
    retry = Retry(total=3, backoff_factor=0.5)
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


class AuthenticatedTransport:
    """Send Home Connect requests carrying a valid bearer token.

    Reads are throttled by the shared rate limiter. Every response is
    classified here, once, into success or a typed error.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        credentials: CredentialProvider,
        rate_limiter: RateLimiter,
        base_url: str = API_BASE_URL,
    ) -> None:
        self._session = session
        self._credentials = credentials
        self._rate_limiter = rate_limiter
        self.base_url = base_url.rstrip("/")

    async def async_authorization_header(
        self, *, force_refresh: bool = False
    ) -> dict[str, str]:
        """Return an Authorization header, refreshing the token when near expiry.

        Raises:
            AuthError: If no access token is obtainable.

        """
        credential = await self._credentials.async_get_valid_token()
        expires_in = credential.expires_in_seconds
        if force_refresh or expires_in is None or expires_in <= TOKEN_REFRESH_MARGIN:
            credential = await self._credentials.async_refresh(credential)
            _LOGGER.info(
                "Token refreshed. Expiring in: %s secs", credential.expires_in_seconds
            )

        if not credential.access_token:
            _LOGGER.error("No access token available! Fatal error.")
            error_msg = "No access token available!"
            raise AuthError(error_msg)
        return {"Authorization": f"Bearer {credential.access_token}"}

    async def async_send(
        self,
        method: str,
        path: str,
        *,
        expected: tuple[int, ...] = (HTTP_OK,),
        body: str | None = None,
        ha_id: str | None = None,
        request_log: DiagnosticLog[ApiRequestRecord] | None = None,
    ) -> httpx.Response:
        """Send a request and classify its response.

        Args:
            method: HTTP method.
            path: API path below the base URL.
            expected: Status codes considered successful.
            body: Optional request body, sent as the vendor JSON media type.
            ha_id: Appliance the request refers to, for logging.
            request_log: Diagnostic log receiving the exchange.

        Returns:
            The HTTP response.

        Raises:
            AuthError: If the token is missing or was rejected.
            ApplianceOfflineError: If the appliance is offline.
            RateLimitedError: If the API rejected the request with 429.
            CommunicationError: For any other unexpected status or failure.

        """
        method = method.upper()
        if method == "GET":
            await self._rate_limiter.async_acquire()

        headers = create_headers(
            content_type=BSH_JSON_V1 if body is not None else None
        )
        headers.update(await self.async_authorization_header())
        request = self._session.build_request(
            method,
            f"{self.base_url}{path}",
            headers=headers,
            content=body.encode("utf-8") if body is not None else None,
        )

        try:
            response = await self._session.send(request)
        except httpx.HTTPError as err:
            _LOGGER.warning(
                "Request failed! haId=%s, method=%s, path=%s, error=%s",
                ha_id,
                method,
                path,
                err,
            )
            _record_request(request_log, ha_id, request, body, None, None)
            raise CommunicationError(None, str(err) or type(err).__name__) from err

        response_body = response.text
        _record_request(request_log, ha_id, request, body, response, response_body)

        error = classify_response(
            response.status_code, expected, response.reason_phrase, response_body
        )
        if error is not None:
            _LOGGER.debug(
                "Invalid HTTP response code %s (allowed: %s)",
                response.status_code,
                expected,
            )
            raise error
        return response

    @contextlib.asynccontextmanager
    async def async_stream(
        self,
        path: str,
        *,
        session: httpx.AsyncClient | None = None,
        ha_id: str | None = None,
        request_log: DiagnosticLog[ApiRequestRecord] | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Open a server-sent event stream.

        Stream requests are long-lived and not counted against the rate
        limit. The response status is classified before the body is yielded.
        """
        session = session or self._session
        headers = create_headers(accept=TEXT_EVENT_STREAM)
        headers.update(await self.async_authorization_header())
        request = session.build_request("GET", f"{self.base_url}{path}", headers=headers)

        try:
            response = await session.send(request, stream=True)
        except httpx.HTTPError:
            _record_request(request_log, ha_id, request, None, None, None)
            raise

        try:
            if response.status_code != HTTP_OK:
                response_body = (await response.aread()).decode("utf-8", "replace")
                _record_request(
                    request_log, ha_id, request, None, response, response_body
                )
                error = classify_response(
                    response.status_code,
                    (HTTP_OK,),
                    response.reason_phrase,
                    response_body,
                )
                if error is not None:
                    raise error
            _record_request(request_log, ha_id, request, None, response, None)
            yield response
        finally:
            await response.aclose()


def _load_json(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Response is not valid JSON: {err}"
        raise ParseError(error_msg) from err
    if not isinstance(data, dict):
        error_msg = "Response is not a JSON object"
        raise ParseError(error_msg)
    return data


def extract_value(data: dict[str, Any]) -> Value:
    """Extract a single value from a ``{"data": {...}}`` response.

    Raises:
        ParseError: If the payload has no data object or key.

    """
    try:
        return Value.from_json(data["data"])
    except (KeyError, TypeError) as err:
        error_msg = f"Malformed value response: {err}"
        raise ParseError(error_msg) from err


def extract_program(data: dict[str, Any]) -> Program:
    """Extract a program with its options from a program response.

    Raises:
        ParseError: If the payload has no program key.

    """
    try:
        program = data["data"]
        options = tuple(
            Value.from_json(option) for option in program.get("options") or []
        )
        return Program(key=str(program["key"]), options=options)
    except (KeyError, TypeError, AttributeError) as err:
        error_msg = f"Malformed program response: {err}"
        raise ParseError(error_msg) from err


def extract_available_programs(data: dict[str, Any], ha_id: str) -> list[AvailableProgram]:
    """Extract programs, keeping only entries with a key and an execution kind."""
    result: list[AvailableProgram] = []
    try:
        for program in data["data"]["programs"]:
            key = program.get("key")
            constraints = program.get("constraints") or {}
            execution = constraints.get("execution")
            if key is None or execution is None:
                continue
            result.append(
                AvailableProgram(
                    key=key,
                    available=bool(constraints.get("available", False)),
                    execution=execution,
                )
            )
    except (KeyError, TypeError, AttributeError) as err:
        _LOGGER.error(  # noqa: TRY400
            "Could not parse available programs response! haId=%s, error=%s",
            ha_id,
            err,
        )
    return result


def extract_program_options(data: dict[str, Any], ha_id: str) -> list[ProgramOption]:
    """Extract the options of an available program with their allowed values."""
    result: list[ProgramOption] = []
    try:
        for option in data["data"]["options"]:
            key = option.get("key")
            allowed_values = tuple(
                str(value) for value in option["constraints"]["allowedvalues"]
            )
            if key is not None:
                result.append(ProgramOption(key=key, allowed_values=allowed_values))
    except (KeyError, TypeError, AttributeError) as err:
        _LOGGER.warning(
            "Could not parse available program options response! haId=%s, error=%s",
            ha_id,
            err,
        )
    return result


def extract_home_appliances(data: dict[str, Any]) -> list[HomeAppliance]:
    """Extract the appliance list from an appliances response."""
    appliances = data.get("data", {}).get("homeappliances", [])
    return [_map_home_appliance(appliance) for appliance in appliances]


def _map_home_appliance(data: dict[str, Any]) -> HomeAppliance:
    try:
        return HomeAppliance(
            ha_id=data["haId"],
            name=data.get("name", ""),
            brand=data.get("brand", ""),
            vib=data.get("vib", ""),
            connected=bool(data.get("connected", False)),
            type=data.get("type", ""),
            enumber=data.get("enumber", ""),
        )
    except (KeyError, TypeError) as err:
        error_msg = f"Malformed appliance: {err}"
        raise ParseError(error_msg) from err


def build_data_payload(value: Value, value_kind: ValueKind) -> str:
    """Build the ``{"data": {"key", "value", "unit"}}`` envelope for a PUT."""
    inner: dict[str, Any] = {"key": value.key}
    if value.raw_value is not None:
        inner["value"] = _serialize_value(value, value_kind)
    if value.unit is not None:
        inner["unit"] = value.unit
    return json.dumps({"data": inner})


def build_options_payload(option: Value, value_kind: ValueKind) -> str:
    """Build the ``{"data": {"options": [...]}}`` envelope for an options PUT."""
    inner: dict[str, Any] = {"key": option.key}
    if option.raw_value is not None:
        inner["value"] = _serialize_value(option, value_kind)
    if option.unit is not None:
        inner["unit"] = option.unit
    return json.dumps({"data": {"options": [inner]}})


def _serialize_value(value: Value, value_kind: ValueKind) -> Any:
    if value_kind in (ValueKind.INT, ValueKind.LONG, ValueKind.SHORT):
        return value.as_int()
    if value_kind == ValueKind.BOOL:
        return value.as_bool()
    if value_kind == ValueKind.DOUBLE:
        return value.as_double()
    return value.raw_value


class HomeConnectApiClient:
    """Client for Home Connect appliance settings, status and programs.

    Keeps a bounded log of the latest API requests and caches program
    options for the lifetime of the client.
    """

    def __init__(
        self,
        transport: AuthenticatedTransport,
        api_request_history: list[ApiRequestRecord] | None = None,
    ) -> None:
        self._transport = transport
        self._request_log: DiagnosticLog[ApiRequestRecord] = DiagnosticLog(
            API_REQUEST_LOG_SIZE, api_request_history
        )
        self._program_options_cache: dict[str, list[ProgramOption]] = {}

    @property
    def transport(self) -> AuthenticatedTransport:
        return self._transport

    @property
    def request_log(self) -> DiagnosticLog[ApiRequestRecord]:
        return self._request_log

    def latest_api_requests(self, ha_id: str | None = None) -> list[ApiRequestRecord]:
        """Return the latest API requests, optionally for one appliance."""
        records = self._request_log.snapshot()
        if ha_id is None:
            return records
        return [record for record in records if record.ha_id == ha_id]

    async def _async_request(
        self,
        method: str,
        path: str,
        *,
        ha_id: str | None,
        expected: tuple[int, ...] = (HTTP_OK,),
        body: str | None = None,
    ) -> httpx.Response:
        try:
            return await self._transport.async_send(
                method,
                path,
                expected=expected,
                body=body,
                ha_id=ha_id,
                request_log=self._request_log,
            )
        except TokenRejectedError:
            _LOGGER.debug("Current access token is invalid, retrying after refresh")
            await self._transport.async_authorization_header(force_refresh=True)
            return await self._transport.async_send(
                method,
                path,
                expected=expected,
                body=body,
                ha_id=ha_id,
                request_log=self._request_log,
            )

    async def async_get_home_appliances(self) -> list[HomeAppliance]:
        """Fetch all appliances paired with the account."""
        _LOGGER.debug("Fetching home appliances")
        response = await self._async_request("GET", APPLIANCES_PATH, ha_id=None)
        appliances = extract_home_appliances(_load_json(response))
        _LOGGER.debug("Retrieved %d home appliances", len(appliances))
        return appliances

    async def async_get_home_appliance(self, ha_id: str) -> HomeAppliance:
        """Fetch a single appliance."""
        response = await self._async_request(
            "GET", f"{APPLIANCES_PATH}/{ha_id}", ha_id=ha_id
        )
        data = _load_json(response)
        if not isinstance(data.get("data"), dict):
            error_msg = "Malformed appliance response"
            raise ParseError(error_msg)
        return _map_home_appliance(data["data"])

    async def _async_get_value(self, ha_id: str, path: str) -> Value:
        response = await self._async_request("GET", path, ha_id=ha_id)
        return extract_value(_load_json(response))

    async def async_get_setting(self, ha_id: str, setting: str) -> Value:
        return await self._async_get_value(
            ha_id, f"{APPLIANCES_PATH}/{ha_id}/settings/{setting}"
        )

    async def async_get_status(self, ha_id: str, status: str) -> Value:
        return await self._async_get_value(
            ha_id, f"{APPLIANCES_PATH}/{ha_id}/status/{status}"
        )

    async def async_put_setting(
        self, ha_id: str, value: Value, value_kind: ValueKind = ValueKind.STRING
    ) -> None:
        """Write a setting, serializing the value according to its kind."""
        await self._async_request(
            "PUT",
            f"{APPLIANCES_PATH}/{ha_id}/settings/{value.key}",
            ha_id=ha_id,
            expected=(HTTP_NO_CONTENT,),
            body=build_data_payload(value, value_kind),
        )

    async def _async_get_program(self, ha_id: str, path: str) -> Program | None:
        response = await self._async_request(
            "GET", path, ha_id=ha_id, expected=(HTTP_OK, HTTP_NOT_FOUND)
        )
        if response.status_code == HTTP_NOT_FOUND:
            return None
        return extract_program(_load_json(response))

    async def async_get_active_program(self, ha_id: str) -> Program | None:
        """Return the active program, or None if no program is running."""
        return await self._async_get_program(
            ha_id, f"{APPLIANCES_PATH}/{ha_id}/programs/active"
        )

    async def async_get_selected_program(self, ha_id: str) -> Program | None:
        """Return the selected program, or None if nothing is selected."""
        return await self._async_get_program(
            ha_id, f"{APPLIANCES_PATH}/{ha_id}/programs/selected"
        )

    async def async_set_selected_program(self, ha_id: str, program_key: str) -> None:
        await self._async_request(
            "PUT",
            f"{APPLIANCES_PATH}/{ha_id}/programs/selected",
            ha_id=ha_id,
            expected=(HTTP_NO_CONTENT,),
            body=build_data_payload(Value(program_key), ValueKind.STRING),
        )

    async def async_start_program(self, ha_id: str, program_key: str) -> None:
        await self._async_request(
            "PUT",
            f"{APPLIANCES_PATH}/{ha_id}/programs/active",
            ha_id=ha_id,
            expected=(HTTP_NO_CONTENT,),
            body=build_data_payload(Value(program_key), ValueKind.STRING),
        )

    async def async_start_selected_program(self, ha_id: str) -> None:
        """Start whatever program is selected, copying its payload verbatim."""
        response = await self._async_request(
            "GET", f"{APPLIANCES_PATH}/{ha_id}/programs/selected", ha_id=ha_id
        )
        await self.async_start_custom_program(ha_id, response.text)

    async def async_start_custom_program(self, ha_id: str, program_json: str) -> None:
        await self._async_request(
            "PUT",
            f"{APPLIANCES_PATH}/{ha_id}/programs/active",
            ha_id=ha_id,
            expected=(HTTP_NO_CONTENT,),
            body=program_json,
        )

    async def async_set_program_options(  # noqa: PLR0913
        self,
        ha_id: str,
        key: str,
        value: str,
        unit: str | None = None,
        value_kind: ValueKind = ValueKind.STRING,
        *,
        targets_active_program: bool,
    ) -> None:
        """Set one option of the active or the selected program."""
        program_state = "active" if targets_active_program else "selected"
        await self._async_request(
            "PUT",
            f"{APPLIANCES_PATH}/{ha_id}/programs/{program_state}/options",
            ha_id=ha_id,
            expected=(HTTP_NO_CONTENT,),
            body=build_options_payload(Value(key, value, unit), value_kind),
        )

    async def async_stop_program(self, ha_id: str) -> None:
        await self._async_request(
            "DELETE",
            f"{APPLIANCES_PATH}/{ha_id}/programs/active",
            ha_id=ha_id,
            expected=(HTTP_NO_CONTENT,),
        )

    async def _async_get_available_programs(
        self, ha_id: str, path: str
    ) -> list[AvailableProgram]:
        response = await self._async_request("GET", path, ha_id=ha_id)
        try:
            data = _load_json(response)
        except ParseError:
            _LOGGER.exception("Could not parse programs response! haId=%s", ha_id)
            return []
        return extract_available_programs(data, ha_id)

    async def async_get_programs(self, ha_id: str) -> list[AvailableProgram]:
        return await self._async_get_available_programs(
            ha_id, f"{APPLIANCES_PATH}/{ha_id}/programs"
        )

    async def async_get_available_programs(self, ha_id: str) -> list[AvailableProgram]:
        return await self._async_get_available_programs(
            ha_id, f"{APPLIANCES_PATH}/{ha_id}/programs/available"
        )

    async def async_get_program_options(
        self, ha_id: str, program_key: str
    ) -> list[ProgramOption]:
        """Return the options of a program, from the cache when possible."""
        if program_key in self._program_options_cache:
            _LOGGER.debug("Returning cached options for '%s'", program_key)
            return self._program_options_cache[program_key]

        response = await self._async_request(
            "GET",
            f"{APPLIANCES_PATH}/{ha_id}/programs/available/{program_key}",
            ha_id=ha_id,
        )
        try:
            options = extract_program_options(_load_json(response), ha_id)
        except ParseError:
            _LOGGER.exception("Could not parse program options! haId=%s", ha_id)
            options = []
        self._program_options_cache[program_key] = options
        return options

    async def async_get_power_state(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_POWER_STATE)

    async def async_set_power_state(self, ha_id: str, state: str) -> None:
        await self.async_put_setting(ha_id, Value(SETTING_POWER_STATE, state))

    async def async_get_door_state(self, ha_id: str) -> Value:
        return await self.async_get_status(ha_id, STATUS_DOOR_STATE)

    async def async_get_operation_state(self, ha_id: str) -> Value:
        return await self.async_get_status(ha_id, STATUS_OPERATION_STATE)

    async def async_get_fridge_setpoint_temperature(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_FRIDGE_SETPOINT_TEMPERATURE)

    async def async_set_fridge_setpoint_temperature(
        self, ha_id: str, temperature: str, unit: str
    ) -> None:
        await self.async_put_setting(
            ha_id,
            Value(SETTING_FRIDGE_SETPOINT_TEMPERATURE, temperature, unit),
            ValueKind.INT,
        )

    async def async_get_freezer_setpoint_temperature(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_FREEZER_SETPOINT_TEMPERATURE)

    async def async_set_freezer_setpoint_temperature(
        self, ha_id: str, temperature: str, unit: str
    ) -> None:
        await self.async_put_setting(
            ha_id,
            Value(SETTING_FREEZER_SETPOINT_TEMPERATURE, temperature, unit),
            ValueKind.INT,
        )

    async def async_get_fridge_super_mode(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_FRIDGE_SUPER_MODE)

    async def async_set_fridge_super_mode(self, ha_id: str, *, enable: bool) -> None:
        await self.async_put_setting(
            ha_id,
            Value(SETTING_FRIDGE_SUPER_MODE, "true" if enable else "false"),
            ValueKind.BOOL,
        )

    async def async_get_freezer_super_mode(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_FREEZER_SUPER_MODE)

    async def async_set_freezer_super_mode(self, ha_id: str, *, enable: bool) -> None:
        await self.async_put_setting(
            ha_id,
            Value(SETTING_FREEZER_SUPER_MODE, "true" if enable else "false"),
            ValueKind.BOOL,
        )

    async def async_get_ambient_light_state(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_AMBIENT_LIGHT_ENABLED)

    async def async_set_ambient_light_state(self, ha_id: str, *, enable: bool) -> None:
        await self.async_put_setting(
            ha_id,
            Value(SETTING_AMBIENT_LIGHT_ENABLED, "true" if enable else "false"),
            ValueKind.BOOL,
        )

    async def async_get_ambient_light_brightness(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_AMBIENT_LIGHT_BRIGHTNESS)

    async def async_set_ambient_light_brightness(self, ha_id: str, value: int) -> None:
        """Set the ambient light brightness in percent (10-100)."""
        await self.async_put_setting(
            ha_id,
            Value(SETTING_AMBIENT_LIGHT_BRIGHTNESS, str(value), "%"),
            ValueKind.INT,
        )

    async def async_get_ambient_light_color(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_AMBIENT_LIGHT_COLOR)

    async def async_set_ambient_light_color(self, ha_id: str, color: str) -> None:
        await self.async_put_setting(ha_id, Value(SETTING_AMBIENT_LIGHT_COLOR, color))

    async def async_get_ambient_light_custom_color(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_AMBIENT_LIGHT_CUSTOM_COLOR)

    async def async_set_ambient_light_custom_color(self, ha_id: str, color: str) -> None:
        await self.async_put_setting(
            ha_id, Value(SETTING_AMBIENT_LIGHT_CUSTOM_COLOR, color)
        )

    async def async_get_functional_light_state(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_FUNCTIONAL_LIGHT)

    async def async_set_functional_light_state(
        self, ha_id: str, *, enable: bool
    ) -> None:
        await self.async_put_setting(
            ha_id,
            Value(SETTING_FUNCTIONAL_LIGHT, "true" if enable else "false"),
            ValueKind.BOOL,
        )

    async def async_get_functional_light_brightness(self, ha_id: str) -> Value:
        return await self.async_get_setting(ha_id, SETTING_FUNCTIONAL_LIGHT_BRIGHTNESS)

    async def async_set_functional_light_brightness(
        self, ha_id: str, value: int
    ) -> None:
        """Set the functional light brightness in percent (10-100)."""
        await self.async_put_setting(
            ha_id,
            Value(SETTING_FUNCTIONAL_LIGHT_BRIGHTNESS, str(value), "%"),
            ValueKind.INT,
        )

    async def async_get_current_cavity_temperature(self, ha_id: str) -> Value:
        return await self.async_get_status(ha_id, STATUS_CURRENT_CAVITY_TEMPERATURE)

    async def async_is_remote_control_start_allowed(self, ha_id: str) -> bool:
        value = await self.async_get_status(ha_id, STATUS_REMOTE_CONTROL_START_ALLOWED)
        return value.as_bool()

    async def async_is_remote_control_active(self, ha_id: str) -> bool:
        value = await self.async_get_status(ha_id, STATUS_REMOTE_CONTROL_ACTIVE)
        return value.as_bool()

    async def async_is_local_control_active(self, ha_id: str) -> bool:
        value = await self.async_get_status(ha_id, STATUS_LOCAL_CONTROL_ACTIVE)
        return value.as_bool()

    async def async_read_resource(self, ha_id: str, resource: Resource) -> Value:
        """Read the current value of a resource.

        Raises:
            UnsupportedOperationError: For event resources, which can only
                be received from the event stream.

        """
        category = resource.category
        if category == ResourceCategory.SETTING:
            return await self.async_get_setting(ha_id, resource.key)
        if category == ResourceCategory.STATUS:
            return await self.async_get_status(ha_id, resource.key)
        if category in (
            ResourceCategory.PROGRAM_ACTIVE,
            ResourceCategory.PROGRAM_SELECTED,
        ):
            if category == ResourceCategory.PROGRAM_ACTIVE:
                program = await self.async_get_active_program(ha_id)
            else:
                program = await self.async_get_selected_program(ha_id)
            return Value(resource.key, program.key if program else None)
        if category == ResourceCategory.PROGRAM_ACTIVE_OPTION:
            program = await self.async_get_active_program(ha_id)
            option = program.option(resource.key) if program else None
            if option is None:
                return Value(resource.key)
            return option
        if category == ResourceCategory.PROGRAM_AVAILABLE:
            programs = await self.async_get_available_programs(ha_id)
            return Value(
                resource.key,
                ",".join(program.key for program in programs if program.available),
            )
        error_msg = f"Resource {resource.name} cannot be read"
        raise UnsupportedOperationError(error_msg)

    async def async_write_resource(
        self, ha_id: str, resource: Resource, value: Value
    ) -> None:
        """Write a value to a resource.

        Raises:
            UnsupportedOperationError: For status, event and available
                program resources, which are read-only.

        """
        category = resource.category
        if category == ResourceCategory.SETTING:
            await self.async_put_setting(
                ha_id,
                Value(resource.key, value.raw_value, value.unit),
                resource.value_kind,
            )
        elif category == ResourceCategory.PROGRAM_SELECTED:
            await self.async_set_selected_program(ha_id, value.as_string() or "")
        elif category == ResourceCategory.PROGRAM_ACTIVE:
            if value.raw_value:
                await self.async_start_program(ha_id, value.raw_value)
            else:
                await self.async_stop_program(ha_id)
        elif category == ResourceCategory.PROGRAM_ACTIVE_OPTION:
            await self.async_set_program_options(
                ha_id,
                resource.key,
                value.raw_value or "",
                value.unit,
                resource.value_kind,
                targets_active_program=True,
            )
        else:
            error_msg = f"Resource {resource.name} cannot be written"
            raise UnsupportedOperationError(error_msg)
