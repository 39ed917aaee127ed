"""Constants for the Home Connect Monitor integration.

This module contains all the constants used throughout the integration,
including API endpoints, connection timings, rate limits and configuration
keys.
"""

DOMAIN = "home_connect_monitor"
DRIVER_ID = "homeconnect"

API_BASE_URL = "https://api.home-connect.com"
API_SIMULATOR_BASE_URL = "https://simulator.home-connect.com"
OAUTH_TOKEN_PATH = "/security/oauth/token"  # noqa: S105
APPLIANCES_PATH = "/api/homeappliances"

BSH_JSON_V1 = "application/vnd.bsh.sdk.v1+json"
TEXT_EVENT_STREAM = "text/event-stream"

REQUEST_TIMEOUT = 5.0
EVENT_STREAM_READ_TIMEOUT = 90.0
EVENT_STREAM_RECONNECT_DELAY = 5  # Seconds to wait before reopening a dropped stream
RECONNECT_DELAY = 10  # Seconds before the coordinator replaces an interrupted monitor

# Tokens are refreshed when they have this many seconds or fewer left
TOKEN_REFRESH_MARGIN = 60

# Sustained limit: 50 requests per minute with a 10 second buffer
RATE_LIMIT_CAPACITY = 50
RATE_LIMIT_PERIOD = 70.0
RATE_LIMIT_INITIAL_TOKENS = 40
# Burst limit: no more than 10 requests per second
BURST_LIMIT_CAPACITY = 10
BURST_LIMIT_PERIOD = 1.0
BURST_LIMIT_INITIAL_TOKENS = 0
RATE_LIMIT_MAX_WAIT = 120.0

API_REQUEST_LOG_SIZE = 50
EVENT_LOG_SIZE = 150

WATCHDOG_INTERVAL = 30
MAX_MISSED_KEEPALIVES = 6

# Measured temperatures are reported in eighths of a degree
MEASURED_TEMPERATURE_MARKERS = (
    "Refrigeration.FridgeFreezer.Status.MeasuredTemperatureRefrigerator",
    "Refrigeration.FridgeFreezer.Status.MeasuredTemperatureFreezer",
)
MEASURED_TEMPERATURE_DIVISOR = 8

APPLIANCE_OFFLINE_MESSAGE = "HomeAppliance is offline"
TOO_MANY_REQUESTS_MESSAGE = "Too many requests in a given amount of time"

ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_TIMEOUT = "timeout_error"
ERROR_API_ERROR = "api_error"
ERROR_UNKNOWN = "unknown_error"

CONF_CLIENT_ID = "client_id"
CONF_CLIENT_SECRET = "client_secret"  # noqa: S105
CONF_ACCESS_TOKEN = "access_token"  # noqa: S105
CONF_REFRESH_TOKEN = "refresh_token"  # noqa: S105
CONF_TOKEN_EXPIRE_AT = "token_expire_at"  # noqa: S105
CONF_SIMULATOR = "simulator"
CONF_CHANNELS = "channels"

DATA_RATE_LIMITER = "rate_limiter"
