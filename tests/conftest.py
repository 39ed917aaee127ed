"""Pytest configuration and fixtures for Home Connect Monitor tests."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from custom_components.home_connect_monitor.api import (
    AuthenticatedTransport,
    HomeConnectApiClient,
)
from custom_components.home_connect_monitor.const import API_BASE_URL
from custom_components.home_connect_monitor.models import (
    Credential,
    HomeAppliance,
)
from custom_components.home_connect_monitor.ratelimit import RateLimiter

HA_ID = "SIEMENS-KI36FP60-68A40E000001"
ACCESS_TOKEN = "access_token_value"  # noqa: S105
REFRESH_TOKEN = "refresh_token_value"  # noqa: S105


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


@pytest.fixture
def fake_clock() -> FakeClock:
    """Fixture providing a fake clock for the rate limiter."""
    return FakeClock()


@pytest.fixture
def rate_limiter(fake_clock: FakeClock) -> RateLimiter:
    """Fixture providing a rate limiter that never really waits."""
    return RateLimiter(clock=fake_clock, sleep=fake_clock.sleep)


@pytest.fixture
def valid_credential() -> Credential:
    """Fixture providing a credential valid for one hour."""
    return Credential(
        access_token=ACCESS_TOKEN,
        refresh_token=REFRESH_TOKEN,
        expire_at=datetime.now(UTC) + timedelta(hours=1),
    )


@pytest.fixture
def mock_credentials(valid_credential: Credential) -> Mock:
    """Fixture providing a credential provider returning a valid token."""
    credentials = Mock()
    credentials.async_get_valid_token = AsyncMock(return_value=valid_credential)
    credentials.async_refresh = AsyncMock(return_value=valid_credential)
    return credentials


@pytest.fixture
def session() -> httpx.AsyncClient:
    """Fixture providing a plain HTTP client session."""
    return httpx.AsyncClient()


@pytest.fixture
def transport(
    session: httpx.AsyncClient,
    mock_credentials: Mock,
    rate_limiter: RateLimiter,
) -> AuthenticatedTransport:
    """Fixture providing an authenticated transport against the live URL."""
    return AuthenticatedTransport(session, mock_credentials, rate_limiter, API_BASE_URL)


@pytest.fixture
def client(transport: AuthenticatedTransport) -> HomeConnectApiClient:
    """Fixture providing an appliance client."""
    return HomeConnectApiClient(transport)


@pytest.fixture
def fridge() -> HomeAppliance:
    """Fixture providing a fridge freezer appliance."""
    return HomeAppliance(
        ha_id=HA_ID,
        name="Fridge",
        brand="SIEMENS",
        vib="KI36FP60",
        connected=True,
        type="FridgeFreezer",
        enumber="KI36FP60/01",
    )


@pytest.fixture
def sample_appliances_response() -> dict:
    """Fixture providing a sample appliances API response.

    Returns:
        A dictionary representing a home appliances API response.

    """
    return {
        "data": {
            "homeappliances": [
                {
                    "haId": HA_ID,
                    "name": "Fridge",
                    "brand": "SIEMENS",
                    "vib": "KI36FP60",
                    "connected": True,
                    "type": "FridgeFreezer",
                    "enumber": "KI36FP60/01",
                },
                {
                    "haId": "BOSCH-SMS6TCI00E-68A40E000002",
                    "name": "Dishwasher",
                    "brand": "BOSCH",
                    "vib": "SMS6TCI00E",
                    "connected": False,
                    "type": "Dishwasher",
                    "enumber": "SMS6TCI00E/01",
                },
            ],
        },
    }


@pytest.fixture
def sample_active_program_response() -> dict:
    """Fixture providing a sample active program API response."""
    return {
        "data": {
            "key": "Dishcare.Dishwasher.Program.Eco50",
            "options": [
                {
                    "key": "BSH.Common.Option.RemainingProgramTime",
                    "value": 3600,
                    "unit": "seconds",
                },
                {"key": "BSH.Common.Option.ProgramProgress", "value": 25, "unit": "%"},
            ],
        },
    }
