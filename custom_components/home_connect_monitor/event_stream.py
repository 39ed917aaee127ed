"""Server-sent event stream for Home Connect appliances.

This module keeps one long-lived ``text/event-stream`` connection per
(appliance, listener) pair, parses the pushed frames into event records and
dispatches them to the listener.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from .api import AuthError, CommunicationError, HomeConnectError, RateLimitedError
from .const import (
    API_REQUEST_LOG_SIZE,
    APPLIANCES_PATH,
    EVENT_LOG_SIZE,
    EVENT_STREAM_RECONNECT_DELAY,
)
from .models import (
    ApiRequestRecord,
    DiagnosticLog,
    EventKind,
    EventRecord,
    ParseError,
    Value,
)

if TYPE_CHECKING:
    from .api import AuthenticatedTransport

_LOGGER = logging.getLogger(__name__)

_CONNECTION_EVENTS = {
    "CONNECTED": EventKind.CONNECTED,
    "PAIRED": EventKind.CONNECTED,
    "DISCONNECTED": EventKind.DISCONNECTED,
    "DEPAIRED": EventKind.DISCONNECTED,
}
_ITEM_EVENTS = ("STATUS", "NOTIFY", "EVENT")


class EventListener(Protocol):
    """Receiver of appliance events.

    ``on_closed`` and ``on_rate_limit_reached`` are optional; a listener
    that does not define them is simply not told.
    """

    def on_event(self, event: EventRecord) -> None:
        """Handle a new event."""

    def on_closed(self) -> None:
        """Handle the stream being closed by the server."""

    def on_rate_limit_reached(self) -> None:
        """Handle the stream being closed because of rate limits."""


@dataclass(frozen=True)
class SubscriptionHandle:
    """Identifies one (appliance, listener) subscription."""

    ha_id: str
    listener: EventListener


def _item_kind(event_type: str, key: str) -> EventKind:
    if event_type == "STATUS":
        return EventKind.STATUS_CHANGE
    if event_type == "NOTIFY" and ".setting." in key.lower():
        return EventKind.SETTING_CHANGE
    return EventKind.NOTIFY


def parse_event(ha_id: str, event_type: str, data: str) -> list[EventRecord]:
    """Turn one server-sent event frame into event records.

    Args:
        ha_id: Appliance the stream belongs to.
        event_type: Value of the frame's ``event:`` field.
        data: Joined ``data:`` lines of the frame.

    Returns:
        One record per item for item events, a single record for keepalive
        and connection events, nothing for unknown or malformed frames.

    """
    event_type = event_type.upper()
    if event_type == EventKind.KEEP_ALIVE.value:
        return [EventRecord(ha_id=ha_id, kind=EventKind.KEEP_ALIVE)]
    if event_type in _CONNECTION_EVENTS:
        return [EventRecord(ha_id=ha_id, kind=_CONNECTION_EVENTS[event_type])]
    if event_type not in _ITEM_EVENTS:
        _LOGGER.debug("Ignoring unknown event type '%s' for %s", event_type, ha_id)
        return []

    try:
        payload: Any = json.loads(data)
        items = payload.get("items") or []
    except (ValueError, AttributeError):
        _LOGGER.warning("Could not parse %s event for %s: %s", event_type, ha_id, data)
        return []

    records = []
    for item in items:
        try:
            value = Value.from_json(item)
        except ParseError:
            _LOGGER.debug("Skipping event item without key: %s", item)
            continue
        records.append(
            EventRecord(
                ha_id=ha_id,
                kind=_item_kind(event_type, value.key),
                key=value.key,
                value=value.raw_value,
                unit=value.unit,
            )
        )
    return records


class HomeConnectEventStream:
    """Manager for Home Connect server-sent event connections.

    Each subscription owns an asyncio task reading the stream. Transport
    drops are retried after a short delay without telling the listener;
    server-side closes end the subscription and are reported.
    """

    def __init__(
        self,
        transport: AuthenticatedTransport,
        session: httpx.AsyncClient | None = None,
        event_history: list[EventRecord] | None = None,
        api_request_history: list[ApiRequestRecord] | None = None,
        reconnect_delay: float = EVENT_STREAM_RECONNECT_DELAY,
    ) -> None:
        """Initialize the event stream.

        Args:
            transport: Authenticated transport used to open streams.
            session: HTTP client with a long read timeout for streams.
            event_history: Events to preload into the event log.
            api_request_history: Stream requests to preload into the
                request log.
            reconnect_delay: Seconds to wait before reopening a dropped stream.

        """
        self._transport = transport
        self._session = session
        self._reconnect_delay = reconnect_delay
        self._event_log: DiagnosticLog[EventRecord] = DiagnosticLog(
            EVENT_LOG_SIZE, event_history
        )
        self._request_log: DiagnosticLog[ApiRequestRecord] = DiagnosticLog(
            API_REQUEST_LOG_SIZE, api_request_history
        )
        self._subscriptions: dict[SubscriptionHandle, asyncio.Task[None]] = {}

    @property
    def event_log(self) -> DiagnosticLog[EventRecord]:
        return self._event_log

    @property
    def request_log(self) -> DiagnosticLog[ApiRequestRecord]:
        return self._request_log

    def latest_api_requests(self, ha_id: str | None = None) -> list[ApiRequestRecord]:
        """Return the latest stream requests, optionally for one appliance."""
        records = self._request_log.snapshot()
        if ha_id is None:
            return records
        return [record for record in records if record.ha_id == ha_id]

    def latest_events(self, ha_id: str | None = None) -> list[EventRecord]:
        """Return the latest events, optionally for one appliance."""
        events = self._event_log.snapshot()
        if ha_id is None:
            return events
        return [event for event in events if event.ha_id == ha_id]

    def active_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, ha_id: str, listener: EventListener) -> SubscriptionHandle:
        """Open an event stream for an appliance.

        Args:
            ha_id: Appliance id.
            listener: Receiver of the appliance's events.

        Returns:
            The subscription handle. Subscribing the same pair again returns
            the existing handle without opening a second connection.

        """
        handle = SubscriptionHandle(ha_id=ha_id, listener=listener)
        if handle in self._subscriptions:
            _LOGGER.debug("Event listener for '%s' already registered", ha_id)
            return handle

        _LOGGER.debug("Create new event source listener for '%s'", ha_id)
        self._subscriptions[handle] = asyncio.create_task(
            self._async_run(handle), name=f"home_connect_events_{ha_id}"
        )
        return handle

    async def async_unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Close a subscription; no callback is delivered after this returns."""
        task = self._subscriptions.pop(handle, None)
        if task is None:
            return
        _LOGGER.debug("Unregister event listener for '%s'", handle.ha_id)
        await self._async_cancel(task)

    async def async_dispose_all(self) -> None:
        """Close every subscription."""
        tasks = list(self._subscriptions.values())
        self._subscriptions.clear()
        for task in tasks:
            await self._async_cancel(task)

    @staticmethod
    async def _async_cancel(task: asyncio.Task[None]) -> None:
        if task is asyncio.current_task():
            task.cancel()
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _async_run(self, handle: SubscriptionHandle) -> None:
        path = f"{APPLIANCES_PATH}/{handle.ha_id}/events"
        while handle in self._subscriptions:
            try:
                async with self._transport.async_stream(
                    path,
                    session=self._session,
                    ha_id=handle.ha_id,
                    request_log=self._request_log,
                ) as response:
                    _LOGGER.info("Event stream opened for %s", handle.ha_id)
                    await self._async_read_frames(handle, response)
                _LOGGER.debug("Event stream for %s ended", handle.ha_id)
            except RateLimitedError:
                _LOGGER.warning("Event stream for %s hit the rate limit", handle.ha_id)
                self._end(handle, "on_rate_limit_reached")
                return
            except AuthError:
                _LOGGER.debug("Event stream for %s unauthorized", handle.ha_id)
                try:
                    await self._transport.async_authorization_header(
                        force_refresh=True
                    )
                except HomeConnectError:
                    _LOGGER.exception("Token refresh for event stream failed")
                    self._end(handle, "on_closed")
                    return
            except CommunicationError as err:
                if err.code is not None:
                    _LOGGER.warning(
                        "Event stream for %s closed: %s", handle.ha_id, err
                    )
                    self._end(handle, "on_closed")
                    return
                _LOGGER.debug("Event stream for %s failed: %s", handle.ha_id, err)
            except httpx.HTTPError as err:
                _LOGGER.debug(
                    "Event stream for %s dropped: %s", handle.ha_id, repr(err)
                )

            await asyncio.sleep(self._reconnect_delay)

    async def _async_read_frames(
        self, handle: SubscriptionHandle, response: httpx.Response
    ) -> None:
        event_type: str | None = None
        data_lines: list[str] = []
        async for line in response.aiter_lines():
            if not line:
                if event_type is not None:
                    self._dispatch(handle, event_type, "\n".join(data_lines))
                event_type = None
                data_lines = []
                continue
            if line.startswith(":"):
                continue
            field, _, value = line.partition(":")
            value = value.removeprefix(" ")
            if field == "event":
                event_type = value
            elif field == "data":
                data_lines.append(value)

    def _dispatch(self, handle: SubscriptionHandle, event_type: str, data: str) -> None:
        for event in parse_event(handle.ha_id, event_type, data):
            self._event_log.append(event)
            if handle not in self._subscriptions:
                return
            try:
                handle.listener.on_event(event)
            except Exception:
                _LOGGER.exception("Error in event listener for %s", handle.ha_id)

    def _end(self, handle: SubscriptionHandle, notification: str) -> None:
        if self._subscriptions.get(handle) is not asyncio.current_task():
            return
        del self._subscriptions[handle]
        callback = getattr(handle.listener, notification, None)
        if callback is None:
            return
        try:
            callback()
        except Exception:
            _LOGGER.exception("Error in event listener for %s", handle.ha_id)
