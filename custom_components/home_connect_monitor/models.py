"""Data models for the Home Connect Monitor integration."""

from __future__ import annotations

import json
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")

_SHORT_RANGE = (-(2**15), 2**15 - 1)
_BYTE_RANGE = (-(2**7), 2**7 - 1)


class ParseError(Exception):
    """Raised when a present value or payload cannot be interpreted."""


@dataclass
class Credential:
    """Represents an OAuth bearer credential with its expiration timestamp."""

    access_token: str | None
    refresh_token: str | None = None
    expire_at: datetime | None = None

    @property
    def expires_in_seconds(self) -> float | None:
        """Return the remaining lifetime, or None when the expiry is unknown."""
        if self.expire_at is None:
            return None
        return (self.expire_at - datetime.now(UTC)).total_seconds()


class ValueKind(Enum):
    """Typed representation of a resource value."""

    STRING = "string"
    INT = "int"
    BOOL = "bool"
    DOUBLE = "double"
    LONG = "long"
    SHORT = "short"
    BYTE = "byte"
    BYTE_ARRAY = "byte_array"


class ResourceCategory(Enum):
    """Where a resource lives in the appliance API."""

    SETTING = "settings"
    STATUS = "status"
    PROGRAM_AVAILABLE = "program_available"
    PROGRAM_ACTIVE = "program_active"
    PROGRAM_SELECTED = "program_selected"
    PROGRAM_ACTIVE_OPTION = "program_active_option"
    EVENT = "event"


@dataclass(frozen=True)
class Resource:
    """A named, typed attribute of an appliance."""

    name: str
    category: ResourceCategory
    key: str
    value_kind: ValueKind
    appliance_types: frozenset[str] = frozenset()

    def applies_to(self, appliance_type: str | None) -> bool:
        """Return True if the resource is relevant for the appliance type."""
        return not self.appliance_types or appliance_type in self.appliance_types


def _raw_from_json(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


@dataclass(frozen=True)
class Value:
    """Untyped wire payload: a key, an optional raw value and an optional unit.

    Typed accessors fall back to zero or False when the raw value is absent
    and raise ParseError when a present value is malformed.
    """

    key: str
    raw_value: str | None = None
    unit: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Value:
        """Build a value from a ``{"key", "value", "unit"}`` JSON object."""
        try:
            key = data["key"]
        except (KeyError, TypeError) as err:
            error_msg = f"Value object without key: {data!r}"
            raise ParseError(error_msg) from err
        return cls(
            key=str(key),
            raw_value=_raw_from_json(data.get("value")),
            unit=_raw_from_json(data.get("unit")),
        )

    def _as_number(self) -> float:
        try:
            return float(self.raw_value)
        except (TypeError, ValueError) as err:
            error_msg = f"Value of {self.key} is not numeric: {self.raw_value!r}"
            raise ParseError(error_msg) from err

    def _as_integer(self) -> int:
        try:
            return int(self._as_number())
        except (OverflowError, ValueError) as err:
            error_msg = f"Value of {self.key} is not finite: {self.raw_value!r}"
            raise ParseError(error_msg) from err

    def _as_ranged_int(self, bounds: tuple[int, int]) -> int:
        number = self._as_integer()
        if not bounds[0] <= number <= bounds[1]:
            error_msg = f"Value of {self.key} out of range: {self.raw_value!r}"
            raise ParseError(error_msg)
        return number

    def as_string(self) -> str | None:
        return self.raw_value

    def as_int(self) -> int:
        if self.raw_value is None:
            return 0
        return self._as_integer()

    def as_long(self) -> int:
        return self.as_int()

    def as_short(self) -> int:
        if self.raw_value is None:
            return 0
        return self._as_ranged_int(_SHORT_RANGE)

    def as_double(self) -> float:
        if self.raw_value is None:
            return 0.0
        return self._as_number()

    def as_bool(self) -> bool:
        if self.raw_value is None:
            return False
        lowered = self.raw_value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        error_msg = f"Value of {self.key} is not a boolean: {self.raw_value!r}"
        raise ParseError(error_msg)

    def as_byte(self) -> int:
        """Return the first byte of the raw value, as the wire format does."""
        if self.raw_value is None:
            return 0
        encoded = self.raw_value.encode("utf-8")
        if not encoded:
            error_msg = f"Value of {self.key} is empty"
            raise ParseError(error_msg)
        return encoded[0]

    def as_bytes(self) -> bytes:
        if self.raw_value is None:
            return b""
        return self.raw_value.encode("utf-8")

    def as_kind(self, kind: ValueKind) -> Any:
        """Convert the raw value to the Python type of the given value kind."""
        converters = {
            ValueKind.STRING: self.as_string,
            ValueKind.INT: self.as_int,
            ValueKind.BOOL: self.as_bool,
            ValueKind.DOUBLE: self.as_double,
            ValueKind.LONG: self.as_long,
            ValueKind.SHORT: self.as_short,
            ValueKind.BYTE: self.as_byte,
            ValueKind.BYTE_ARRAY: self.as_bytes,
        }
        return converters[kind]()


class DiagnosticLog(Generic[T]):
    """Bounded, append-only history kept for inspection.

    The oldest entry is evicted once capacity is reached. Appends and
    snapshots may come from any thread.
    """

    def __init__(self, capacity: int, history: list[T] | None = None) -> None:
        self._entries: deque[T] = deque(history or (), maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, entry: T) -> None:
        with self._lock:
            self._entries.append(entry)

    def snapshot(self) -> list[T]:
        """Return the entries, oldest first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def format_json_body(body: str | None) -> str | None:
    """Pretty-print a JSON body, returning anything else unchanged."""
    if not body:
        return body
    try:
        return json.dumps(json.loads(body), indent=2)
    except ValueError:
        return body


@dataclass(frozen=True)
class HttpRequestSnapshot:
    url: str
    method: str
    headers: dict[str, str]
    body: str | None = None


@dataclass(frozen=True)
class HttpResponseSnapshot:
    code: int
    headers: dict[str, str]
    body: str | None = None


@dataclass(frozen=True)
class ApiRequestRecord:
    """One request/response exchange retained in the request log."""

    timestamp: datetime
    ha_id: str | None
    request: HttpRequestSnapshot
    response: HttpResponseSnapshot | None


class EventKind(Enum):
    """Kinds of events delivered by the event stream."""

    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"
    KEEP_ALIVE = "KEEP-ALIVE"
    NOTIFY = "NOTIFY"
    STATUS_CHANGE = "STATUS"
    SETTING_CHANGE = "SETTING"


@dataclass(frozen=True)
class EventRecord:
    """A single event pushed by the appliance event stream."""

    ha_id: str
    kind: EventKind
    key: str | None = None
    value: str | None = None
    unit: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_value(self) -> Value | None:
        """Return the event payload as a wire value, if it carries one."""
        if self.key is None:
            return None
        return Value(key=self.key, raw_value=self.value, unit=self.unit)


@dataclass(frozen=True)
class Program:
    key: str
    options: tuple[Value, ...] = ()

    def option(self, key: str) -> Value | None:
        """Return the option with the given key, if the program has it."""
        for option in self.options:
            if option.key.lower() == key.lower():
                return option
        return None


@dataclass(frozen=True)
class AvailableProgram:
    key: str
    available: bool
    execution: str


@dataclass(frozen=True)
class ProgramOption:
    key: str
    allowed_values: tuple[str, ...] = ()


@dataclass(frozen=True)
class HomeAppliance:
    """Represents a Home Connect appliance paired with the account."""

    ha_id: str
    name: str
    brand: str
    vib: str
    connected: bool
    type: str
    enumber: str


class ChannelFlag(Enum):
    """Quality flag attached to a channel record."""

    VALID = "valid"
    NO_VALUE_RECEIVED_YET = "no_value_received_yet"
    UNSUPPORTED = "unsupported"
    READ_FAILURE = "read_failure"
    APPLIANCE_OFFLINE = "appliance_offline"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class ChannelRecord:
    """A typed value delivered to the sink for one channel."""

    channel_id: str
    value: Any
    timestamp: datetime
    flag: ChannelFlag = ChannelFlag.VALID


@dataclass
class Channel:
    """Per-channel configuration supplied by the host, plus its last record."""

    channel_id: str
    ha_id: str
    resource: Resource
    flag: ChannelFlag = ChannelFlag.NO_VALUE_RECEIVED_YET
    record: ChannelRecord | None = None

    def matches(self, key: str) -> bool:
        return self.resource.key.lower() == key.lower()

    def update(self, value: Value, timestamp: datetime) -> ChannelRecord:
        """Convert the wire value to the channel's type and store it."""
        self.record = ChannelRecord(
            channel_id=self.channel_id,
            value=value.as_kind(self.resource.value_kind),
            timestamp=timestamp,
        )
        self.flag = ChannelFlag.VALID
        return self.record
