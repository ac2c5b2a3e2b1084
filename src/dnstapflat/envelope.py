"""dnstap envelope model and its proto3-JSON loader.

The capture layer hands us one decoded dnstap frame at a time. These
dataclasses mirror the dnstap protobuf (`Dnstap` + `Message`) closely
enough that a frame from any producer maps onto them without loss.
"""
from __future__ import annotations

import base64
import binascii
import dataclasses
import enum
import typing as t


class MessageType(enum.IntEnum):
    AUTH_QUERY = 1
    AUTH_RESPONSE = 2
    RESOLVER_QUERY = 3
    RESOLVER_RESPONSE = 4
    CLIENT_QUERY = 5
    CLIENT_RESPONSE = 6
    FORWARDER_QUERY = 7
    FORWARDER_RESPONSE = 8
    STUB_QUERY = 9
    STUB_RESPONSE = 10
    TOOL_QUERY = 11
    TOOL_RESPONSE = 12


class SocketFamily(enum.IntEnum):
    INET = 1
    INET6 = 2


class SocketProtocol(enum.IntEnum):
    UDP = 1
    TCP = 2


class EnvelopeError(ValueError):
    """Raised when an input frame cannot be turned into an envelope."""


@dataclasses.dataclass(frozen=True)
class Message:
    # numeric values outside the enums are kept as plain ints
    type: t.Union[MessageType, int]
    # proto2 defaults: an unset family/protocol reads as the first member
    socket_family: t.Union[SocketFamily, int] = SocketFamily.INET
    socket_protocol: t.Union[SocketProtocol, int] = SocketProtocol.UDP
    query_address: t.Optional[bytes] = None
    response_address: t.Optional[bytes] = None
    query_port: int = 0
    response_port: int = 0
    query_time_sec: int = 0
    query_time_nsec: int = 0
    query_message: bytes = b""
    query_zone: t.Optional[bytes] = None
    response_time_sec: int = 0
    response_time_nsec: int = 0
    response_message: bytes = b""


@dataclasses.dataclass(frozen=True)
class DnstapEnvelope:
    message: Message
    identity: t.Optional[bytes] = None
    version: t.Optional[bytes] = None
    extra: t.Optional[bytes] = None


def enum_name(value) -> str:
    """Mnemonic for an enum member; open values render as their number."""
    if value is None:
        return ""
    if isinstance(value, enum.Enum):
        return value.name
    return str(value)


# proto3 JSON field name -> dataclass field name
_MESSAGE_FIELDS = {
    "type": "type",
    "socketFamily": "socket_family",
    "socketProtocol": "socket_protocol",
    "queryAddress": "query_address",
    "responseAddress": "response_address",
    "queryPort": "query_port",
    "responsePort": "response_port",
    "queryTimeSec": "query_time_sec",
    "queryTimeNsec": "query_time_nsec",
    "queryMessage": "query_message",
    "queryZone": "query_zone",
    "responseTimeSec": "response_time_sec",
    "responseTimeNsec": "response_time_nsec",
    "responseMessage": "response_message",
}

_BYTES_FIELDS = {"query_address", "response_address", "query_message", "query_zone", "response_message"}
_ENUM_FIELDS = {"type": MessageType, "socket_family": SocketFamily, "socket_protocol": SocketProtocol}


def _lookup(d: dict, camel: str, snake: str):
    if camel in d:
        return d[camel]
    return d.get(snake)


def _decode_bytes(name: str, value) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise EnvelopeError(f"{name}: expected base64 string, got {type(value).__name__}")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EnvelopeError(f"{name}: invalid base64: {e}") from e


def _decode_enum(name: str, enum_cls, value):
    if isinstance(value, str) and not value.isdigit():
        try:
            return enum_cls[value]
        except KeyError:
            raise EnvelopeError(f"{name}: unknown {enum_cls.__name__} {value!r}") from None
    try:
        num = int(value)
    except (TypeError, ValueError):
        raise EnvelopeError(f"{name}: invalid enum value {value!r}") from None
    try:
        return enum_cls(num)
    except ValueError:
        # open enum: keep the number as produced
        return num


def _decode_int(name: str, value) -> int:
    # uint64 fields are strings in proto3 JSON
    try:
        return int(value)
    except (TypeError, ValueError):
        raise EnvelopeError(f"{name}: invalid integer {value!r}") from None


def message_from_dict(d: dict) -> Message:
    if not isinstance(d, dict):
        raise EnvelopeError("message: expected an object")
    kwargs: dict[str, t.Any] = {}
    for camel, snake in _MESSAGE_FIELDS.items():
        v = _lookup(d, camel, snake)
        if v is None:
            continue
        if snake in _ENUM_FIELDS:
            kwargs[snake] = _decode_enum(snake, _ENUM_FIELDS[snake], v)
        elif snake in _BYTES_FIELDS:
            kwargs[snake] = _decode_bytes(snake, v)
        else:
            kwargs[snake] = _decode_int(snake, v)
    if "type" not in kwargs:
        raise EnvelopeError("message: missing type")
    return Message(**kwargs)


def envelope_from_dict(d: dict) -> DnstapEnvelope:
    """Build an envelope from the proto3 JSON mapping of a dnstap frame.

    Accepts camelCase (canonical) or snake_case keys, base64 for bytes
    fields, enum names or numbers, and uint64 values as strings or ints.
    """
    if not isinstance(d, dict):
        raise EnvelopeError("envelope: expected an object")
    msg = d.get("message")
    if msg is None:
        raise EnvelopeError("envelope: missing message")
    kwargs: dict[str, t.Any] = {"message": message_from_dict(msg)}
    for name in ("identity", "version", "extra"):
        v = d.get(name)
        if v is not None:
            kwargs[name] = _decode_bytes(name, v)
    return DnstapEnvelope(**kwargs)
