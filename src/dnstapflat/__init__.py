"""Flatten dnstap envelopes into anonymized, serialization-ready records."""

from .config import FlattenConfig
from .decoder import DecodeFailure
from .envelope import DnstapEnvelope, EnvelopeError, Message, MessageType, SocketFamily, SocketProtocol, envelope_from_dict
from .flatten import flatten_dnstap, flatten_to_dict, select_payload
from .record import FlatRecord

__version__ = "0.1.0"

__all__ = [
    "DecodeFailure",
    "DnstapEnvelope",
    "EnvelopeError",
    "FlatRecord",
    "FlattenConfig",
    "Message",
    "MessageType",
    "SocketFamily",
    "SocketProtocol",
    "envelope_from_dict",
    "flatten_dnstap",
    "flatten_to_dict",
    "select_payload",
    "__version__",
]
