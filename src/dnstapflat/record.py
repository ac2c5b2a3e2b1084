"""The flat, serialization-ready record produced per envelope."""
from __future__ import annotations

import dataclasses
import typing as t

# output field name -> dataclass attribute, in output order
FIELD_ORDER = (
    ("query_time", "query_time"),
    ("response_time", "response_time"),
    ("query_address", "query_address"),
    ("query_port", "query_port"),
    ("response_address", "response_address"),
    ("response_port", "response_port"),
    ("response_zone", "response_zone"),
    ("identity", "identity"),
    ("type", "type"),
    ("socket_family", "socket_family"),
    ("socket_protocol", "socket_protocol"),
    ("version", "version"),
    ("extra", "extra"),
    ("qname", "qname"),
    ("qclass", "qclass"),
    ("qtype", "qtype"),
    ("tld", "tld"),
    ("2ld", "sld"),
    ("3ld", "third_ld"),
    ("4ld", "fourth_ld"),
    ("message_size", "message_size"),
    ("txid", "txid"),
    ("rcode", "rcode"),
    ("aa", "aa"),
    ("tc", "tc"),
    ("rd", "rd"),
    ("ra", "ra"),
    ("ad", "ad"),
    ("cd", "cd"),
    ("@timestamp", "timestamp"),
)

# fields that only exist when the message carries a question
QUESTION_FIELDS = ("qname", "qclass", "qtype", "tld", "2ld", "3ld", "4ld", "message_size", "txid")


@dataclasses.dataclass(frozen=True)
class FlatRecord:
    """One flattened dnstap record.

    Optional attributes hold None when the field is absent; `to_dict()`
    leaves them out instead of emitting nulls, which is what indexers
    keyed on field presence expect.
    """

    query_time: str
    response_time: str
    query_address: str
    query_port: int
    response_address: str
    response_port: int
    response_zone: str
    identity: str
    type: str
    socket_family: str
    socket_protocol: str
    version: str
    extra: str
    rcode: str
    aa: bool
    tc: bool
    rd: bool
    ra: bool
    ad: bool
    cd: bool
    qname: t.Optional[str] = None
    qclass: t.Optional[str] = None
    qtype: t.Optional[str] = None
    tld: t.Optional[str] = None
    sld: t.Optional[str] = None
    third_ld: t.Optional[str] = None
    fourth_ld: t.Optional[str] = None
    message_size: t.Optional[int] = None
    txid: t.Optional[int] = None
    timestamp: t.Optional[str] = None

    def to_dict(self) -> dict[str, t.Any]:
        out: dict[str, t.Any] = {}
        for key, attr in FIELD_ORDER:
            v = getattr(self, attr)
            if v is None:
                continue
            out[key] = v
        return out

    def get(self, key: str, default=None):
        """Look a value up by its output field name ("2ld", "@timestamp", ...)."""
        return self.to_dict().get(key, default)
