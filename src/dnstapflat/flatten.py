"""Flatten one dnstap envelope into a FlatRecord.

Selector -> wire decoder -> {anonymizer, label deriver} -> assembler.
The whole thing is a pure function of the envelope and the config; it
does no I/O and keeps no state between calls, so it can run from any
number of workers at once.
"""
from __future__ import annotations

import typing as t

from .anonymize import mask_address
from .config import FlattenConfig
from .decoder import DecodeFailure, decode_message, decode_zone, qclass_to_text, qtype_to_text, rcode_to_text
from .envelope import DnstapEnvelope, Message, enum_name
from .labels import derive_labels
from .record import FlatRecord
from .timestamps import format_time, select_timestamp


def select_payload(message: Message) -> bytes:
    """The query message when present, otherwise the response message."""
    if message.query_message:
        return message.query_message
    return message.response_message or b""


def _payload_source(message: Message) -> str:
    return "query_message" if message.query_message else "response_message"


def _text(value: t.Optional[bytes]) -> str:
    if not value:
        return ""
    return value.decode("utf-8", errors="replace")


def resolve_identity(identity: t.Optional[bytes], fallback: str) -> str:
    text = _text(identity)
    if text == "":
        return fallback
    return text


def flatten_dnstap(envelope: DnstapEnvelope, config: FlattenConfig) -> FlatRecord:
    """Build the flat record for `envelope`.

    Raises DecodeFailure (naming the payload that failed) when the selected
    DNS payload does not parse; no partial record is ever returned.
    """
    msg = envelope.message
    payload = select_payload(msg)
    try:
        dns = decode_message(payload)
    except DecodeFailure as e:
        source = _payload_source(msg)
        preview = payload[:16].hex()
        raise DecodeFailure(
            f"can't parse dns message from {source} ({len(payload)} bytes, starts {preview!r}): {e}",
            payload_source=source,
            payload=payload,
        ) from e

    query_time = format_time(msg.query_time_sec, msg.query_time_nsec)
    response_time = format_time(msg.response_time_sec, msg.response_time_nsec)

    question_fields: dict[str, t.Any] = {}
    if dns.questions:
        q = dns.questions[0]
        lbl = derive_labels(q.name)
        question_fields = {
            "qname": q.name,
            "qclass": qclass_to_text(q.qclass),
            "qtype": qtype_to_text(q.qtype),
            "tld": lbl["tld"],
            "sld": lbl["2ld"],
            "third_ld": lbl["3ld"],
            "fourth_ld": lbl["4ld"],
            "message_size": len(payload),
            "txid": dns.txid,
        }

    return FlatRecord(
        query_time=query_time,
        response_time=response_time,
        query_address=mask_address(msg.query_address, config.ipv4_mask_bytes, config.ipv6_mask_bytes),
        query_port=msg.query_port,
        response_address=mask_address(msg.response_address, config.ipv4_mask_bytes, config.ipv6_mask_bytes),
        response_port=msg.response_port,
        response_zone=decode_zone(msg.query_zone),
        identity=resolve_identity(envelope.identity, config.fallback_identity),
        type=enum_name(msg.type),
        socket_family=enum_name(msg.socket_family),
        socket_protocol=enum_name(msg.socket_protocol),
        version=_text(envelope.version),
        extra=_text(envelope.extra),
        rcode=rcode_to_text(dns.rcode),
        aa=dns.aa,
        tc=dns.tc,
        rd=dns.rd,
        ra=dns.ra,
        ad=dns.ad,
        cd=dns.cd,
        timestamp=select_timestamp(msg.type, query_time, response_time),
        **question_fields,
    )


def flatten_to_dict(envelope: DnstapEnvelope, config: FlattenConfig) -> dict[str, t.Any]:
    return flatten_dnstap(envelope, config).to_dict()
