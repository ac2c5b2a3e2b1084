"""DNS wire decoding on top of dpkt, plus mnemonic tables for the record."""
from __future__ import annotations

import dataclasses
import struct
import typing as t

import dpkt

# header flag bits (RFC 1035, RFC 4035)
FLAG_AA = 0x0400
FLAG_TC = 0x0200
FLAG_RD = 0x0100
FLAG_RA = 0x0080
FLAG_AD = 0x0020
FLAG_CD = 0x0010

TYPE_OPT = 41

RCODES = {
    0: "NOERROR",
    1: "FORMERR",
    2: "SERVFAIL",
    3: "NXDOMAIN",
    4: "NOTIMP",
    5: "REFUSED",
    6: "YXDOMAIN",
    7: "YXRRSET",
    8: "NXRRSET",
    9: "NOTAUTH",
    10: "NOTZONE",
    16: "BADSIG",
    17: "BADKEY",
    18: "BADTIME",
    19: "BADMODE",
    20: "BADNAME",
    21: "BADALG",
    22: "BADTRUNC",
    23: "BADCOOKIE",
}

CLASSES = {
    1: "IN",
    3: "CH",
    4: "HS",
    254: "NONE",
    255: "ANY",
}

TYPES = {
    1: "A",
    2: "NS",
    3: "MD",
    4: "MF",
    5: "CNAME",
    6: "SOA",
    7: "MB",
    8: "MG",
    9: "MR",
    10: "NULL",
    12: "PTR",
    13: "HINFO",
    14: "MINFO",
    15: "MX",
    16: "TXT",
    17: "RP",
    18: "AFSDB",
    19: "X25",
    20: "ISDN",
    21: "RT",
    23: "NSAPPTR",
    24: "SIG",
    25: "KEY",
    26: "PX",
    27: "GPOS",
    28: "AAAA",
    29: "LOC",
    30: "NXT",
    31: "EID",
    32: "NIMLOC",
    33: "SRV",
    34: "ATMA",
    35: "NAPTR",
    36: "KX",
    37: "CERT",
    39: "DNAME",
    41: "OPT",
    42: "APL",
    43: "DS",
    44: "SSHFP",
    45: "IPSECKEY",
    46: "RRSIG",
    47: "NSEC",
    48: "DNSKEY",
    49: "DHCID",
    50: "NSEC3",
    51: "NSEC3PARAM",
    52: "TLSA",
    53: "SMIMEA",
    55: "HIP",
    56: "NINFO",
    57: "RKEY",
    58: "TALINK",
    59: "CDS",
    60: "CDNSKEY",
    61: "OPENPGPKEY",
    62: "CSYNC",
    63: "ZONEMD",
    64: "SVCB",
    65: "HTTPS",
    99: "SPF",
    100: "UINFO",
    101: "UID",
    102: "GID",
    103: "UNSPEC",
    104: "NID",
    105: "L32",
    106: "L64",
    107: "LP",
    108: "EUI48",
    109: "EUI64",
    249: "TKEY",
    250: "TSIG",
    251: "IXFR",
    252: "AXFR",
    253: "MAILB",
    254: "MAILA",
    255: "ANY",
    256: "URI",
    257: "CAA",
    258: "AVC",
    32768: "TA",
    32769: "DLV",
}


class DecodeFailure(ValueError):
    """The selected DNS payload is not a valid wire-format message."""

    def __init__(self, message: str, payload_source: t.Optional[str] = None, payload: bytes = b""):
        super().__init__(message)
        self.payload_source = payload_source
        self.payload = payload


@dataclasses.dataclass(frozen=True)
class Question:
    name: str
    qtype: int
    qclass: int


@dataclasses.dataclass(frozen=True)
class DecodedDnsMessage:
    txid: int
    aa: bool
    tc: bool
    rd: bool
    ra: bool
    ad: bool
    cd: bool
    rcode: int
    questions: list[Question]


def rcode_to_text(rcode: int) -> str:
    return RCODES.get(rcode, str(rcode))


def qtype_to_text(qtype: int) -> str:
    # RFC 3597 generic form for unassigned types
    return TYPES.get(qtype, f"TYPE{qtype}")


def qclass_to_text(qclass: int) -> str:
    return CLASSES.get(qclass, f"CLASS{qclass}")


class _Header(dpkt.Packet):
    __hdr__ = (
        ("id", "H", 0),
        ("op", "H", 0),
        ("qdcount", "H", 0),
        ("ancount", "H", 0),
        ("nscount", "H", 0),
        ("arcount", "H", 0),
    )


class _QuestionTail(dpkt.Packet):
    __hdr__ = (
        ("type", "H", 0),
        ("cls", "H", 0),
    )


class _RRTail(dpkt.Packet):
    __hdr__ = (
        ("type", "H", 0),
        ("cls", "H", 0),
        ("ttl", "I", 0),
        ("rlen", "H", 0),
    )


# label bytes written with a backslash in presentation format
_SPECIAL = frozenset(b'.\\ "();@')


def unpack_labels(buf: bytes, off: int) -> tuple[list[bytes], int]:
    """Read a possibly compressed wire name starting at `off`.

    Returns the raw label bytes (root label excluded) and the offset just
    past the name. Label bytes are kept as-is; nothing is decoded.
    """
    labels: list[bytes] = []
    end = None
    seen = set()
    length = 0
    while True:
        if off >= len(buf):
            raise dpkt.NeedData("name runs past end of message")
        n = buf[off]
        if n & 0xC0 == 0xC0:
            if off + 1 >= len(buf):
                raise dpkt.NeedData("truncated compression pointer")
            ptr = ((n & 0x3F) << 8) | buf[off + 1]
            if ptr in seen:
                raise dpkt.UnpackError("compression pointer loop")
            seen.add(ptr)
            if end is None:
                end = off + 2
            off = ptr
            continue
        if n & 0xC0:
            raise dpkt.UnpackError(f"invalid label length {n:#04x}")
        off += 1
        if n == 0:
            break
        if off + n > len(buf):
            raise dpkt.NeedData("label runs past end of message")
        labels.append(buf[off:off + n])
        length += n + 1
        if length > 255:
            raise dpkt.UnpackError("name longer than 255 bytes")
        off += n
    return labels, (off if end is None else end)


def escape_label(label: bytes) -> str:
    out = []
    for b in label:
        if b in _SPECIAL:
            out.append("\\" + chr(b))
        elif 0x21 <= b <= 0x7E:
            out.append(chr(b))
        else:
            out.append(f"\\{b:03d}")
    return "".join(out)


def labels_to_text(labels: list[bytes]) -> str:
    """Fully qualified presentation form, e.g. [b"a.b", b"com"] -> "a\\.b.com."."""
    return "".join(escape_label(lb) + "." for lb in labels) or "."


_WIRE_ERRORS = (dpkt.UnpackError, struct.error)


def _decode(payload: bytes) -> DecodedDnsMessage:
    hdr = _Header(payload)
    off = hdr.__hdr_len__
    questions = []
    for _ in range(hdr.qdcount):
        labels, off = unpack_labels(payload, off)
        q = _QuestionTail(payload[off:off + _QuestionTail.__hdr_len__])
        off += q.__hdr_len__
        questions.append(Question(name=labels_to_text(labels), qtype=q.type, qclass=q.cls))

    flags = hdr.op
    rcode = flags & 0xF
    opt_seen = False
    for section, count in (("an", hdr.ancount), ("ns", hdr.nscount), ("ar", hdr.arcount)):
        for _ in range(count):
            _, off = unpack_labels(payload, off)
            rr = _RRTail(payload[off:off + _RRTail.__hdr_len__])
            off += rr.__hdr_len__ + rr.rlen
            if off > len(payload):
                raise dpkt.NeedData("rdata runs past end of message")
            if section == "ar" and rr.type == TYPE_OPT and not opt_seen:
                rcode |= ((rr.ttl >> 24) & 0xFF) << 4
                opt_seen = True

    return DecodedDnsMessage(
        txid=hdr.id,
        aa=bool(flags & FLAG_AA),
        tc=bool(flags & FLAG_TC),
        rd=bool(flags & FLAG_RD),
        ra=bool(flags & FLAG_RA),
        ad=bool(flags & FLAG_AD),
        cd=bool(flags & FLAG_CD),
        rcode=rcode,
        questions=questions,
    )


def decode_message(payload: bytes) -> DecodedDnsMessage:
    """Parse raw DNS wire bytes.

    Header, question and record framing are read with dpkt; names are
    walked here so arbitrary label bytes survive as presentation-format
    escapes (RFC 4343) instead of failing a text decode. Raises
    DecodeFailure on empty or malformed input. The rcode is widened with
    the EDNS extended-rcode bits when an OPT record is present.
    """
    if not payload:
        raise DecodeFailure("empty DNS payload", payload=b"")
    try:
        return _decode(payload)
    except _WIRE_ERRORS as e:
        raise DecodeFailure(f"malformed DNS payload: {e!r}", payload=payload) from e


def decode_zone(wire: t.Optional[bytes]) -> str:
    """Text form of a wire-format zone name; empty when absent or unparseable."""
    if not wire:
        return ""
    try:
        labels, _ = unpack_labels(wire, 0)
    except _WIRE_ERRORS:
        return ""
    return labels_to_text(labels)
