"""Address anonymization by network-prefix masking."""
from __future__ import annotations

import ipaddress
import logging
import typing as t

log = logging.getLogger("dnstapflat.anonymize")

_FAMILY_BITS = {4: 32, 6: 128}


def prefix_mask(bits: int, family: int) -> bytes:
    """Mask bytes for a prefix length, e.g. prefix_mask(24, 4) == b'\\xff\\xff\\xff\\x00'."""
    total = _FAMILY_BITS.get(family)
    if total is None:
        raise ValueError(f"unsupported address family: {family}")
    if not 0 <= bits <= total:
        raise ValueError(f"IPv{family} prefix length must be between 0 and {total}, got {bits}")
    value = ((1 << bits) - 1) << (total - bits)
    return value.to_bytes(total // 8, "big")


def _apply(raw: bytes, mask: bytes) -> bytes:
    return bytes(a & m for a, m in zip(raw, mask))


def mask_address(raw: t.Optional[bytes], ipv4_mask: bytes, ipv6_mask: bytes) -> str:
    """Mask a raw address and return its canonical text form.

    Four-byte addresses take the IPv4 mask, anything else the IPv6 mask.
    An absent address, or one that fits neither family, renders as "".
    """
    if not raw:
        return ""
    if len(raw) == 4:
        return str(ipaddress.IPv4Address(_apply(raw, ipv4_mask)))
    if len(raw) != 16:
        log.debug("cannot mask %d-byte address %s", len(raw), raw.hex())
        return ""
    return str(ipaddress.IPv6Address(_apply(raw, ipv6_mask)))
