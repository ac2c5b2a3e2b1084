"""Read-only settings for the flattening transformation."""
from __future__ import annotations

import dataclasses
import socket

from .anonymize import prefix_mask

DEFAULT_IPV4_MASK = 24
DEFAULT_IPV6_MASK = 48


def default_identity() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return ""


@dataclasses.dataclass(frozen=True)
class FlattenConfig:
    """Network prefix lengths for anonymization and the fallback identity.

    Build once before processing starts and share it across workers; it is
    never mutated.
    """

    ipv4_mask: int = DEFAULT_IPV4_MASK
    ipv6_mask: int = DEFAULT_IPV6_MASK
    fallback_identity: str = dataclasses.field(default_factory=default_identity)
    ipv4_mask_bytes: bytes = dataclasses.field(init=False, repr=False)
    ipv6_mask_bytes: bytes = dataclasses.field(init=False, repr=False)

    def __post_init__(self):
        # frozen: set derived fields through object.__setattr__
        object.__setattr__(self, "ipv4_mask_bytes", prefix_mask(self.ipv4_mask, 4))
        object.__setattr__(self, "ipv6_mask_bytes", prefix_mask(self.ipv6_mask, 6))

    @classmethod
    def from_args(cls, args) -> "FlattenConfig":
        kwargs = {
            "ipv4_mask": getattr(args, "ipv4_mask", None),
            "ipv6_mask": getattr(args, "ipv6_mask", None),
            "fallback_identity": getattr(args, "identity", None),
        }
        return cls(**{k: v for k, v in kwargs.items() if v is not None})
