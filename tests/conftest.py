import pytest

from dnstapflat.config import FlattenConfig


@pytest.fixture
def config():
    return FlattenConfig(ipv4_mask=24, ipv6_mask=48, fallback_identity="collector-01")
