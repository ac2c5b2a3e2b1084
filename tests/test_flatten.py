import pytest

from dnstapflat.config import FlattenConfig
from dnstapflat.decoder import DecodeFailure
from dnstapflat.envelope import DnstapEnvelope, Message, MessageType, SocketFamily
from dnstapflat.flatten import flatten_dnstap, flatten_to_dict, resolve_identity, select_payload
from dnstapflat.record import QUESTION_FIELDS
from tests.utils_dns import build_dns, encode_labels, encode_name, make_envelope


def test_end_to_end_client_query(config):
    env = make_envelope(
        mtype=MessageType.CLIENT_QUERY,
        query_message=build_dns("a.b.example.org.", qtype=1, txid=4242),
        query_address="192.0.2.55",
        query_zone=encode_name("example.org."),
    )
    rec = flatten_to_dict(env, config)
    assert rec["type"] == "CLIENT_QUERY"
    assert rec["query_address"] == "192.0.2.0"
    assert rec["response_address"] == "198.51.100.0"
    assert rec["qname"] == "a.b.example.org."
    assert rec["tld"] == "org"
    assert rec["2ld"] == "example.org"
    assert rec["3ld"] == "b.example.org"
    assert rec["4ld"] == "a.b.example.org"
    assert rec["@timestamp"] == rec["query_time"] == "2023-11-14T22:13:20.123456789Z"
    assert rec["response_time"] == "2023-11-14T22:13:21.5Z"
    assert rec["qclass"] == "IN"
    assert rec["qtype"] == "A"
    assert rec["txid"] == 4242
    assert rec["message_size"] == len(env.message.query_message)
    assert rec["rcode"] == "NOERROR"
    assert rec["rd"] is True and rec["aa"] is False
    assert rec["socket_family"] == "INET"
    assert rec["socket_protocol"] == "UDP"
    assert rec["query_port"] == 53000
    assert rec["response_port"] == 53
    assert rec["response_zone"] == "example.org."
    assert rec["identity"] == "ns1.example.net"
    assert rec["version"] == "BIND 9.18"
    assert rec["extra"] == ""


def test_field_order_is_stable(config):
    keys = list(flatten_to_dict(make_envelope(), config))
    assert keys[:2] == ["query_time", "response_time"]
    assert keys[-1] == "@timestamp"


@pytest.mark.parametrize("mtype", [m for m in MessageType if m.name.endswith("_QUERY")])
def test_query_types_stamp_query_time(config, mtype):
    rec = flatten_to_dict(make_envelope(mtype=mtype), config)
    assert rec["@timestamp"] == rec["query_time"]


@pytest.mark.parametrize("mtype", [m for m in MessageType if m.name.endswith("_RESPONSE")])
def test_response_types_stamp_response_time(config, mtype):
    rec = flatten_to_dict(make_envelope(mtype=mtype), config)
    assert rec["@timestamp"] == rec["response_time"]


def test_unmapped_type_omits_timestamp(config):
    rec = flatten_to_dict(make_envelope(mtype=13), config)
    assert "@timestamp" not in rec
    assert rec["type"] == "13"


@pytest.mark.parametrize("identity", [None, b""])
def test_identity_fallback(identity):
    cfg = FlattenConfig(fallback_identity="resolver-7.local")
    rec = flatten_to_dict(make_envelope(identity=identity), cfg)
    assert rec["identity"] == "resolver-7.local"


def test_resolve_identity():
    assert resolve_identity(b"ns1", "fallback") == "ns1"
    assert resolve_identity(None, "fallback") == "fallback"
    assert resolve_identity(b"", "") == ""


def test_select_payload_prefers_query():
    q, r = build_dns("q.example.", txid=1), build_dns("r.example.", txid=2)
    msg = Message(type=MessageType.CLIENT_RESPONSE, query_message=q, response_message=r)
    assert select_payload(msg) == q
    msg = Message(type=MessageType.CLIENT_RESPONSE, response_message=r)
    assert select_payload(msg) == r
    assert select_payload(Message(type=MessageType.CLIENT_RESPONSE)) == b""


def test_query_payload_wins_in_record(config):
    env = make_envelope(
        mtype=MessageType.RESOLVER_RESPONSE,
        query_message=build_dns("q.example.com.", txid=1),
        response_message=build_dns("r.example.net.", txid=2, flags=0x8180),
    )
    rec = flatten_to_dict(env, config)
    assert rec["qname"] == "q.example.com."
    assert rec["txid"] == 1


def test_response_only_envelope(config):
    resp = build_dns("www.example.com.", qtype=28, flags=0x8180 | 3)
    env = make_envelope(mtype=MessageType.AUTH_RESPONSE, query_message=b"", response_message=resp)
    rec = flatten_to_dict(env, config)
    assert rec["qtype"] == "AAAA"
    assert rec["rcode"] == "NXDOMAIN"
    assert rec["ra"] is True
    assert rec["message_size"] == len(resp)
    assert rec["@timestamp"] == rec["response_time"]


def test_both_payloads_empty_is_decode_failure(config):
    env = make_envelope(query_message=b"", response_message=b"")
    with pytest.raises(DecodeFailure) as exc:
        flatten_dnstap(env, config)
    assert exc.value.payload_source == "response_message"
    assert "can't parse dns message" in str(exc.value)


def test_malformed_query_names_source(config):
    env = make_envelope(query_message=b"\xde\xad\xbe")
    with pytest.raises(DecodeFailure) as exc:
        flatten_dnstap(env, config)
    assert exc.value.payload_source == "query_message"
    assert exc.value.payload == b"\xde\xad\xbe"
    assert "deadbe" in str(exc.value)
    assert isinstance(exc.value.__cause__, DecodeFailure)


def test_no_question_omits_question_fields(config):
    env = make_envelope(query_message=build_dns(with_question=False))
    rec = flatten_to_dict(env, config)
    for key in QUESTION_FIELDS:
        assert key not in rec
    assert rec["rcode"] == "NOERROR"
    assert "@timestamp" in rec


def test_short_name_label_fallback(config):
    rec = flatten_to_dict(make_envelope(query_message=build_dns("com.")), config)
    assert rec["tld"] == "com"
    assert rec["4ld"] == "com."


def test_ipv6_addresses(config):
    env = make_envelope(
        family=SocketFamily.INET6,
        query_address="2001:db8:1234:5678::1",
        response_address="2001:db8:ffff:1::53",
    )
    rec = flatten_to_dict(env, config)
    assert rec["socket_family"] == "INET6"
    assert rec["query_address"] == "2001:db8:1234::"
    assert rec["response_address"] == "2001:db8:ffff::"


def test_missing_addresses_render_empty(config):
    rec = flatten_to_dict(make_envelope(query_address=None, response_address=None), config)
    assert rec["query_address"] == ""
    assert rec["response_address"] == ""


def test_envelope_is_not_mutated(config):
    env = make_envelope()
    before = repr(env)
    flatten_dnstap(env, config)
    assert repr(env) == before


def test_far_future_time_is_formatted(config):
    env = make_envelope(mtype=MessageType.CLIENT_QUERY, query_time_sec=2**40)
    rec = flatten_to_dict(env, config)
    assert rec["query_time"].startswith("36812-")
    assert rec["@timestamp"] == rec["query_time"]


def test_binary_label_still_yields_record(config):
    wire = encode_labels([b"\xff", b"example"])
    rec = flatten_to_dict(make_envelope(query_message=build_dns(qname_wire=wire)), config)
    assert rec["qname"] == "\\255.example."
    assert rec["tld"] == "example"
    assert rec["2ld"] == "\\255.example"


def test_dotted_label_in_record(config):
    wire = encode_labels([b"a.b", b"example", b"com"])
    rec = flatten_to_dict(make_envelope(query_message=build_dns(qname_wire=wire)), config)
    assert rec["qname"] == "a\\.b.example.com."
    assert rec["3ld"] == "a\\.b.example.com"


def test_unset_socket_fields_render_mnemonics(config):
    env = DnstapEnvelope(message=Message(type=MessageType.AUTH_QUERY, query_message=build_dns()))
    rec = flatten_to_dict(env, config)
    assert rec["socket_family"] == "INET"
    assert rec["socket_protocol"] == "UDP"
    assert rec["identity"] == "collector-01"
