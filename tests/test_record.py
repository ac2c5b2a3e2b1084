from dnstapflat.record import FIELD_ORDER, QUESTION_FIELDS, FlatRecord


def _base(**extra):
    fields = dict(
        query_time="t0", response_time="t1",
        query_address="192.0.2.0", query_port=1,
        response_address="198.51.100.0", response_port=53,
        response_zone="", identity="ns1", type="CLIENT_QUERY",
        socket_family="INET", socket_protocol="UDP", version="", extra="",
        rcode="NOERROR", aa=False, tc=False, rd=True, ra=False, ad=False, cd=False,
    )
    fields.update(extra)
    return FlatRecord(**fields)


def test_absent_fields_are_omitted():
    d = _base().to_dict()
    for key in QUESTION_FIELDS + ("@timestamp",):
        assert key not in d
    assert d["aa"] is False


def test_output_names_and_order():
    rec = _base(qname="example.com.", qclass="IN", qtype="A", tld="com", sld="example.com",
                third_ld="example.com.", fourth_ld="example.com.", message_size=29, txid=7, timestamp="t0")
    d = rec.to_dict()
    assert list(d) == [key for key, _ in FIELD_ORDER]
    assert d["2ld"] == "example.com"
    assert rec.get("@timestamp") == "t0"
    assert rec.get("missing", "x") == "x"
