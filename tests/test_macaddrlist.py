import pytest

from lobomq.macaddrlist import MACAddrList, format_mac, parse_mac

FIRST = bytes([0x02, 0, 0, 0, 0, 0x01])
SECOND = bytes([0x02, 0, 0, 0, 0, 0x02])


def test_format_mac_uppercase_colon_separated():
    assert format_mac(bytes([0xAA, 0xBB, 0xCC, 0xDD, 0xEE, 0xFF])) == "AA:BB:CC:DD:EE:FF"


def test_parse_format_roundtrip():
    assert format_mac(parse_mac("aa:bb:cc:dd:ee:ff")) == "AA:BB:CC:DD:EE:FF"
    assert parse_mac(format_mac(FIRST)) == FIRST


def test_parse_mac_rejects_garbage():
    with pytest.raises(ValueError):
        parse_mac("not-a-mac")


def test_format_mac_rejects_wrong_length():
    with pytest.raises(ValueError):
        format_mac(b"\x01\x02\x03")


def test_add_deduplicates_across_forms():
    macs = MACAddrList()
    assert macs.add(FIRST) is True
    assert macs.add(format_mac(FIRST)) is False
    assert macs.add(list(FIRST)) is False
    assert len(macs) == 1


def test_contains_accepts_every_form():
    macs = MACAddrList([FIRST])
    assert FIRST in macs
    assert format_mac(FIRST).lower() in macs
    assert SECOND not in macs
    assert "garbage" not in macs


def test_invalid_string_is_ignored():
    macs = MACAddrList()
    assert macs.add("zz:zz") is False
    assert len(macs) == 0


def test_extend_keeps_order_and_skips_duplicates():
    macs = MACAddrList()
    macs.extend([format_mac(SECOND), FIRST, SECOND])
    assert list(macs) == [SECOND, FIRST]


def test_remove_reports_presence():
    macs = MACAddrList([FIRST, SECOND])
    assert macs.remove(format_mac(FIRST)) is True
    assert macs.remove(FIRST) is False
    assert list(macs) == [SECOND]


def test_clear_empties_list():
    macs = MACAddrList([FIRST, SECOND])
    macs.clear()
    assert len(macs) == 0
    assert FIRST not in macs


def test_to_string_one_address_per_line():
    macs = MACAddrList([FIRST, SECOND])
    assert macs.to_string() == "02:00:00:00:00:01\n02:00:00:00:00:02\n"


def test_to_string_lines_parse_back():
    macs = MACAddrList([FIRST, SECOND])
    parsed = [parse_mac(line) for line in macs.to_string().splitlines()]
    assert parsed == list(macs)