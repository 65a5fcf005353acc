"""
Unit tests for TXT record interpretation.
"""
import pytest

from lanscope.models.common import RecordCategory
from lanscope.records import (
    EMPTY_VALUE,
    RecordInterpreter,
    categorize,
    describe_records,
    interpret,
    interpret_value,
    readable_key,
)


@pytest.mark.parametrize("key,expected", [
    ("fn", RecordCategory.IDENTITY),
    ("MD", RecordCategory.IDENTITY),
    ("fw", RecordCategory.VERSION),
    ("pw", RecordCategory.NETWORK),
    ("sf", RecordCategory.STATUS),
    ("pdl", RecordCategory.CAPABILITIES),
    ("rp", RecordCategory.CONFIGURATION),
    ("something_else", RecordCategory.OTHER),
])
def test_categorize(key, expected):
    """Each key lands in exactly one category; unknown keys go to Other."""
    assert categorize(key) == expected


def test_readable_key():
    """Known abbreviations are expanded and unknown keys are title-cased."""
    assert readable_key("fn") == "Friendly Name"
    assert readable_key("FN") == "Friendly Name"
    assert readable_key("usb_mfg") == "USB Manufacturer"
    assert readable_key("custom_setting") == "Custom Setting"
    assert readable_key("zz") == "Zz"


def test_empty_value():
    assert interpret_value("fn", "") == EMPTY_VALUE
    assert interpret_value("sf", "") == EMPTY_VALUE


def test_boolean_readings():
    """Boolean tokens are recognised case-insensitively for boolean keys only."""
    assert interpret_value("pw", "true") == "Password required"
    assert interpret_value("pw", "F") == "No password required"
    assert interpret_value("pw", "0") == "No password required"
    assert interpret_value("color", "T") == "Color printing supported"
    assert interpret_value("duplex", "no") == "Single-sided only"
    assert interpret_value("scan", "1") == "Supported"
    # Not a boolean token: falls through to the raw value.
    assert interpret_value("pw", "maybe") == "maybe"
    # '1' for a non-boolean key is not read as a boolean.
    assert interpret_value("act", "1") == "Active"


def test_enumerated_values():
    """Enumerated codes map to text; unknown codes come back unchanged."""
    assert interpret_value("act", "2") == "Processing"
    assert interpret_value("act", "9") == "9"
    assert interpret_value("acl", "0") == "Public (no restrictions)"
    assert interpret_value("ci", "17") == "IP Camera"
    assert interpret_value("et", "0") == "No encryption"
    assert interpret_value("tp", "UDP") == "UDP (User Datagram Protocol)"
    assert interpret_value("papermax", "A4") == "A4 (210mm × 297mm)"


def test_hex_flags():
    """Hex masks list the labels of the set bits after the raw value."""
    assert interpret_value("sf", "0x05") == "0x05 (Ready, Configured)"
    assert interpret_value("flags", "0x05") == "0x05 (Ready, Configured)"
    assert interpret_value("flags", "8") == "8 (Supports Remote Access)"
    assert interpret_value("sf", "0x00") == "0x00"
    assert interpret_value("sf", "not-hex") == "not-hex"


def test_custom_flag_table():
    """Flag labels come from the interpreter's own table."""
    interpreter = RecordInterpreter(flag_labels={4: "Muted"}, flag_keys=["st"])
    assert interpreter.interpret_value("st", "0x10") == "0x10 (Muted)"
    # 'sf' is no longer a flag key for this interpreter.
    assert interpreter.interpret_value("sf", "0x10") == "0x10"


def test_pdl_list():
    """Document formats lose their MIME prefix and map to names."""
    value = "application/pdf,image/urf, application/vnd.hp-PCL,application/x-custom"
    assert interpret_value("pdl", value) == (
        "PDF Direct, URF (AirPrint), PCL (HP Printer Language), application/x-custom"
    )


def test_raw_passthrough():
    assert interpret_value("fn", "Office Printer") == "Office Printer"
    assert interpret("note", "2nd floor") == ("Location/Note", "2nd floor")


def test_describe_records_groups_and_orders():
    """Groups follow category order, keys sort case-insensitively, empty groups are omitted."""
    grouped = describe_records({
        "pw": "false",
        "fn": "Kitchen",
        "MD": "HomePod",
        "zeta": "1",
        "Alpha": "x",
    })

    assert list(grouped) == [RecordCategory.IDENTITY, RecordCategory.NETWORK, RecordCategory.OTHER]
    assert grouped[RecordCategory.IDENTITY] == [
        ("fn", "Friendly Name", "Kitchen"),
        ("MD", "Model", "HomePod"),
    ]
    assert grouped[RecordCategory.NETWORK] == [("pw", "Password Required", "No password required")]
    assert [entry[0] for entry in grouped[RecordCategory.OTHER]] == ["Alpha", "zeta"]


def test_from_config():
    from lanscope.config import InterpreterConfig

    interpreter = RecordInterpreter.from_config(InterpreterConfig(flag_labels={1: "Paired"}))
    assert interpreter.interpret_value("sf", "0x2") == "0x2 (Paired)"
