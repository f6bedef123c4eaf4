"""Location QR code generation and parsing."""

from toiletcheck_api.utils.qr_codes import (
    format_qr_code_for_display,
    generate_bulk_qr_codes,
    generate_location_qr_code,
    get_building_code_from_qr,
    get_organization_code_from_qr,
    is_valid_qr_code,
    parse_qr_code,
)


def test_generated_code_shape():
    code = generate_location_qr_code(" pros ", "bld1", "f3t1")
    parts = code.split("-")

    assert parts[:3] == ["PROS", "BLD1", "F3T1"]
    assert len(parts[3]) == 7
    assert is_valid_qr_code(code)


def test_generated_code_without_location():
    code = generate_location_qr_code("PROS", "BLD1")
    assert len(code.split("-")) == 3
    assert is_valid_qr_code(code)


def test_parse_three_and_four_parts():
    assert parse_qr_code("PROS-BLD1-x7k2m9p") == {
        "organizationCode": "PROS",
        "buildingCode": "BLD1",
        "uniqueId": "x7k2m9p",
    }
    assert parse_qr_code("PROS-BLD1-F3T1-x7k2m9p")["locationCode"] == "F3T1"


def test_too_few_parts_is_invalid():
    assert parse_qr_code("PROS-x7k2m9p") is None
    assert not is_valid_qr_code("PROS-x7k2m9p")
    assert get_organization_code_from_qr("nope") is None


def test_unique_id_length_is_checked():
    assert not is_valid_qr_code("PROS-BLD1-short")


def test_code_accessors_and_display():
    code = "PROS-BLD1-F3T1-x7k2m9p"
    assert get_organization_code_from_qr(code) == "PROS"
    assert get_building_code_from_qr(code) == "BLD1"
    assert format_qr_code_for_display(code) == "PROS - BLD1 - F3T1 - x7k2m9p"


def test_bulk_codes_are_unique_and_numbered():
    codes = generate_bulk_qr_codes("PROS", "BLD1", 12, "T")

    assert len(set(codes)) == 12
    assert [parse_qr_code(c)["locationCode"] for c in codes[:3]] == ["T01", "T02", "T03"]
    assert parse_qr_code(codes[-1])["locationCode"] == "T12"
