"""Location QR code strings.

Format: ORG-BUILDING[-LOCATION]-<7 char id>, e.g. PROS-BLD1-F3T1-x7k2m9p
"""

import secrets
import string
from typing import Optional

UNIQUE_ID_LENGTH = 7
_ALPHABET = string.ascii_letters + string.digits


def _unique_id() -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(UNIQUE_ID_LENGTH))


def generate_location_qr_code(
    organization_code: str,
    building_code: str,
    location_code: Optional[str] = None,
) -> str:
    parts = [organization_code.strip().upper(), building_code.strip().upper()]
    if location_code and location_code.strip():
        parts.append(location_code.strip().upper())
    parts.append(_unique_id())
    return "-".join(parts)


def parse_qr_code(qr_code: str) -> Optional[dict[str, str]]:
    """Split a QR code into its parts; None when it has fewer than three."""
    parts = qr_code.split("-")
    if len(parts) < 3:
        return None

    parsed = {
        "organizationCode": parts[0],
        "buildingCode": parts[1],
        "uniqueId": parts[-1],
    }
    if len(parts) >= 4:
        parsed["locationCode"] = parts[2]
    return parsed


def is_valid_qr_code(qr_code: str) -> bool:
    parsed = parse_qr_code(qr_code)
    return parsed is not None and len(parsed["uniqueId"]) == UNIQUE_ID_LENGTH


def get_organization_code_from_qr(qr_code: str) -> Optional[str]:
    parsed = parse_qr_code(qr_code)
    return parsed["organizationCode"] if parsed else None


def get_building_code_from_qr(qr_code: str) -> Optional[str]:
    parsed = parse_qr_code(qr_code)
    return parsed["buildingCode"] if parsed else None


def format_qr_code_for_display(qr_code: str) -> str:
    """PROS-BLD1-F3T1-x7k2m9p -> PROS - BLD1 - F3T1 - x7k2m9p"""
    return qr_code.replace("-", " - ")


def generate_bulk_qr_codes(
    organization_code: str,
    building_code: str,
    count: int,
    location_code_prefix: Optional[str] = None,
    existing_codes: Optional[set[str]] = None,
) -> list[str]:
    """Generate `count` distinct codes, none of which collide with existing_codes.

    With a prefix, location codes are prefix + 01, 02, ...
    """
    taken = set(existing_codes or ())
    codes: list[str] = []
    while len(codes) < count:
        location_code = (
            f"{location_code_prefix}{len(codes) + 1:02d}" if location_code_prefix else None
        )
        code = generate_location_qr_code(organization_code, building_code, location_code)
        if code not in taken:
            codes.append(code)
            taken.add(code)
    return codes
