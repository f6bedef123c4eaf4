"""CSV export of inspection records.

Fields containing a comma, a double quote or a line break are quoted, with
inner quotes doubled. Rows are joined with a bare "\\n".
"""

import csv
import json
from typing import Any, Iterable, Optional

from toiletcheck_api.db.models import InspectionRecord

CSV_HEADERS = [
    "Inspection ID",
    "Date",
    "Time",
    "Submitted At",
    "Status",
    "Notes",
    "Inspector Name",
    "Email",
    "Phone",
    "Position",
    "Location",
    "Building",
    "Organization",
    "Floor",
    "Area",
    "Section",
    "Photo URLs",
    "Inspection Details",
]


def escape_csv(value: Any) -> str:
    if value is None:
        return ""
    text = str(value)
    if any(ch in text for ch in (",", '"', "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


def export_row(record: InspectionRecord) -> list[Optional[str]]:
    """Flatten one inspection (with its user, location and building) into CSV columns."""
    user = record.user
    location = record.location
    building = location.building if location else None
    organization = location.organization if location else None
    occupation = user.occupation if user else None

    return [
        record.id,
        record.inspection_date.isoformat() if record.inspection_date else None,
        record.inspection_time,
        record.submitted_at.isoformat() if record.submitted_at else None,
        record.overall_status,
        record.notes,
        user.full_name if user else None,
        user.email if user else None,
        user.phone if user else None,
        occupation.display_name if occupation else None,
        location.name if location else None,
        building.name if building else None,
        organization.name if organization else None,
        location.floor if location else None,
        location.area if location else None,
        location.section if location else None,
        ", ".join(record.photo_urls or []),
        json.dumps(record.responses, ensure_ascii=False),
    ]


def inspections_to_csv(records: Iterable[InspectionRecord]) -> str:
    """Render inspections as CSV text: header line plus one line per record."""
    lines = [",".join(CSV_HEADERS)]
    for record in records:
        lines.append(",".join(escape_csv(value) for value in export_row(record)))
    return "\n".join(lines)


def parse_csv_line(line: str) -> list[str]:
    """Split one exported CSV line back into its fields."""
    return next(csv.reader([line]), [])
