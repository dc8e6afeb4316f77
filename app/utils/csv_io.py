"""CSV helpers for voter roll uploads and admin exports."""

import csv
import io
from typing import Any

# Spreadsheet headings accepted for voter roll columns
HEADER_ALIASES = {
    "voter_id": "voter_id",
    "voterid": "voter_id",
    "voter_no": "voter_id",
    "name": "name",
    "full_name": "name",
    "region": "region",
    "phone": "phone",
    "mobile": "phone",
    "mobile_no": "phone",
    "email": "email",
    "dob": "dob",
    "date_of_birth": "dob",
    "age": "age",
}


def normalize_header(header: str) -> str:
    """Map a spreadsheet heading like ``"Mobile No"`` to a field name."""
    key = "_".join(header.strip().lower().replace(".", " ").split())
    return HEADER_ALIASES.get(key, key)


def parse_csv_rows(text: str) -> list[dict[str, Any]]:
    """
    Read CSV text into one dict per row.

    Headings are normalized; blank cells become None and fully blank lines
    are dropped.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    try:
        headers = [normalize_header(h) for h in next(reader)]
    except StopIteration:
        return []

    rows = []
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        row = {}
        for header, value in zip(headers, values):
            value = value.strip()
            row[header] = value or None
        rows.append(row)
    return rows


def flatten_row(data: dict, prefix: str = "") -> dict:
    """
    Flatten nested values for CSV export.

    Nested dicts become dotted columns and lists are joined with commas.
    """
    flattened = {}

    for key, value in data.items():
        new_key = f"{prefix}.{key}" if prefix else key

        if isinstance(value, dict):
            flattened.update(flatten_row(value, new_key))
        elif isinstance(value, list):
            flattened[new_key] = ", ".join(str(v) for v in value)
        else:
            flattened[new_key] = value

    return flattened


def rows_to_csv(rows: list[dict[str, Any]], leading: tuple[str, ...] = ()) -> str:
    """
    Convert rows to CSV text.

    Columns are sorted, with ``leading`` columns moved to the front.
    """
    if not rows:
        return ""

    output = io.StringIO()
    flattened = [flatten_row(row) for row in rows]

    all_keys: set[str] = set()
    for row in flattened:
        all_keys.update(row.keys())

    fieldnames = sorted(all_keys)
    for field in reversed(leading):
        if field in fieldnames:
            fieldnames.remove(field)
            fieldnames.insert(0, field)

    writer = csv.DictWriter(output, fieldnames=fieldnames)
    writer.writeheader()
    writer.writerows(flattened)

    return output.getvalue()
