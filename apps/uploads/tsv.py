# apps/uploads/tsv.py
"""
Structural parsing of uploaded TSV files.

Only the shape of the file is checked here (extension, size, header, column
count). Anything wrong with the file as a whole aborts the upload; a row with
the wrong number of columns is set aside as a structural error and never
becomes a candidate for business validation.
"""
import csv
from dataclasses import dataclass, field
from typing import List, Tuple

from apps.utils.exceptions import ValidationException

PRODUCT_HEADERS = ["barcode", "name", "mrp", "clientName", "category"]
INVENTORY_HEADERS = ["barcode", "quantity"]


@dataclass
class ParsedUpload:
    headers: List[str]
    # (row number in file, cells); the header is row 1
    rows: List[Tuple[int, List[str]]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def validate_file_metadata(name: str, size: int, max_size: int):
    if not size:
        raise ValidationException("File is empty. Please upload a non-empty TSV file.")
    if not name or not name.lower().endswith(".tsv"):
        raise ValidationException("Invalid file format. Only .tsv files are accepted.")
    if size > max_size:
        raise ValidationException(
            f"File size exceeds the maximum limit of {max_size // (1024 * 1024)}MB."
        )


def parse_upload(uploaded_file, expected_headers: List[str], max_size: int) -> ParsedUpload:
    validate_file_metadata(uploaded_file.name, uploaded_file.size, max_size)

    try:
        text = uploaded_file.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationException("Could not read file content: file must be UTF-8 text.")

    return parse_content(text, expected_headers)


def parse_content(text: str, expected_headers: List[str]) -> ParsedUpload:
    lines = text.splitlines()
    if not lines or not lines[0].strip():
        raise ValidationException("File is empty or does not contain a header row.")

    reader = csv.reader(lines, delimiter="\t", quoting=csv.QUOTE_NONE)
    header = next(reader)
    _validate_header(header, expected_headers)

    parsed = ParsedUpload(headers=list(expected_headers))
    expected_count = len(expected_headers)

    for row_number, cells in enumerate(reader, start=2):
        # Blank lines are ignored silently
        if not any(cell.strip() for cell in cells):
            continue

        if len(cells) != expected_count:
            parsed.errors.append(
                f"Error in row #{row_number}: Invalid number of columns. "
                f"Expected {expected_count}, but found {len(cells)}"
            )
            continue

        parsed.rows.append((row_number, cells))

    return parsed


def _validate_header(header: List[str], expected_headers: List[str]):
    actual = [h.strip().lower() for h in header]
    expected = [h.lower() for h in expected_headers]
    if actual != expected:
        raise ValidationException(
            f"Invalid file headers. Expected columns: [{', '.join(expected_headers)}], "
            f"but found: [{', '.join(header)}]"
        )
