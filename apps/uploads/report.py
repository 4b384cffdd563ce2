from typing import List

SUCCESS = "SUCCESS"
STATUS_COLUMN = "status/error"
MALFORMED_MARKER = "--- The following rows could not be parsed ---"


def _cell(value) -> str:
    if value is None:
        return ""
    return str(value).replace("\t", " ").replace("\r", " ").replace("\n", " ")


def build_report(headers: List[str], rows, malformed: List[str]) -> bytes:
    """
    Header, one line per candidate row (original cells + status), then the
    rows that never parsed, behind a marker line.
    """
    lines = ["\t".join(_cell(h) for h in [*headers, STATUS_COLUMN])]

    for row in rows:
        lines.append("\t".join(_cell(c) for c in [*row.cells, row.status]))

    if malformed:
        lines.append("")
        lines.append(MALFORMED_MARKER)
        lines.extend(_cell(error) for error in malformed)

    return ("\n".join(lines) + "\n").encode("utf-8")
