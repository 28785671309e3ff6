import csv
import io
from datetime import date, datetime
from typing import Iterable, Mapping, Optional

from exco_nominations.config import POSITIONS

CSV_HEADER = ["Voter Name"] + [position.label for position in POSITIONS] + ["Submitted At"]


def _format_submitted_at(value) -> str:
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    return "" if value is None else str(value)


def nominations_to_csv(nominations: Iterable[Mapping]) -> str:
    """One row per ballot. Embedded commas, quotes and newlines are quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(CSV_HEADER)
    for nomination in nominations:
        writer.writerow(
            [nomination.get("voter_name", "")]
            + [nomination.get(position.value, "") for position in POSITIONS]
            + [_format_submitted_at(nomination.get("submitted_at"))]
        )
    return buffer.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"exco_nominations_{today.isoformat()}.csv"
