import csv
from typing import Iterable, Iterator, TextIO

import structlog
from pydantic import ValidationError

from models import AccountSnapshot, TransactionRecord

logger = structlog.get_logger()

INPUT_FIELDS = ["type", "client", "tx", "amount"]
OUTPUT_FIELDS = ["client", "total", "available", "held", "locked"]


def read_records(stream: TextIO) -> Iterator[TransactionRecord]:
    """Parse CSV rows into transaction records.

    Cells are trimmed and the amount column may be empty or missing entirely.
    Malformed rows are logged with their line number and skipped.
    """
    reader = csv.reader(stream)
    header = next(reader, None)
    if header is None:
        return

    fields = [name.strip().lstrip("\ufeff").strip().lower() for name in header]
    missing = [name for name in INPUT_FIELDS[:3] if name not in fields]
    if missing:
        raise ValueError(f"CSV header is missing columns: {', '.join(missing)}")

    for row in reader:
        if not any(cell.strip() for cell in row):
            continue

        values = {name: cell.strip() for name, cell in zip(fields, row)}
        try:
            yield TransactionRecord.model_validate(values)
        except ValidationError as e:
            logger.warning(
                "Skipping malformed record",
                line=reader.line_num,
                row=row,
                errors=[error["msg"] for error in e.errors()]
            )


def write_accounts(stream: TextIO, snapshots: Iterable[AccountSnapshot]) -> int:
    """Write account snapshots as CSV. Returns the number of rows written."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)

    rows = 0
    for snapshot in snapshots:
        writer.writerow([
            snapshot.client,
            format(snapshot.total, "f"),
            format(snapshot.available, "f"),
            format(snapshot.held, "f"),
            str(snapshot.locked).lower(),
        ])
        rows += 1
    return rows
