"""Read incident records from a CSV export."""

import csv
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from registrar.config import logger
from registrar.models.errors import ConfigurationError
from registrar.type_definitions import SourceRecord


def unique_headers(headers: Iterable[str]) -> list[str]:
    """Trim header names and number repeated ones: ``Evidencias``, ``Evidencias 2``, ..."""
    seen: dict[str, int] = {}
    result: list[str] = []
    for header in headers:
        name = header.strip()
        seen[name] = seen.get(name, 0) + 1
        result.append(name if seen[name] == 1 else f"{name} {seen[name]}")
    return result


def merge_columns(record: SourceRecord, base: str) -> None:
    """Fold ``base 2``, ``base 3``... into ``base``, one non-blank value per line."""
    pattern = re.compile(rf"^{re.escape(base)} \d+$")
    extra = sorted((key for key in record if pattern.match(key)), key=lambda key: int(key.rsplit(" ", 1)[1]))
    values = [record.get(base, "")] + [record.pop(key) for key in extra]
    record[base] = "\n".join(value.strip() for value in values if value and value.strip())


def deduplicate_records(records: Iterable[SourceRecord], title_column: str) -> list[SourceRecord]:
    """Keep the first record of each title (trimmed, case-insensitive)."""
    seen: set[str] = set()
    unique: list[SourceRecord] = []
    for record in records:
        key = (record.get(title_column) or "").strip().casefold()
        if key and key in seen:
            logger.notice("Skipping duplicate record '%s'", record.get(title_column, "").strip())
            continue
        seen.add(key)
        unique.append(record)
    return unique


class CsvRecordSource:
    """Ordered records of a CSV file with a header row."""

    def __init__(self, path: Path | str, evidence_columns: Iterable[str] = ()) -> None:
        self.path = Path(path)
        self.evidence_columns = list(evidence_columns)

    def __iter__(self) -> Iterator[SourceRecord]:
        return iter(self.read())

    def read(self) -> list[SourceRecord]:
        """Read every non-empty data row.

        Raises:
            ConfigurationError: If the file is missing or has no header row

        """
        try:
            with self.path.open("r", encoding="utf-8-sig", newline="") as csv_file:
                rows = list(csv.reader(csv_file))
        except FileNotFoundError:
            msg = f"Record file not found: {self.path}"
            raise ConfigurationError(msg) from None

        if not rows:
            msg = f"Record file {self.path} has no header row"
            raise ConfigurationError(msg)

        headers = unique_headers(rows[0])
        records: list[SourceRecord] = []
        for row in rows[1:]:
            if not any(cell.strip() for cell in row):
                continue
            record = {header: (row[i].strip() if i < len(row) else "") for i, header in enumerate(headers)}
            for base in self.evidence_columns:
                if base in record:
                    merge_columns(record, base)
            records.append(record)

        logger.info("Read %d record(s) from %s", len(records), self.path)
        return records
