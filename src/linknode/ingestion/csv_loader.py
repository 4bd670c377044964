"""CSV loader - one CSV file becomes one tablet."""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path

from linknode.config import Settings
from linknode.errors import IngestionError
from linknode.models.records import Bundles, Tablet

logger = logging.getLogger(__name__)


def load_csv(
    path: str | Path,
    settings: Settings,
    name: str | None = None,
    timestamp_field: str | None = None,
    multi_valued: tuple[str, ...] = (),
) -> Tablet:
    """Read a CSV file whose header row is the schema.

    Blank cells are kept blank here and resolve to the not-set sentinel.

    Args:
        path: CSV file
        settings: supplies the sentinel and the multi-value delimiter
        name: tablet name (defaults to the file stem)
        timestamp_field: column parsed as an ISO-8601 timestamp
        multi_valued: columns split on the multi-value delimiter

    Raises:
        IngestionError: the file cannot be read or a timestamp cell is not ISO-8601
    """
    path = Path(path)
    try:
        f = path.open(newline="", encoding="utf-8")
    except OSError as e:
        raise IngestionError(f"Cannot read records {path}: {e}") from e

    with f:
        reader = csv.DictReader(f)
        tablet = Tablet(
            name or path.stem,
            reader.fieldnames or [],
            multi_valued=multi_valued,
            not_set=settings.not_set,
            delimiter=settings.multi_value_delimiter,
        )
        for line_no, row in enumerate(reader, start=2):
            values = {k: (v or "").strip() or None for k, v in row.items() if k is not None}
            timestamp = None
            if timestamp_field and values.get(timestamp_field):
                try:
                    timestamp = datetime.fromisoformat(values[timestamp_field])
                except ValueError as e:
                    raise IngestionError(f"{path}:{line_no}: bad timestamp {values[timestamp_field]!r}") from e
            tablet.add(values, timestamp=timestamp)

    logger.info(f"Loaded {len(tablet)} records with {len(tablet.fields)} fields from {path}")
    return tablet


def load_csv_files(paths: list[str | Path], settings: Settings, **kwargs) -> Bundles:
    """Load several CSV files into one record source, one tablet each."""
    return Bundles(tablets=[load_csv(p, settings, **kwargs) for p in paths])
