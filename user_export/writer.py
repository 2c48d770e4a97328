from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

import polars as pl

from .errors import OutputPathError
from .schema import OUTPUT_COLUMNS, NormalizedRecord

LOGGER = logging.getLogger(__name__)

CSV_SEPARATOR = ";"
OUTPUT_ENCODING = "utf-8"


class ExportFormat(str, Enum):
    CSV = "CSV"
    TXT = "TXT"

    @classmethod
    def parse(cls, value: str) -> "ExportFormat":
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unsupported format '{value}' (expected CSV or TXT)") from None


SUPPORTED_EXTENSIONS = (".csv", ".txt")


def validate_output_path(path: Path) -> Path:
    """Reject output paths whose extension is not .csv or .txt."""

    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise OutputPathError(f"Output file must end in .csv or .txt: {path}")
    return path


def records_to_frame(records: Sequence[NormalizedRecord]) -> pl.DataFrame:
    schema = {name: pl.Utf8 for name in OUTPUT_COLUMNS}
    schema["IsLeader"] = pl.Boolean
    schema["IsHidden"] = pl.Boolean
    return pl.DataFrame([r.as_row() for r in records], schema=schema).select(
        list(OUTPUT_COLUMNS)
    )


def sort_frame(frame: pl.DataFrame) -> pl.DataFrame:
    """Leaders first, then AccountId ascending (ordinal); ties keep input order."""

    return frame.sort(["IsLeader", "AccountId"], descending=[True, False], maintain_order=True)


def render_csv(frame: pl.DataFrame) -> str:
    return frame.write_csv(separator=CSV_SEPARATOR, include_header=True)


def render_txt(frame: pl.DataFrame) -> str:
    return frame.to_pandas().to_string(index=False) + "\n"


def render(frame: pl.DataFrame, fmt: ExportFormat) -> str:
    if fmt is ExportFormat.TXT:
        return render_txt(frame)
    return render_csv(frame)


def write_export(
    records: Sequence[NormalizedRecord],
    path: Path,
    fmt: ExportFormat = ExportFormat.CSV,
) -> Optional[Path]:
    """
    Sort, render and write the records.

    Returns the written path, or ``None`` when there was nothing to export; an
    existing file is left untouched in that case. Existing files are otherwise
    overwritten.
    """

    if not records:
        LOGGER.info("No users to export; %s not written.", path)
        return None

    frame = sort_frame(records_to_frame(records))
    payload = render(frame, fmt)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding=OUTPUT_ENCODING, newline="") as handle:
            handle.write(payload)
    except OSError as exc:
        raise OutputPathError(f"Cannot write export to {path}: {exc}") from exc

    LOGGER.info("Wrote %d user(s) as %s: %s", frame.height, fmt.value, path)
    return path
