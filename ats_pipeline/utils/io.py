"""File I/O utilities: the CSV tokenizer boundary and table output."""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd
from rich.console import Console

from ats_pipeline.utils.types import Headers, RawRow

type FilePath = str | Path

logger = logging.getLogger(__name__)
console = Console()

EXPORT_ENCODINGS = ("utf-8-sig", "utf-8", "latin-1", "cp1252")


@dataclass(frozen=True)
class CsvDocument:
    headers: Headers
    rows: list[RawRow] = field(default_factory=list)


def read_ats_export(path: FilePath) -> str:
    """Read an ATS export file, handling the usual encoding quirks."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"ATS export not found: {path}")

    raw = path.read_bytes()
    for encoding in EXPORT_ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ValueError(f"Could not decode {path}")


def tokenize_csv(content: str, trim_headers: bool = True) -> CsvDocument:
    """Split a CSV document into a header list and string-valued rows.

    Every cell is kept as the literal string from the file. Empty cells, and
    the cells a short row does not reach, are empty strings; nothing is
    coerced to NaN or to a date here.
    """
    try:
        df = pd.read_csv(
            io.StringIO(content),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        logger.warning("CSV document is empty")
        return CsvDocument(headers=[])

    if trim_headers:
        df.columns = [str(col).strip() for col in df.columns]

    headers = [str(col) for col in df.columns]
    rows = [
        {header: ("" if pd.isna(value) else str(value)) for header, value in record.items()}
        for record in df.to_dict(orient="records")
    ]
    logger.debug("Tokenized %d rows across %d columns", len(rows), len(headers))
    return CsvDocument(headers=headers, rows=rows)


def write_output(df: pd.DataFrame, path: FilePath, fmt: str = "csv") -> Path:
    """Write a DataFrame to the specified format."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    match fmt:
        case "csv":
            df.to_csv(path, index=False)
        case "parquet":
            df.to_parquet(path, index=False)
        case "json":
            df.to_json(path, orient="records", indent=2, date_format="iso")
        case other:
            raise ValueError(f"Unsupported output format: {other}")

    console.print(f"  Wrote {len(df)} rows to {path}")
    return path
