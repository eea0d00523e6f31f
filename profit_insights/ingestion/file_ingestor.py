"""
File Ingestor

Turns an uploaded e-commerce export into headers and rows.
Supports:
- CSV and delimited text via Polars (delimiter sniffed for .txt)
- Excel workbooks (XLSX/XLS) via Pandas, first worksheet only
- Format detection by extension, then mime type
- Source platform detection (Salla, Zid, Shopify) as metadata
- Upload size limits
"""

import io
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd
import polars as pl

from profit_insights.config import Settings, get_settings
from profit_insights.config.logging import get_logger
from profit_insights.errors import (
    CorruptFileError,
    EmptyFileError,
    FileTooLargeError,
    UnsupportedFormatError,
)
from profit_insights.models import FileFormat, Platform
from profit_insights.transformation.cleaners import is_blank

RawRow = Mapping[str, Any]

EXTENSION_FORMATS = {
    "csv": FileFormat.CSV,
    "xlsx": FileFormat.XLSX,
    "xls": FileFormat.XLS,
    "txt": FileFormat.TXT,
}

MIME_FORMATS = {
    "text/csv": FileFormat.CSV,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": FileFormat.XLSX,
    "application/vnd.ms-excel": FileFormat.XLS,
    "text/plain": FileFormat.TXT,
}

PLATFORM_PATTERNS = {
    Platform.SALLA: ["salla", "order_id", "salla_order"],
    Platform.ZID: ["zid", "zid_order", "merchant_id"],
    Platform.SHOPIFY: ["shopify", "line_item", "fulfillment", "variant_sku", "financial_status"],
}

NULL_VALUES = ["", "NULL", "null", "None", "N/A"]

TEXT_DELIMITERS = [",", "\t", ";", "|"]


@dataclass(frozen=True)
class IngestedFile:
    """Parsed upload: headers, read-only rows and detection metadata"""
    filename: str
    file_format: FileFormat
    platform: Platform
    headers: Tuple[str, ...]
    rows: Tuple[RawRow, ...]
    size_bytes: int
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def row_count(self) -> int:
        return len(self.rows)


def detect_file_format(filename: str, mime_type: Optional[str] = None) -> FileFormat:
    """
    Detect the upload format.

    Raises:
        UnsupportedFormatError: neither extension nor mime type is recognized
    """
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension in EXTENSION_FORMATS:
        return EXTENSION_FORMATS[extension]

    mime = (mime_type or "").split(";")[0].strip().lower()
    if mime in MIME_FORMATS:
        return MIME_FORMATS[mime]

    raise UnsupportedFormatError(
        f"Unsupported file format for '{filename}'. Use CSV, Excel, or TXT"
    )


def detect_platform(headers: Sequence[str], rows: Sequence[RawRow]) -> Platform:
    """Guess the source platform from header names and first-row values"""
    parts = [h.lower() for h in headers]
    if rows:
        parts.extend(str(v).lower() for v in rows[0].values() if v is not None)
    haystack = " ".join(parts)

    for platform, patterns in PLATFORM_PATTERNS.items():
        if any(pattern in haystack for pattern in patterns):
            return platform
    return Platform.UNKNOWN


def sniff_delimiter(text: str) -> str:
    """Pick the most frequent candidate delimiter on the header line"""
    first_line = next((line for line in text.splitlines() if line.strip()), "")
    counts = {d: first_line.count(d) for d in TEXT_DELIMITERS}
    best = max(counts, key=counts.get)
    return best if counts[best] > 0 else ","


class FileIngestor:
    """
    Reads uploads into an IngestedFile.

    Example:
        ingestor = FileIngestor()
        parsed = ingestor.ingest(content, "orders.csv", "text/csv")
    """

    def __init__(self, settings: Optional[Settings] = None, logger: Optional[Any] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__, logger)

    def ingest(
        self,
        content: bytes,
        filename: str,
        mime_type: Optional[str] = None,
    ) -> IngestedFile:
        """
        Parse an uploaded file.

        Raises:
            UnsupportedFormatError: unknown extension and mime type
            FileTooLargeError: over the configured size limit
            EmptyFileError: no usable rows
            CorruptFileError: decode or parse failure
        """
        limits = self.settings.ingestion
        file_format = detect_file_format(filename, mime_type)
        size = len(content)

        if size > limits.max_file_size_bytes:
            raise FileTooLargeError(
                f"File is {size} bytes; the limit is {limits.max_file_size_bytes} bytes"
            )
        if size == 0:
            raise EmptyFileError("File is empty or contains no data")

        warnings: List[str] = []
        if size > limits.large_file_warning_bytes:
            warnings.append(f"Large file ({size // 1024} KB); processing may take longer")

        if file_format in (FileFormat.XLSX, FileFormat.XLS):
            headers, rows = self._read_excel(content)
        else:
            headers, rows = self._read_delimited(content, file_format)

        if not rows:
            raise EmptyFileError("File is empty or contains no data")

        platform = detect_platform(headers, rows)
        frozen_rows = tuple(MappingProxyType(row) for row in rows)

        self.logger.info(
            "File ingested",
            filename=filename,
            format=file_format.value,
            platform=platform.value,
            rows=len(frozen_rows),
            columns=len(headers),
        )

        return IngestedFile(
            filename=filename,
            file_format=file_format,
            platform=platform,
            headers=tuple(headers),
            rows=frozen_rows,
            size_bytes=size,
            warnings=tuple(warnings),
        )

    def _read_delimited(
        self,
        content: bytes,
        file_format: FileFormat,
    ) -> Tuple[List[str], List[Dict[str, Any]]]:
        """Read CSV / delimited text with Polars, every column as text"""
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CorruptFileError(f"Failed to decode file as UTF-8: {e}", cause=e)

        if not text.strip():
            raise EmptyFileError("File is empty or contains no data")

        separator = sniff_delimiter(text) if file_format == FileFormat.TXT else ","

        try:
            df = pl.read_csv(
                io.BytesIO(text.encode("utf-8")),
                separator=separator,
                infer_schema_length=0,
                null_values=NULL_VALUES,
                truncate_ragged_lines=True,
            )
        except pl.exceptions.NoDataError as e:
            raise EmptyFileError("File is empty or contains no data") from e
        except pl.exceptions.PolarsError as e:
            raise CorruptFileError(f"Failed to read {file_format.value.upper()} file: {e}", cause=e)

        if df.width == 0:
            raise EmptyFileError("File is empty or contains no data")

        df = df.with_columns(pl.col(pl.Utf8).str.strip_chars())
        # Remove completely blank rows
        df = df.filter(
            ~pl.all_horizontal((pl.all().is_null()) | (pl.all() == ""))
        )

        return list(df.columns), df.to_dicts()

    def _read_excel(self, content: bytes) -> Tuple[List[str], List[Dict[str, Any]]]:
        """Read the first worksheet with Pandas"""
        try:
            df = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object)
        except Exception as e:
            raise CorruptFileError(f"Failed to read Excel file: {e}", cause=e)

        df = df.dropna(how="all")
        headers = [str(c) for c in df.columns]
        df.columns = headers

        rows = []
        for record in df.to_dict(orient="records"):
            row = {k: (None if is_blank(v) or pd.isna(v) else v) for k, v in record.items()}
            rows.append(row)

        return headers, rows
