import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from app.core.result import Err, Ok, Result
from app.schemas.imports import UnreadableFile

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xls")
CSV_EXTENSIONS = (".csv",)


@dataclass
class ParsedSheet:
    headers: List[str]
    records: List[Dict[str, str]] = field(default_factory=list)


def _read_frame(content: bytes, filename: str) -> pd.DataFrame:
    name = filename.lower()
    buffer = io.BytesIO(content)
    if name.endswith(EXCEL_EXTENSIONS):
        # Every cell as text so phone numbers keep their leading zeros
        return pd.read_excel(buffer, sheet_name=0, dtype=str, keep_default_na=False)
    if name.endswith(CSV_EXTENSIONS):
        return pd.read_csv(buffer, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    raise ValueError(f"Unsupported file type: {filename}")


def parse_spreadsheet(content: bytes, filename: str) -> Result[ParsedSheet, UnreadableFile]:
    """Read the first sheet of an uploaded spreadsheet.

    The first row holds the headers; fully blank rows are skipped.
    """
    try:
        frame = _read_frame(content, filename)
    except Exception as e:
        logger.warning(f"Could not read {filename}: {str(e)}")
        return Err(UnreadableFile(message=str(e) or "Unreadable file"))

    frame = frame.fillna("")
    headers = [
        str(column).strip()
        for column in frame.columns
        if not str(column).startswith("Unnamed:")
    ]
    frame.columns = [str(column).strip() for column in frame.columns]

    records: List[Dict[str, str]] = []
    for raw in frame.to_dict(orient="records"):
        record = {header: str(raw.get(header, "")).strip() for header in headers}
        if any(record.values()):
            records.append(record)

    logger.info(f"Parsed {len(records)} data row(s) from {filename}")
    return Ok(ParsedSheet(headers=headers, records=records))
