"""
Lead record input and output for LeadForge.

Discovery output is read with load_records. Records are final once
emitted, so the JSON-lines sink appends and flushes one line per lead. CSV
export flattens nested fields for spreadsheet use.
"""

import csv
import json
import threading
from datetime import datetime, timezone
from io import StringIO
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import OUTPUT_DIR
from .models import SOCIAL_PLATFORMS
from .logging_setup import get_logger

logger = get_logger("export")


class LeadInputError(Exception):
    """Lead input file is missing or malformed."""
    pass


CSV_FIELDNAMES = [
    "businessName",
    "email",
    "emailValid",
    "phone",
    "phoneValid",
    "website",
    "address",
    "category",
    "rating",
    "reviewCount",
    "claimed",
    "linkedin",
    "facebook",
    "twitter",
    "instagram",
    "leadScore",
    "leadGrade",
    "dataQuality",
    "engagement",
    "firmographic",
    "googleMapsUrl",
    "searchQuery",
    "scrapedAt",
    "enrichmentError",
]


def _sanitize_csv_value(value: Any) -> Any:
    """Prefix risky spreadsheet formulas with a single quote.

    >>> _sanitize_csv_value("=HYPERLINK('https://example.com')")
    "'=HYPERLINK('https://example.com')"
    >>> _sanitize_csv_value("@sum(A1:A2)")
    "'@sum(A1:A2)"
    """
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str) and value.startswith(("=", "+", "-", "@")):
        return f"'{value}"
    return value


def flatten_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Lift socialLinks and scoreBreakdown entries into top-level columns."""
    row = {key: value for key, value in record.items() if key not in ("socialLinks", "scoreBreakdown", "reviews")}
    social = record.get("socialLinks") or {}
    for platform in SOCIAL_PLATFORMS:
        row[platform] = social.get(platform)
    breakdown = record.get("scoreBreakdown") or {}
    for category in ("dataQuality", "engagement", "firmographic"):
        row[category] = breakdown.get(category)
    return row


def default_output_path(suffix: str, output_dir: Path = None) -> Path:
    output_dir = output_dir or OUTPUT_DIR
    date_str = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H%M%S")
    return output_dir / f"leads_{date_str}.{suffix}"


def write_csv(records: List[Dict[str, Any]], output_path: Path = None) -> tuple[str, Path]:
    """
    Generate CSV content from lead records.
    Returns (csv_content, file_path).
    """
    if output_path is None:
        output_path = default_output_path("csv")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    buffer = StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDNAMES, extrasaction="ignore")
    writer.writeheader()

    for record in records:
        flat = flatten_record(record)
        row = {
            field: _sanitize_csv_value("" if flat.get(field) is None else flat.get(field))
            for field in CSV_FIELDNAMES
        }
        writer.writerow(row)

    csv_content = buffer.getvalue()
    output_path.write_text(csv_content, encoding="utf-8", newline="")
    logger.info(f"Generated CSV with {len(records)} leads: {output_path}")

    return csv_content, output_path


class JsonLinesSink:
    """
    Append-only JSON-lines writer.

    Safe to call from several worker threads; each record is written and
    flushed as a whole line.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.count = 0
        self._lock = threading.Lock()
        self._handle = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("a", encoding="utf-8")

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
            logger.info(f"Wrote {self.count} leads to {self.path}")

    def __call__(self, record: Dict[str, Any]) -> None:
        line = json.dumps(record, ensure_ascii=False, default=str)
        with self._lock:
            if self._handle is None:
                self.open()
            self._handle.write(line + "\n")
            self._handle.flush()
            self.count += 1


def read_jsonl(path: Path) -> List[Dict[str, Any]]:
    """Read records back from a JSON-lines file."""
    records = []
    with Path(path).open(encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if line:
                records.append(json.loads(line))
    return records


def load_records(path: Path) -> List[Dict[str, Any]]:
    """
    Load discovery output: a JSON array, {"leads": [...]}, or JSON lines.
    Raises LeadInputError when the file can't be read as any of these.
    """
    path = Path(path)
    if not path.exists():
        raise LeadInputError(f"Input file '{path}' was not found")

    text = path.read_text(encoding="utf-8")
    data: Optional[Any]
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, list):
        records = data
    elif isinstance(data, dict) and isinstance(data.get("leads"), list):
        records = data["leads"]
    elif isinstance(data, dict):
        records = [data]
    else:
        try:
            records = read_jsonl(path)
        except json.JSONDecodeError as e:
            raise LeadInputError(f"Input file '{path}' is neither JSON nor JSON lines: {e}") from e

    bad = [index for index, record in enumerate(records) if not isinstance(record, dict)]
    if bad:
        raise LeadInputError(f"Input file '{path}' has non-object records at positions {bad[:5]}")
    return records

