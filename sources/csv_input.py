"""
MAPLEAD — Website Table Input
Reads a listings CSV (typically one produced by the maps crawl) and locates
the column holding business websites.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_WEBSITE_COLUMN = "Website"
EMAILS_COLUMN = "Emails"


def load_website_table(path) -> Tuple[List[str], List[Dict[str, str]]]:
    """Header row and every data row as a dict. Missing file raises FileNotFoundError."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        headers = list(reader.fieldnames or [])
        rows = [{k: (v or "") for k, v in row.items() if k is not None} for row in reader]

    logger.info(f"  📄  Loaded {len(rows)} rows from {path.name}")
    return headers, rows


def find_website_column(headers: Sequence[str]) -> str:
    """First header mentioning "website" or "url" (case-insensitive), else "Website"."""
    for header in headers:
        lowered = header.lower()
        if "website" in lowered or "url" in lowered:
            return header
    return DEFAULT_WEBSITE_COLUMN


def headers_with_emails(headers: Sequence[str], website_column: str) -> List[str]:
    """Insert the Emails column right after the website column (or at the end)."""
    result = [h for h in headers if h != EMAILS_COLUMN]
    if website_column in result:
        result.insert(result.index(website_column) + 1, EMAILS_COLUMN)
    else:
        result.append(EMAILS_COLUMN)
    return result
