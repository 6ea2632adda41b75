"""
MAPLEAD — CSV Writer
Append-only CSV sinks that persist one record at a time, plus whole-table
export for the email enrichment pass.
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from adapters.selectors import clean_field

logger = logging.getLogger(__name__)


LISTING_HEADER = ["Name", "Category", "Address", "Website", "Phone", "Url"]
COMBINED_HEADER = ["Location"] + LISTING_HEADER


def run_timestamp(now: Optional[datetime] = None) -> str:
    """Timestamp used in output filenames, e.g. 2025-04-09_19-46."""
    return (now or datetime.now()).strftime("%Y-%m-%d_%H-%M")


class IncrementalCSVSink:
    """
    One destination file. Every append opens, writes and closes the file,
    so a crash loses at most the record being written. Fields are always
    quoted with embedded quotes doubled; line breaks are collapsed first.
    """

    def __init__(self, path, header: Sequence[str]):
        self.path = Path(path)
        self.header = list(header)
        self._stats = {"rows_written": 0, "rows_failed": 0}

    def create(self):
        """Start a fresh file holding only the header row."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", newline="", encoding="utf-8") as f:
            csv.writer(f, quoting=csv.QUOTE_ALL).writerow(self.header)
        return self

    def append(self, row: Sequence[str]) -> bool:
        """Append one row. Write errors are logged and reported as False."""
        try:
            with open(self.path, "a", newline="", encoding="utf-8") as f:
                csv.writer(f, quoting=csv.QUOTE_ALL).writerow(
                    [clean_field(str(cell)) if cell is not None else "" for cell in row]
                )
        except (OSError, csv.Error) as e:
            self._stats["rows_failed"] += 1
            logger.error(f"  ❌  Error writing to {self.path.name}: {e}")
            return False
        self._stats["rows_written"] += 1
        return True

    @property
    def stats(self) -> dict:
        return dict(self._stats)


class ListingSink:
    """
    Fans one listing out to a per-location file and the combined
    cross-location file (which gets a leading Location column).
    A failure on one destination never blocks the other.
    """

    def __init__(self, location: str, location_sink: IncrementalCSVSink,
                 combined_sink: Optional[IncrementalCSVSink] = None):
        self.location = location
        self.location_sink = location_sink
        self.combined_sink = combined_sink

    def write(self, listing) -> int:
        """Persist `listing` everywhere; return how many destinations took it."""
        row = listing.to_row()
        written = int(self.location_sink.append(row))
        if self.combined_sink is not None:
            written += int(self.combined_sink.append([self.location] + row))
        return written


class CSVWriter:
    """
    Output directory layout for a run:
    - <base>_<location>_<timestamp>.csv    one per location
    - <base>_all_locations_<timestamp>.csv combined, with Location column
    - arbitrary tables for the email enrichment pass
    """

    def __init__(self, output_dir: str = "data", timestamp: Optional[str] = None):
        self.output_dir = Path(output_dir)
        self.timestamp = timestamp or run_timestamp()
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def combined_sink(self, base_name: str) -> IncrementalCSVSink:
        path = self.output_dir / f"{base_name}_all_locations_{self.timestamp}.csv"
        return IncrementalCSVSink(path, COMBINED_HEADER).create()

    def location_sink(self, base_name: str, location: str,
                      combined: Optional[IncrementalCSVSink] = None) -> ListingSink:
        path = self.output_dir / f"{base_name}_{location}_{self.timestamp}.csv"
        return ListingSink(location, IncrementalCSVSink(path, LISTING_HEADER).create(), combined)

    def write_table(self, path, headers: Sequence[str], rows: Iterable[Dict[str, str]]) -> Path:
        """
        Write a full table in one go (header + rows, missing cells blank).
        Used for the enriched website file, which only exists once all
        addresses are resolved.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        count = 0
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=list(headers), extrasaction="ignore",
                                    quoting=csv.QUOTE_ALL)
            writer.writeheader()
            for row in rows:
                writer.writerow({h: clean_field(row.get(h) or "") for h in headers})
                count += 1

        logger.info(f"  💾  Saved {count} rows → {path}")
        return path
