"""
Storage for the attribute values recorded from crawled pages.
"""

import json
import logging
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from ..errors import RecordError
from ..utils.config import RecordConfig


def utc_now_iso() -> str:
    """Return current UTC time in ISO format."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


@dataclass
class PageRecord:
    """Attribute values recorded from one page."""
    uri: str
    depth: int
    values: List[str] = field(default_factory=list)
    recorded_at: str = field(default_factory=utc_now_iso)


class RecordStore:
    """Base class for record stores. Keeps every record in memory."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.records: List[PageRecord] = []
        self.stats = {
            'total_stored': 0,
            'total_values': 0,
            'storage_errors': 0
        }

    async def initialize(self):
        """Prepare the store for writing."""
        pass

    async def store(self, record: PageRecord) -> bool:
        """Store one record. Returns False if it could not be written."""
        try:
            self._write(record)
        except (OSError, ValueError) as e:
            self.stats['storage_errors'] += 1
            self.logger.error(f"Error storing record for {record.uri}: {e}")
            return False

        self.records.append(record)
        self.stats['total_stored'] += 1
        self.stats['total_values'] += len(record.values)
        return True

    def _write(self, record: PageRecord):
        pass

    def get_stats(self) -> Dict[str, Any]:
        """Get storage statistics."""
        return self.stats.copy()

    async def close(self):
        """Flush and release resources."""
        pass


class ConsoleRecordStore(RecordStore):
    """Prints each page's recorded values, one page per line."""

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__()
        self.stream = stream

    def _write(self, record: PageRecord):
        stream = self.stream or sys.stdout
        print(f"{record.uri}\t{json.dumps(record.values, ensure_ascii=False)}", file=stream)


class FileRecordStore(RecordStore):
    """Appends records to a JSON Lines file."""

    def __init__(self, output_path: str):
        super().__init__()
        self.output_path = Path(output_path)
        self._file: Optional[TextIO] = None

    async def initialize(self):
        """Create the output directory and open the file for appending."""
        try:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.output_path, 'a', encoding='utf-8')
        except OSError as e:
            raise RecordError(f"Failed to open record output {self.output_path}: {e}")
        self.logger.info(f"Recording to {self.output_path}")

    def _write(self, record: PageRecord):
        if self._file is None:
            raise ValueError("record store is not initialized")
        self._file.write(json.dumps(asdict(record), ensure_ascii=False) + '\n')
        self._file.flush()

    async def close(self):
        """Close the output file."""
        if self._file is not None:
            self._file.close()
            self._file = None


def create_record_store(config: RecordConfig) -> RecordStore:
    """Pick the record store for a configuration."""
    if config.output:
        return FileRecordStore(config.output)
    return ConsoleRecordStore()
