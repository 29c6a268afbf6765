import logging
import threading
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class SkippedLine:
    line_number: int
    content: str
    reason: str
    channel_line: Optional[str] = None
    channel_line_number: Optional[int] = None

    def format(self):
        if self.channel_line is not None:
            return f"Line {self.line_number}: {self.content} (dropped channel line {self.channel_line_number}: {self.channel_line})"
        return f"Line {self.line_number}: {self.content}"


@dataclass(frozen=True)
class Mismatch:
    ordinal: int
    line_number: int
    channel_name: str
    declared_tier: object
    actual_tier: object

    def format(self):
        return (
            f"Line {self.line_number}: Channel #{self.ordinal} '{self.channel_name}', "
            f"Name Resolution: '{self.declared_tier.label}', Actual Resolution: '{self.actual_tier.label}'"
        )


class EventLog:
    """Append-only record of skipped playlist lines and resolution mismatches
    for a single run."""

    def __init__(self):
        self._lock = threading.Lock()
        self.skipped: List[SkippedLine] = []
        self.mismatches: List[Mismatch] = []

    def record_skipped(self, line_number, content, reason, channel_line=None, channel_line_number=None):
        entry = SkippedLine(line_number, content, reason, channel_line, channel_line_number)
        with self._lock:
            self.skipped.append(entry)
        logging.debug(f"Skipped line {line_number} ({reason}): '{content}'")
        return entry

    def record_mismatch(self, entry, declared, actual):
        mismatch = Mismatch(entry.ordinal, entry.line_number, entry.declared_name, declared, actual)
        with self._lock:
            self.mismatches.append(mismatch)
        logging.info(
            f"Resolution mismatch at line {entry.line_number}: Channel name '{entry.declared_name}' "
            f"indicates '{declared.label}', but actual resolution is '{actual.label}'"
        )
        return mismatch

    def sorted_mismatches(self):
        with self._lock:
            return sorted(self.mismatches, key=lambda m: m.ordinal)
