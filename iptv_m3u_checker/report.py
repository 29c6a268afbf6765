import codecs
import logging
import os
from dataclasses import dataclass, field
from typing import Dict

from iptv_m3u_checker.errors import OutputWriteError
from iptv_m3u_checker.tiers import ResolutionTier

CSV_HEADER = "编号,频道名称,video track,audio track,screenshot_name,连接flag,分辨率flag"
RESULTS_FILE = "results.csv"
PLAYLIST_FILE = "modified_iptv.m3u"
MISMATCH_FILE = "mismatch.log"
SKIPPED_FILE = "skipped_lines.log"


@dataclass
class RunStatistics:
    total: int = 0
    connected_true: int = 0
    connected_false: int = 0
    tier_counts: Dict[ResolutionTier, int] = field(default_factory=lambda: {tier: 0 for tier in ResolutionTier})

    def update(self, result):
        self.total += 1
        if result.connected:
            self.connected_true += 1
        else:
            self.connected_false += 1
        self.tier_counts[result.tier] += 1

    def summary_lines(self):
        lines = [
            f"Total channels: {self.total}",
            f"Connect true: {self.connected_true}",
            f"Connect false: {self.connected_false}",
        ]
        lines.extend(f"{tier.label}: {self.tier_counts[tier]}" for tier in ResolutionTier)
        return lines


def _quote(value):
    return '"' + str(value).replace('"', '""') + '"'


def csv_row(result):
    return ",".join([
        str(result.entry.ordinal),
        _quote(result.entry.declared_name),
        _quote(result.video_track),
        _quote(result.audio_track),
        _quote(result.screenshot_filename),
        "true" if result.connected else "false",
        result.tier.label,
    ])


class ReportWriter:
    """Writes results.csv and modified_iptv.m3u as results arrive, and the
    mismatch / skipped-lines logs on finalize()."""

    def __init__(self, output_dir, event_log, headers=("#EXTM3U",)):
        self.output_dir = output_dir
        self.event_log = event_log
        self.statistics = RunStatistics()
        self._finalized = False
        self._csv = None
        self._playlist = None
        try:
            os.makedirs(output_dir, exist_ok=True)
            logging.debug(f"Initializing CSV file with UTF-8 BOM: {self.path(RESULTS_FILE)}")
            self._csv = codecs.open(self.path(RESULTS_FILE), "w", "utf-8-sig")
            self._csv.write(CSV_HEADER + "\n")
            logging.debug(f"Initializing modified m3u file: {self.path(PLAYLIST_FILE)}")
            self._playlist = open(self.path(PLAYLIST_FILE), "w", encoding="utf-8")
            for header in headers:
                self._playlist.write(header + "\n")
        except OSError as e:
            self._close_files()
            raise OutputWriteError(f"Cannot create report files in {output_dir}: {e}") from e

    def path(self, name):
        return os.path.join(self.output_dir, name)

    def record(self, result):
        row = csv_row(result)
        logging.debug(f"Appending to CSV: {row}")
        try:
            self._csv.write(row + "\n")
            if result.connected:
                self._playlist.write(result.rewritten_metadata_line + "\n")
                self._playlist.write(result.entry.url + "\n")
                logging.debug(f"Appended to modified m3u: {result.rewritten_metadata_line}")
            else:
                logging.debug(f"Skipped channel '{result.entry.declared_name}' from modified m3u due to connect_flag=false")
        except OSError as e:
            raise OutputWriteError(f"Cannot write results to {self.output_dir}: {e}") from e
        self.statistics.update(result)

    def finalize(self):
        if self._finalized:
            return self.statistics
        try:
            self._close_files()
            self._write_log(MISMATCH_FILE, "Resolution Mismatch Log", self.event_log.sorted_mismatches())
            self._write_log(SKIPPED_FILE, "Skipped Lines Log", self.event_log.skipped)
        except OSError as e:
            raise OutputWriteError(f"Cannot finish writing reports in {self.output_dir}: {e}") from e
        self._finalized = True
        logging.info(
            f"Results in {self.path(RESULTS_FILE)}, skipped lines in {self.path(SKIPPED_FILE)}, "
            f"mismatch log in {self.path(MISMATCH_FILE)}, modified m3u in {self.path(PLAYLIST_FILE)}"
        )
        return self.statistics

    def _close_files(self):
        for handle in (self._csv, self._playlist):
            if handle is not None:
                handle.close()

    def _write_log(self, name, title, records):
        with open(self.path(name), "w", encoding="utf-8") as log_file:
            log_file.write(title + "\n")
            log_file.write("-" * len(title) + "\n")
            for record in records:
                log_file.write(record.format() + "\n")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.finalize()
        else:
            self._close_files()
