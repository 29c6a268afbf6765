import os
import sys
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_DIR = TESTS_DIR.parent
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from iptv_m3u_checker.prober import Prober, StreamProbeResult


def probe_result(width=1920, height=1080, codec="h264", fps=25, audio=True):
    if audio:
        return StreamProbeResult(codec, width, height, fps, "mp2", 2, 48000)
    return StreamProbeResult(codec, width, height, fps)


class FakeProber(Prober):
    """Answers from a url -> StreamProbeResult table; urls in `no_frame` fail to capture."""

    def __init__(self, probes=None, no_frame=()):
        self.probes = probes or {}
        self.no_frame = set(no_frame)
        self.probed = []
        self.captured = []

    def probe(self, url, timeout):
        self.probed.append((url, timeout))
        return self.probes.get(url)

    def capture_frame(self, url, timeout, seek_seconds, output_path):
        self.captured.append((url, timeout, seek_seconds))
        if url in self.no_frame:
            return None
        with open(output_path, "wb") as handle:
            handle.write(b"\x89PNG")
        return output_path
