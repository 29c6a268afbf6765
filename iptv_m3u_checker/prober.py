import json
import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from iptv_m3u_checker.errors import MissingDependencyError


@dataclass(frozen=True)
class StreamProbeResult:
    video_codec: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[int] = None
    audio_codec: Optional[str] = None
    audio_channels: Optional[int] = None
    audio_sample_rate_hz: Optional[int] = None

    @property
    def has_video(self):
        return None not in (self.video_codec, self.width, self.height, self.fps)

    @classmethod
    def from_ffprobe(cls, payload):
        """Build a result from `ffprobe -print_format json -show_streams` output,
        keeping only the first video and the first audio stream."""
        streams = payload.get("streams") or []
        video = next((s for s in streams if s.get("codec_type") == "video"), {})
        audio = next((s for s in streams if s.get("codec_type") == "audio"), {})
        return cls(
            video_codec=video.get("codec_name"),
            width=_to_int(video.get("width")),
            height=_to_int(video.get("height")),
            fps=_frame_rate_numerator(video.get("r_frame_rate")),
            audio_codec=audio.get("codec_name"),
            audio_channels=_to_int(audio.get("channels")),
            audio_sample_rate_hz=_to_int(audio.get("sample_rate")),
        )


def _to_int(value):
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _frame_rate_numerator(rate):
    if not rate:
        return None
    return _to_int(str(rate).split('/')[0])


class Prober(ABC):
    """Inspects streams and grabs frames. Both operations report failure by
    returning None rather than raising."""

    @abstractmethod
    def probe(self, url, timeout) -> Optional[StreamProbeResult]:
        """Return the stream's first video and audio track details, or None."""

    @abstractmethod
    def capture_frame(self, url, timeout, seek_seconds, output_path) -> Optional[str]:
        """Write one frame taken seek_seconds into the stream to output_path;
        return that path, or None when no frame was captured."""


class FFmpegProber(Prober):

    def __init__(self, ffprobe_bin='ffprobe', ffmpeg_bin='ffmpeg'):
        self.ffprobe_bin = ffprobe_bin
        self.ffmpeg_bin = ffmpeg_bin

    def _run(self, command, timeout):
        # stdin must never be inherited: the child would eat the rest of the playlist.
        return subprocess.run(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
            check=False,
        )

    def probe(self, url, timeout):
        command = [
            self.ffprobe_bin, '-v', 'quiet', '-print_format', 'json', '-show_streams', url
        ]
        logging.debug(f"ffprobe command: {' '.join(command)}")
        try:
            result = self._run(command, timeout)
        except subprocess.TimeoutExpired:
            logging.error(f"Timeout when trying to probe {url}")
            return None
        except OSError as e:
            logging.error(f"Error when attempting to run ffprobe: {e}")
            return None

        output = result.stdout.decode('utf-8', errors='replace').strip()
        if not output:
            logging.debug(f"ffprobe returned no output (exit code {result.returncode})")
            return None
        try:
            payload = json.loads(output)
        except ValueError as e:
            logging.error(f"Could not parse ffprobe output for {url}: {e}")
            return None
        if not isinstance(payload, dict):
            return None
        return StreamProbeResult.from_ffprobe(payload)

    def capture_frame(self, url, timeout, seek_seconds, output_path):
        command = [
            self.ffmpeg_bin, '-nostdin', '-y', '-v', 'quiet', '-ss', str(seek_seconds), '-i', url,
            '-frames:v', '1', '-update', '1', str(output_path)
        ]
        logging.debug(f"Screenshot command: {' '.join(command)}")
        try:
            result = self._run(command, timeout)
        except subprocess.TimeoutExpired:
            logging.error(f"Timeout when trying to capture frame from {url}")
            return None
        except OSError as e:
            logging.error(f"Error when attempting to run ffmpeg: {e}")
            return None

        if result.returncode != 0 or not os.path.isfile(output_path):
            logging.debug(f"ffmpeg exit code {result.returncode}, screenshot present: {os.path.isfile(output_path)}")
            return None
        return str(output_path)


def check_dependencies(*binaries):
    """Resolve every binary on PATH, raising MissingDependencyError for the first one missing."""
    resolved = []
    for binary in binaries:
        path = shutil.which(binary)
        if not path:
            raise MissingDependencyError(binary)
        resolved.append(path)
    return resolved
