import logging
import os
import time
from dataclasses import dataclass

from iptv_m3u_checker.tiers import ResolutionTier, classify_resolution, find_mismatch, rewrite_channel_name


@dataclass(frozen=True)
class Timeouts:
    probe: float = 10.0
    screenshot: float = 10.0
    seek: float = 5.0


@dataclass(frozen=True)
class ChannelResult:
    entry: object
    video_track: str
    audio_track: str
    screenshot_filename: str
    connected: bool
    tier: ResolutionTier
    rewritten_name: str

    @property
    def rewritten_metadata_line(self):
        line = self.entry.metadata_line
        if "," in line:
            return f"{line.split(',', 1)[0]},{self.rewritten_name}"
        return f"{line},{self.rewritten_name}"


def format_video_track(probe):
    if probe is None or not probe.has_video:
        return ""
    return f"#1 {probe.video_codec}, {probe.width}x{probe.height},{probe.fps}fps"


def format_audio_track(probe):
    if probe is None or not probe.audio_codec or probe.audio_sample_rate_hz is None:
        return ""
    channels = "1ch" if probe.audio_channels == 1 else "2ch"
    return f"#1 {probe.audio_codec},{channels},{probe.audio_sample_rate_hz // 1000}khz"


def screenshot_filename(entry):
    return f"{entry.ordinal}_{entry.declared_name.replace('/', '-')}.png"


class ChannelProcessor:
    """Runs one channel through probe, classification, screenshot and
    reconciliation. Prober failures end up in the result, never as exceptions."""

    def __init__(self, prober, event_log, screenshot_dir, timeouts=None):
        self.prober = prober
        self.event_log = event_log
        self.screenshot_dir = screenshot_dir
        self.timeouts = timeouts or Timeouts()

    def process(self, entry):
        channel_start = time.time()
        logging.info(f"Processing channel {entry.ordinal}: {entry.declared_name}")

        screenshot_name = screenshot_filename(entry)
        video_track = ""
        audio_track = ""
        connected = False
        tier = ResolutionTier.ERROR

        probe_start = time.time()
        try:
            probe = self.prober.probe(entry.url, self.timeouts.probe)
        except Exception as e:
            logging.error(f"Error when attempting to probe {entry.url}: {e}")
            probe = None
        logging.debug(f"ffprobe completed in {time.time() - probe_start:.1f} seconds")

        if probe is None:
            logging.info("ffprobe failed or no output.")
        else:
            video_track = format_video_track(probe)
            audio_track = format_audio_track(probe)
            logging.debug(f"Video track: {video_track}")
            logging.debug(f"Audio track: {audio_track}")

            if probe.has_video:
                tier = classify_resolution(probe.width, probe.height)
                logging.debug(f"Resolution flag: {tier.label}")
                connected = self._capture(entry, screenshot_name)
                if not connected:
                    tier = ResolutionTier.ERROR
            else:
                logging.info("No video track info, skipping screenshot.")

        declared = find_mismatch(entry.declared_name, tier)
        if declared is not None:
            self.event_log.record_mismatch(entry, declared, tier)

        rewritten_name = rewrite_channel_name(entry.declared_name, tier)
        logging.debug(f"Updated channel name for m3u: {rewritten_name}")
        logging.info(
            f"Completed channel {entry.ordinal}: connect={str(connected).lower()}, resolution={tier.label}, "
            f"duration {time.time() - channel_start:.1f} seconds"
        )
        return ChannelResult(
            entry=entry,
            video_track=video_track,
            audio_track=audio_track,
            screenshot_filename=screenshot_name,
            connected=connected,
            tier=tier,
            rewritten_name=rewritten_name,
        )

    def _capture(self, entry, screenshot_name):
        screenshot_path = os.path.join(self.screenshot_dir, screenshot_name)
        capture_start = time.time()
        try:
            captured = self.prober.capture_frame(entry.url, self.timeouts.screenshot, self.timeouts.seek, screenshot_path)
        except Exception as e:
            logging.error(f"Error when attempting to capture frame from {entry.url}: {e}")
            captured = None
        logging.debug(f"Screenshot completed in {time.time() - capture_start:.1f} seconds")
        if captured is None:
            logging.info("Screenshot capture failed.")
            return False
        logging.debug(f"Screenshot saved to {captured}")
        return True
