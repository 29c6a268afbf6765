import logging
import re
from dataclasses import dataclass

import requests

EXTINF_PATTERN = re.compile(r"^\s*#EXTINF")
EXTINF_PREFIX_PATTERN = re.compile(r"^\s*#EXTINF\S*")
# C0 controls other than tab, DEL and a stray BOM
HIDDEN_CHARS_PATTERN = re.compile("[\x00-\x08\x0a-\x1f\x7f\ufeff]")

REQUEST_HEADERS = {
    'User-Agent': 'VLC/3.0.14 LibVLC/3.0.14'
}


@dataclass(frozen=True)
class ChannelEntry:
    ordinal: int
    declared_name: str
    url: str
    line_number: int
    metadata_line: str


def clean_line(raw_line):
    return HIDDEN_CHARS_PATTERN.sub("", raw_line).strip(" \t")


def is_metadata_line(line):
    return bool(EXTINF_PATTERN.match(line))


def extract_channel_name(line, counter):
    if "," in line:
        name = line.split(",", 1)[1].strip()
    else:
        name = EXTINF_PREFIX_PATTERN.sub("", line, count=1).strip()
    if not name:
        name = f"Unknown_Channel_{counter}"
        logging.warning(f"Could not extract channel name, using default: {name}")
    return name


def header_lines(lines):
    headers = [line for line in (clean_line(raw) for raw in lines) if line.startswith("#EXTM3U")]
    return headers or ["#EXTM3U"]


class PlaylistParser:
    """Turn raw playlist lines into ChannelEntry records.

    A metadata line and the line right after it are read as one unit; if that
    second line is not an http(s) URL the whole pair is dropped. Every line
    that does not end up in a channel is recorded in the event log.
    """

    def __init__(self, lines, event_log):
        self.lines = lines
        self.event_log = event_log

    def __iter__(self):
        return self.entries()

    def entries(self):
        counter = 1
        numbered = enumerate((clean_line(raw) for raw in self.lines), start=1)
        for line_number, line in numbered:
            logging.debug(f"Line {line_number}: {line}")

            if not line:
                self.event_log.record_skipped(line_number, line, "blank")
                continue

            if not is_metadata_line(line):
                self.event_log.record_skipped(line_number, line, "not a channel line")
                continue

            channel_name = extract_channel_name(line, counter)
            logging.debug(f"Channel name: {channel_name}")

            url_number, url = next(numbered, (line_number + 1, ""))
            logging.debug(f"Line {url_number}: {url}")
            if not url.startswith("http"):
                logging.info(f"Invalid or missing URL for {channel_name}: '{url}'. Skipping channel.")
                self.event_log.record_skipped(
                    url_number, url, "invalid url",
                    channel_line=line, channel_line_number=line_number,
                )
                continue

            yield ChannelEntry(
                ordinal=counter,
                declared_name=channel_name,
                url=url,
                line_number=line_number,
                metadata_line=line,
            )
            counter += 1


def is_remote_source(source):
    return str(source).lower().startswith(("http://", "https://"))


def decode_playlist(data, source):
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logging.warning(f"{source} is not valid UTF-8 ({e}); undecodable bytes are dropped")
        return data.decode("utf-8-sig", errors="ignore")


def load_playlist_lines(source, timeout=15.0):
    """Read the playlist from a local file or download it; returns its lines."""
    if is_remote_source(source):
        logging.info(f"Downloading playlist from {source}")
        resp = requests.get(source, timeout=timeout, headers=REQUEST_HEADERS)
        resp.raise_for_status()
        data = resp.content
    else:
        logging.info(f"Loading playlist from {source}")
        with open(source, "rb") as file:
            data = file.read()
    text = decode_playlist(data, source).replace("\r\n", "\n")
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines
