import tempfile
import unittest
from pathlib import Path
from unittest import mock

import helpers  # noqa: F401
import requests

from iptv_m3u_checker.events import EventLog
from iptv_m3u_checker.playlist import (
    PlaylistParser,
    clean_line,
    extract_channel_name,
    header_lines,
    load_playlist_lines,
)


def parse(lines):
    event_log = EventLog()
    entries = list(PlaylistParser(lines, event_log))
    return entries, event_log


class CleanLineTests(unittest.TestCase):
    def test_strips_control_characters_and_padding(self):
        self.assertEqual("#EXTINF:-1,CCTV1", clean_line("\ufeff  #EXTINF:-1,CC\x00TV1\r"))
        self.assertEqual("http://a/b", clean_line("\thttp://a/b\x7f  "))

    def test_keeps_non_ascii(self):
        self.assertEqual("#EXTINF:-1,湖南卫视[高清]", clean_line("#EXTINF:-1,湖南卫视[高清]"))


class ChannelNameTests(unittest.TestCase):
    def test_name_is_everything_after_first_comma(self):
        self.assertEqual("CCTV1, 综合", extract_channel_name('#EXTINF:-1 tvg-id="1",CCTV1, 综合 ', 1))

    def test_name_without_comma_drops_marker(self):
        self.assertEqual("CCTV2", extract_channel_name("#EXTINF:-1 CCTV2", 2))

    def test_empty_name_gets_placeholder(self):
        self.assertEqual("Unknown_Channel_7", extract_channel_name("#EXTINF:-1,  ", 7))
        self.assertEqual("Unknown_Channel_3", extract_channel_name("#EXTINF:-1", 3))


class PlaylistParserTests(unittest.TestCase):
    def test_pairs_become_entries_with_ordinals(self):
        entries, event_log = parse([
            "#EXTM3U",
            "#EXTINF:-1,CCTV1",
            "http://example.com/1.m3u8",
            "",
            "#EXTINF:-1,CCTV2[高清]",
            "https://example.com/2.m3u8",
        ])
        self.assertEqual([1, 2], [e.ordinal for e in entries])
        self.assertEqual(["CCTV1", "CCTV2[高清]"], [e.declared_name for e in entries])
        self.assertEqual("https://example.com/2.m3u8", entries[1].url)
        self.assertEqual(5, entries[1].line_number)
        self.assertEqual("#EXTINF:-1,CCTV2[高清]", entries[1].metadata_line)
        self.assertEqual([1, 4], [s.line_number for s in event_log.skipped])

    def test_invalid_url_drops_channel_without_using_an_ordinal(self):
        entries, event_log = parse([
            "#EXTINF:-1,Broken",
            "rtmp://example.com/live",
            "#EXTINF:-1,CCTV1",
            "http://example.com/1",
        ])
        self.assertEqual(1, len(entries))
        self.assertEqual(1, entries[0].ordinal)
        self.assertEqual(1, len(event_log.skipped))
        skipped = event_log.skipped[0]
        self.assertEqual(2, skipped.line_number)
        self.assertEqual("rtmp://example.com/live", skipped.content)
        self.assertEqual("#EXTINF:-1,Broken", skipped.channel_line)
        self.assertEqual(1, skipped.channel_line_number)
        self.assertEqual(
            "Line 2: rtmp://example.com/live (dropped channel line 1: #EXTINF:-1,Broken)",
            skipped.format(),
        )

    def test_rejected_url_line_does_not_open_a_channel(self):
        entries, event_log = parse([
            "#EXTINF:-1,First",
            "#EXTINF:-1,Second",
            "http://example.com/2",
        ])
        self.assertEqual([], entries)
        self.assertEqual([2, 3], [s.line_number for s in event_log.skipped])

    def test_trailing_metadata_line_without_url(self):
        entries, event_log = parse(["#EXTM3U", "#EXTINF:-1,Last"])
        self.assertEqual([], entries)
        self.assertEqual([1, 3], [s.line_number for s in event_log.skipped])

    def test_indented_metadata_line_is_accepted(self):
        entries, _ = parse(["   #EXTINF:-1,CCTV1", "  http://example.com/1"])
        self.assertEqual("http://example.com/1", entries[0].url)

    def test_placeholder_name_uses_running_counter(self):
        entries, _ = parse([
            "#EXTINF:-1,A", "http://a",
            "#EXTINF:-1,", "http://b",
        ])
        self.assertEqual("Unknown_Channel_2", entries[1].declared_name)

    def test_parsing_is_lazy(self):
        event_log = EventLog()
        entries = PlaylistParser(["#EXTINF:-1,A", "http://a", "junk"], event_log).entries()
        next(entries)
        self.assertEqual([], event_log.skipped)
        self.assertEqual([], list(entries))
        self.assertEqual(1, len(event_log.skipped))


class HeaderLinesTests(unittest.TestCase):
    def test_header_is_preserved(self):
        self.assertEqual(['#EXTM3U x-tvg-url="e.xml"'], header_lines(['\ufeff#EXTM3U x-tvg-url="e.xml"', "#EXTINF:-1,A"]))

    def test_missing_header_falls_back(self):
        self.assertEqual(["#EXTM3U"], header_lines(["#EXTINF:-1,A", "http://a"]))


class LoadPlaylistTests(unittest.TestCase):
    def test_local_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "iptv.m3u"
            path.write_bytes("\ufeff#EXTM3U\r\n#EXTINF:-1,CCTV1\r\nhttp://a\r\n".encode("utf-8"))
            lines = load_playlist_lines(str(path))
        self.assertEqual(["#EXTM3U", "#EXTINF:-1,CCTV1", "http://a"], lines)

    def test_non_utf8_bytes_are_dropped_with_warning(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "gbk.m3u"
            path.write_bytes(b"#EXTM3U\n#EXTINF:-1,\xd6\xd0CCTV1\nhttp://a\n")
            with self.assertLogs(level="WARNING") as logs:
                lines = load_playlist_lines(str(path))
        self.assertEqual(["#EXTM3U", "#EXTINF:-1,CCTV1", "http://a"], lines)
        self.assertIn("not valid UTF-8", logs.output[0])

    @mock.patch("iptv_m3u_checker.playlist.requests.get")
    def test_remote_playlist(self, get):
        get.return_value.content = "#EXTM3U\n#EXTINF:-1,CCTV1\nhttp://a".encode("utf-8")
        lines = load_playlist_lines("https://example.com/iptv.m3u", timeout=3)
        self.assertEqual(["#EXTM3U", "#EXTINF:-1,CCTV1", "http://a"], lines)
        get.assert_called_once()
        self.assertEqual(3, get.call_args.kwargs["timeout"])
        get.return_value.raise_for_status.assert_called_once()

    @mock.patch("iptv_m3u_checker.playlist.requests.get", side_effect=requests.ConnectionError("down"))
    def test_remote_errors_propagate(self, _get):
        with self.assertRaises(requests.RequestException):
            load_playlist_lines("http://example.com/iptv.m3u")


if __name__ == "__main__":
    unittest.main()
