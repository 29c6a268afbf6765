"""Audit an IPTV M3U playlist: probe every channel, grab a screenshot and
classify its resolution, then write a report and a cleaned playlist."""

__version__ = "1.0.0"
