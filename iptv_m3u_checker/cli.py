import argparse
import logging
import os
import signal
import sys
import time
from concurrent.futures import ThreadPoolExecutor

import requests

from iptv_m3u_checker.errors import MissingDependencyError, OutputWriteError
from iptv_m3u_checker.events import EventLog
from iptv_m3u_checker.playlist import PlaylistParser, header_lines, load_playlist_lines
from iptv_m3u_checker.processor import ChannelProcessor, Timeouts
from iptv_m3u_checker.prober import FFmpegProber, check_dependencies
from iptv_m3u_checker.report import ReportWriter

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_FILE = "script.log"
SCREENSHOT_DIR = "screenshots"


def print_header():
    print("\033[96m== IPTV M3U Checker ==\033[0m")
    print("\033[93mProbes every channel, grabs a screenshot and tags its resolution.\033[0m")
    print("\033[93mUse -h for help on how to use this tool.\n\033[0m")


def setup_logging(verbose_level):
    if verbose_level == 1:
        console_level = logging.INFO
    elif verbose_level >= 2:
        console_level = logging.DEBUG
    else:
        console_level = logging.CRITICAL  # Only critical errors will be logged by default.
    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=logging.DEBUG, handlers=[console])
    return console


def add_file_logging(path):
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
    return handler


def handle_sigint(signum, frame):
    logging.info("Interrupt received, stopping...")
    sys.exit(0)


def create_run_dir(parent):
    run_dir = os.path.join(parent, f"iptv_{time.strftime('%Y%m%d_%H%M%S')}")
    try:
        os.makedirs(os.path.join(run_dir, SCREENSHOT_DIR), exist_ok=True)
    except OSError as e:
        raise OutputWriteError(f"Cannot create output directory {run_dir}: {e}") from e
    return run_dir


def console_log_entry(result):
    color = "\033[92m" if result.connected else "\033[91m"
    status_symbol = '✓' if result.connected else '✕'
    entry = result.entry
    if result.connected:
        print(f"{color}{entry.ordinal} {status_symbol} {entry.declared_name} [{result.tier.label}] | Video: {result.video_track} - Audio: {result.audio_track}\033[0m")
    else:
        print(f"{color}{entry.ordinal} {status_symbol} {entry.declared_name} [{result.tier.label}]\033[0m")


def print_statistics(statistics):
    print("\n\033[93mStatistics:\033[0m")
    logging.info("Statistics:")
    for line in statistics.summary_lines():
        print(line)
        logging.info(line)


def run_batch(entries, processor, writer, workers=1, on_result=None):
    """Process every entry and hand the results to the writer in playlist order."""
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # map() yields in submission order, not completion order
            for result in executor.map(processor.process, entries):
                writer.record(result)
                if on_result:
                    on_result(result)
    else:
        for entry in entries:
            result = processor.process(entry)
            writer.record(result)
            if on_result:
                on_result(result)
    return writer.finalize()


def build_parser():
    parser = argparse.ArgumentParser(description="Check every channel of an IPTV M3U playlist, capture a screenshot, tag its resolution and write a cleaned playlist.")
    parser.add_argument("playlist", type=str, nargs="?", default="iptv.m3u", help="Path or http(s) URL of the M3U playlist")
    parser.add_argument("-probe_timeout", "-pt", type=float, default=10.0, help="Timeout in seconds for probing a stream with ffprobe")
    parser.add_argument("-screenshot_timeout", "-st", type=float, default=10.0, help="Timeout in seconds for capturing a screenshot with ffmpeg")
    parser.add_argument("-seek", type=float, default=5.0, help="Seconds into the stream at which the screenshot is taken")
    parser.add_argument("-output_dir", "-o", type=str, default=".", help="Directory in which the iptv_YYYYMMDD_HHMMSS run folder is created")
    parser.add_argument("-workers", "-w", type=int, default=1, help="Number of channels probed in parallel (results keep playlist order)")
    parser.add_argument("-ffprobe", type=str, default="ffprobe", help="ffprobe binary name or path")
    parser.add_argument("-ffmpeg", type=str, default="ffmpeg", help="ffmpeg binary name or path")
    parser.add_argument("-v", action="count", default=0, help="Increase output verbosity (-v for info, -vv for debug)")
    return parser


def main(argv=None, prober=None):
    args = build_parser().parse_args(argv)
    print_header()
    setup_logging(args.v)
    signal.signal(signal.SIGINT, handle_sigint)

    if prober is None:
        try:
            ffprobe_bin, ffmpeg_bin = check_dependencies(args.ffprobe, args.ffmpeg)
        except MissingDependencyError as e:
            print(str(e))
            logging.critical(str(e))
            return 1
        prober = FFmpegProber(ffprobe_bin, ffmpeg_bin)

    try:
        run_dir = create_run_dir(args.output_dir)
    except OutputWriteError as e:
        logging.critical(str(e))
        return 2

    file_handler = add_file_logging(os.path.join(run_dir, LOG_FILE))
    total_start = time.time()
    try:
        logging.info(f"Starting execution in directory {run_dir}")
        try:
            lines = load_playlist_lines(args.playlist)
        except FileNotFoundError:
            logging.error(f"File not found: {args.playlist}. Please check the path and try again.")
            return 1
        except (OSError, requests.RequestException) as e:
            logging.error(f"Could not read playlist {args.playlist}: {e}")
            return 1

        event_log = EventLog()
        timeouts = Timeouts(probe=args.probe_timeout, screenshot=args.screenshot_timeout, seek=args.seek)
        processor = ChannelProcessor(prober, event_log, os.path.join(run_dir, SCREENSHOT_DIR), timeouts)
        try:
            with ReportWriter(run_dir, event_log, header_lines(lines)) as writer:
                statistics = run_batch(
                    PlaylistParser(lines, event_log), processor, writer,
                    workers=max(1, args.workers), on_result=console_log_entry,
                )
        except OutputWriteError as e:
            logging.critical(str(e))
            return 2

        logging.info(f"Processing complete. Total duration: {time.time() - total_start:.1f} seconds.")
        print_statistics(statistics)
        return 0
    finally:
        logging.getLogger().removeHandler(file_handler)
        file_handler.close()
