#!/usr/bin/env python3
"""
Yunoa • Convert MP4 to HLS
==========================

Wraps `app.services.transcoder.convert_to_hls` for one-off conversions.

Usage
-----
    python scripts/convert_to_hls.py movie.mp4 out/movie \
      --watermark "user@example.com"
"""

import argparse
import asyncio
import sys

from app.services.transcoder import TranscodeError, convert_to_hls


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Convert an MP4 file into an HLS playlist + segments")
    ap.add_argument("input", help="Source video file")
    ap.add_argument("output_dir", help="Directory receiving playlist.m3u8 and segment_NNN.ts")
    ap.add_argument("--watermark", help="Text burned into the top-left corner")
    ap.add_argument("--timeout", type=float, help="Abort ffmpeg after this many seconds")
    args = ap.parse_args(argv)

    try:
        playlist = asyncio.run(
            convert_to_hls(args.input, args.output_dir, args.watermark, timeout=args.timeout)
        )
    except TranscodeError as e:
        print(f"Conversion failed: {e}", file=sys.stderr)
        if e.stderr:
            print(e.stderr, file=sys.stderr)
        return 1

    print(playlist)
    return 0


if __name__ == "__main__":
    sys.exit(main())
