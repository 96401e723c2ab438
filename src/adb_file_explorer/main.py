#!/usr/bin/env python3
"""
ADB File Explorer - Command line entry point
Lists devices or a device folder; handy for checking the adb setup without the UI.
"""

import asyncio
import sys
from typing import List, Optional

from .managers.session_manager import FileExplorerSession
from .settings import get_settings
from .utils.logger import setup_logging


async def _run(args: List[str]) -> int:
    session = FileExplorerSession()
    try:
        if not args or args[0] == "devices":
            result = await session.list_devices()
            if not result.ok:
                print(f"Failed to list devices: {result.reason}", file=sys.stderr)
                return 1
            for device_id in result.value:
                print(device_id)
            return 0

        if args[0] == "ls" and len(args) == 3:
            result = await session.list_folder(args[1], args[2])
            if not result.ok:
                print(f"Error: {result.reason}", file=sys.stderr)
                return 1
            for entry in result.value:
                size = "" if entry.size is None else entry.size
                print(f"{entry.key}\t{size}")
            return 0

        print("usage: adb-file-explorer [devices | ls DEVICE_ID PATH]", file=sys.stderr)
        return 2
    finally:
        session.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_to_file)
    return asyncio.run(_run(list(sys.argv[1:] if argv is None else argv)))


if __name__ == "__main__":
    sys.exit(main())
