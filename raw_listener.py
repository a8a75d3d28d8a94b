"""Raw data listener for checking that an analyzer is transmitting at all.

Opens the serial port, dumps every received chunk in several forms and gives
up after ``--timeout`` seconds. Exits with status 1 when nothing arrived.
"""
from __future__ import annotations

import argparse
import logging
import sys
import time
from contextlib import ExitStack
from datetime import datetime
from pathlib import Path

from gluquant import load_config
from gluquant.cli.common import add_device_arguments, apply_device_overrides, resolve_profile
from gluquant.cli.console import RULE, banner
from gluquant.diagnostics import decimal_bytes, hex_dump, visible_controls
from gluquant.errors import TransportError
from gluquant.hardware import create_interface
from gluquant.protocols import load_registry

CHECKLIST = (
    "CHECKLIST:",
    "   - Did you press the 'Export' or 'Send to LIS' button?",
    "   - Is the analyzer in 'Manual Upload' or 'Auto Upload' mode?",
    "   - Is the correct serial port selected?",
    "   - Is the cable properly connected?",
    "   - Does the analyzer show any error messages?",
    "",
    "TRY:",
    "   1. Check the analyzer manual for the 'Data Upload' or 'LIS Communication' section",
    "   2. Look for a setting to enable 'Send to Computer' or 'External System'",
    "   3. Retry with --profile gluquant_hplc (9600 baud) or another --baud value",
    "   4. Verify the cable with a loopback test (connect TX to RX)",
)


class ChunkPrinter:
    """Print every chunk as decimal bytes, hex dump, raw and control-visible ASCII."""

    def __init__(self, started_at: float) -> None:
        self._started_at = started_at
        self.total = 0

    def __call__(self, data: bytes) -> None:
        self.total += len(data)
        elapsed = time.monotonic() - self._started_at
        text = data.decode("utf-8", errors="replace")
        print(f"\nDATA RECEIVED after {elapsed:.1f} seconds")
        print(f"Received {len(data)} bytes (Total: {self.total} bytes)")
        print("\nRAW BYTES (decimal):")
        print(decimal_bytes(data))
        print("\nHEX:")
        for line in hex_dump(data):
            print(line)
        print("\nASCII (raw):")
        print(text)
        print("\nASCII (with control characters visible):")
        print(visible_controls(text))
        print("\n" + "-" * 70)
        print("Continuing to listen for more data...\n")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description='Dump raw bytes received from the analyzer serial port.')
    parser.add_argument('--config', type=str, help='Path to the application config (JSON, TOML or YAML).')
    add_device_arguments(parser)
    parser.add_argument('--timeout', type=float, default=60.0, help='Seconds to listen before giving up (default: 60).')
    parser.add_argument(
        '--status-interval', type=float, default=10.0, help='Seconds between "still waiting" messages (default: 10).'
    )
    parser.add_argument('--log', type=str, help='Append raw bytes to this file.')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format='%(levelname)s %(name)s: %(message)s')

    config = load_config(Path(args.config) if args.config else None)
    device = config.device
    try:
        apply_device_overrides(device, args)
        # The manual's factory line settings are the first thing to try.
        resolve_profile(load_registry(None), device, default_profile='gluquant_factory')
    except ValueError as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return 1

    for line in banner('SIMPLE RAW DATA LISTENER'):
        print(line)

    interface = create_interface(device)
    try:
        interface.open()
    except TransportError as exc:
        print(f'Failed to open port: {exc}', file=sys.stderr)
        return 1

    started_at = time.monotonic()
    printer = ChunkPrinter(started_at)
    with ExitStack() as stack:
        stack.callback(print, '\nPort closed')
        stack.callback(interface.close)
        try:
            log_file = stack.enter_context(open(args.log, 'ab')) if args.log else None
        except OSError as exc:
            print(f'Failed to open log file: {exc}', file=sys.stderr)
            return 1

        def _handle(data: bytes) -> None:
            printer(data)
            if log_file:
                log_file.write(data)

        print(f'\nPort {device.port} opened successfully')
        print(f'Settings: {device.baud} baud, {device.data_bits} data bits, parity {device.parity}, {device.describe().rsplit("-", 1)[-1]} stop bit(s)')
        print('\nListening for ANY data...')
        print(f'Started at: {datetime.now().strftime("%H:%M:%S")}')
        print(f'\n{RULE}\nNOW: Export/Send a report from your analyzer!\n{RULE}')
        print(f'\nWaiting for data... (This will run for {args.timeout:g} seconds)')
        print('Press Ctrl+C to stop early\n')

        next_status = started_at + args.status_interval if args.status_interval > 0 else None
        try:
            while True:
                remaining = args.timeout - (time.monotonic() - started_at)
                if remaining <= 0:
                    break
                interface.run_window(min(1.0, remaining), _handle)
                now = time.monotonic()
                if next_status is not None and now >= next_status:
                    if printer.total == 0:
                        print(f'{int(now - started_at)}s elapsed, 0 bytes received - still waiting...')
                    next_status = now + args.status_interval
        except KeyboardInterrupt:
            print('\n\nInterrupted by user')
            return 0
        except TransportError as exc:
            print(f'\nSerial port error: {exc}', file=sys.stderr)
            return 1

    print('\n' + RULE)
    if printer.total == 0:
        print(f'{args.timeout:g} seconds elapsed - NO DATA RECEIVED')
        print(RULE)
        print('\nPROBLEM IDENTIFIED: Analyzer is not sending data\n')
        for line in CHECKLIST:
            print(line)
        return 1
    print(f'Received {printer.total} total bytes')
    print(RULE)
    return 0


if __name__ == '__main__':
    raise SystemExit(main(sys.argv[1:]))
