"""CLI entry point for the GLUQUANT HbA1c HPLC LIS interface server."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from gluquant import load_config
from gluquant.acquisition import AcquisitionService
from gluquant.cli.common import add_device_arguments, apply_device_overrides, format_port_listing, resolve_profile
from gluquant.cli.console import banner, describe_config, make_event_printer
from gluquant.hardware import list_devices
from gluquant.protocols import load_registry
from gluquant.service import CaptureWatchdog, ServiceSupervisor, SupervisorOptions


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description='Receive LIS uploads from a GLUQUANT HbA1c HPLC analyzer and print decoded results.',
    )
    parser.add_argument('--config', type=str, help='Path to the application config (JSON, TOML or YAML).')
    parser.add_argument('--protocols', type=str, help='Path to a protocol registry overriding the built-in profiles.')
    add_device_arguments(parser)
    parser.add_argument('--max-runtime-s', type=float, help='Stop after this many seconds (0 = unlimited).')
    parser.add_argument('--debug', action='store_true', help='Log hex dumps of every received chunk.')
    parser.add_argument('--quiet-comms', action='store_true', help='Do not log received traffic.')
    parser.add_argument('--no-json', action='store_true', help='Do not print the JSON form of each result.')
    parser.add_argument(
        '--watchdog-timeout',
        type=float,
        default=0,
        help='Warn when no data arrives for this many seconds (0 to disable).',
    )
    parser.add_argument('--watchdog-poll', type=float, default=2.0, help='Watchdog poll interval (seconds).')

    args = parser.parse_args(argv)

    config_path = Path(args.config) if args.config else None
    if config_path is not None and not config_path.exists():
        print(f'Config file not found: {config_path}', file=sys.stderr)
        return 1

    config = load_config(config_path)
    acquisition = config.acquisition
    if args.debug:
        acquisition.debug_mode = True
    if args.quiet_comms:
        acquisition.log_communications = False
    if args.max_runtime_s is not None and args.max_runtime_s >= 0:
        acquisition.max_runtime_s = args.max_runtime_s

    logging.basicConfig(
        level=logging.DEBUG if acquisition.debug_mode else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        registry = load_registry(Path(args.protocols) if args.protocols else None)
        apply_device_overrides(config.device, args)
        profile = resolve_profile(registry, config.device)
        profile.apply_framing(config.framing, use_profile_defaults=config.device.use_profile_defaults)
    except (OSError, ValueError) as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return 1

    for line in banner('GLUQUANT HBA1C HPLC - LIS Interface Server'):
        print(line)
    print('\nAvailable ports:')
    for line in format_port_listing(list_devices(config.device.transport)):
        print(line)
    print('')
    for line in describe_config(config):
        print(line)
    print('')

    service = AcquisitionService(
        config,
        on_event=make_event_printer(include_json=not args.no_json, include_raw=config.decoder.emit_raw),
    )
    supervisor = ServiceSupervisor(
        service,
        options=SupervisorOptions(handle_signals=True),
        on_shutdown_signal=lambda signum: print('\nShutting down...'),
    )
    if args.watchdog_timeout and args.watchdog_timeout > 0:
        poll = args.watchdog_poll if args.watchdog_poll and args.watchdog_poll > 0 else 2.0
        supervisor.add_watchdog(
            CaptureWatchdog(
                service,
                timeout_s=args.watchdog_timeout,
                poll_interval_s=poll,
                on_event=ServiceSupervisor.default_watchdog_handler,
            )
        )

    try:
        supervisor.run()
    except KeyboardInterrupt:
        print('Interrupted by user, stopping...')
        service.request_stop()
    stats = service.stats
    print(
        f'Server stopped: results={stats.results} decode_failures={stats.decode_failures} '
        f'overflows={stats.overflows} bytes={stats.bytes_read}'
    )
    return 0


if __name__ == '__main__':
    raise SystemExit(main(sys.argv[1:]))
