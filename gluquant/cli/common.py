"""Shared CLI helpers for operator tooling."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from typing import Iterable, Optional

from ..config import DeviceConfig
from ..hardware import ListedDevice
from ..protocols.registry import DEFAULT_PROFILE_NAME, ProtocolProfile, ProtocolRegistry


def add_device_arguments(parser: ArgumentParser) -> None:
    """Register the serial line options shared by the operator scripts."""

    parser.add_argument('--port', type=str, help='Serial device path (e.g. /dev/ttyUSB1 or COM4).')
    parser.add_argument('--profile', type=str, help='Analyzer profile name from the protocol registry.')
    parser.add_argument(
        '--no-profile-defaults',
        action='store_true',
        help='Keep configured line settings instead of the profile defaults.',
    )
    parser.add_argument('--baud', type=int, help='Override baud rate.')
    parser.add_argument('--data-bits', type=int, choices=[5, 6, 7, 8], help='Override data bits.')
    parser.add_argument('--stop-bits', type=float, choices=[1, 1.5, 2], help='Override stop bits.')
    parser.add_argument('--parity', type=str, choices=['N', 'E', 'O', 'M', 'S'], help='Override parity.')
    parser.add_argument('--rtscts', action='store_true', help='Enable RTS/CTS hardware flow control.')
    parser.add_argument('--simulate', action='store_true', help='Use the simulated analyzer transport.')


def apply_device_overrides(device: DeviceConfig, args: Namespace) -> None:
    """Apply command-line overrides stored in *args* to *device*."""

    if getattr(args, "port", None):
        device.port = args.port
    if getattr(args, "profile", None):
        device.profile = args.profile
    if getattr(args, "no_profile_defaults", False) or has_line_overrides(args):
        # Explicit line settings must survive profile resolution.
        device.use_profile_defaults = False
    if getattr(args, "simulate", False):
        device.profile = "gluquant_sim"
        device.transport = "sim"
    if getattr(args, "baud", None) is not None:
        device.baud = args.baud
    if getattr(args, "data_bits", None) is not None:
        device.data_bits = args.data_bits
    if getattr(args, "stop_bits", None) is not None:
        device.stop_bits = float(args.stop_bits)
    if getattr(args, "parity", None):
        device.parity = args.parity.upper()
    if getattr(args, "rtscts", False):
        device.rtscts = True


def has_line_overrides(args: Namespace) -> bool:
    return any(
        getattr(args, name, None) not in (None, False)
        for name in ("baud", "data_bits", "stop_bits", "parity", "rtscts")
    )


def resolve_profile(
    registry: ProtocolRegistry,
    device: DeviceConfig,
    *,
    default_profile: Optional[str] = None,
) -> ProtocolProfile:
    """Resolve the protocol profile requested by *device* and apply it."""

    if not device.profile and default_profile:
        device.profile = default_profile
    fallback = default_profile or DEFAULT_PROFILE_NAME
    try:
        return registry.apply_to_device(device)
    except KeyError as exc:
        name = device.profile or fallback
        available = ", ".join(registry.names())
        message = f"Profile '{name}' not found in registry"
        if available:
            message = f"{message}. Available profiles: {available}"
        raise ValueError(message) from exc


def format_port_listing(devices: Iterable[ListedDevice]) -> list[str]:
    lines = [
        f"  - {device.port} ({device.manufacturer or 'Unknown'}) [{device.serial or 'N/A'}]"
        for device in devices
    ]
    return lines or ["  (none)"]
