import json

import pytest

from gluquant.cli.common import resolve_profile
from gluquant.config import DeviceConfig, FramingConfig, load_config
from gluquant.protocols import DEFAULT_PROFILE_NAME, DEFAULT_PROFILES, ProtocolRegistry, load_registry


def test_apply_to_device_applies_profile_defaults():
    registry = ProtocolRegistry.from_dict(DEFAULT_PROFILES)
    device = DeviceConfig(profile='gluquant_factory', baud=4800)

    profile = registry.apply_to_device(device)

    assert profile.name == 'gluquant_factory'
    assert device.profile == 'gluquant_factory'
    assert device.transport == 'serial'
    assert device.baud == 115200
    assert device.parity == 'N'
    assert device.read_timeout_s == pytest.approx(0.2)
    assert device.chunk_size == 4096


def test_apply_to_device_falls_back_to_default_when_missing():
    registry = ProtocolRegistry.from_dict(DEFAULT_PROFILES)
    device = DeviceConfig(profile='unknown-model')

    profile = registry.apply_to_device(device)

    assert profile.name == DEFAULT_PROFILE_NAME
    assert device.profile == DEFAULT_PROFILE_NAME
    assert device.baud == 9600


def test_apply_to_device_respects_no_defaults_for_serial_settings():
    profiles = {
        'custom': {
            'description': 'Custom profile',
            'transport': 'serial',
            'baud': 19200,
            'parity': 'E',
        }
    }
    registry = ProtocolRegistry.from_dict(profiles)
    device = DeviceConfig(profile='custom', use_profile_defaults=False, baud=4800)

    profile = registry.apply_to_device(device)

    assert profile.name == 'custom'
    # Line settings unchanged.
    assert device.baud == 4800
    assert device.parity == 'N'
    assert device.transport == 'serial'


def test_apply_to_device_raises_when_profile_not_found_and_no_default():
    registry = ProtocolRegistry.from_dict({'custom': {'transport': 'serial'}})
    device = DeviceConfig(profile='missing')

    with pytest.raises(KeyError):
        registry.apply_to_device(device)


def test_simulation_profile_switches_transport_only():
    registry = ProtocolRegistry.from_dict(DEFAULT_PROFILES)
    device = DeviceConfig(profile='gluquant_sim')

    registry.apply_to_device(device)

    assert device.transport == 'sim'
    assert device.baud == 9600


def test_profile_delimiters_flow_into_framing_config():
    registry = ProtocolRegistry.from_dict(
        {'bench': {'start_delimiter': '<MSG>', 'end_delimiter': '</MSG>'}}
    )
    framing = FramingConfig()

    registry.get('BENCH').apply_framing(framing)

    assert framing.start_delimiter == '<MSG>'
    assert framing.end_delimiter == '</MSG>'


def test_default_profiles_leave_framing_untouched():
    registry = load_registry(None)
    framing = FramingConfig(start_delimiter='\x02', end_delimiter='\x03')

    assert registry.names() == ['gluquant_factory', 'gluquant_hplc', 'gluquant_sim']
    for name in registry.names():
        profile = registry.get(name)
        assert profile.start_delimiter is None
        assert profile.end_delimiter is None
        profile.apply_framing(framing)

    assert framing.start_delimiter == '\x02'
    assert framing.end_delimiter == '\x03'


def test_configured_delimiters_survive_profile_resolution(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(
        json.dumps(
            {
                'device': {'profile': 'bench', 'use_profile_defaults': False},
                'framing': {'start_delimiter': '\x02', 'end_delimiter': '\x03'},
            }
        ),
        encoding='utf-8',
    )
    config = load_config(path)
    registry = ProtocolRegistry.from_dict(
        {'bench': {'transport': 'serial', 'start_delimiter': '<MSG>', 'end_delimiter': '</MSG>'}}
    )

    profile = resolve_profile(registry, config.device)
    profile.apply_framing(config.framing, use_profile_defaults=config.device.use_profile_defaults)

    assert config.framing.start_delimiter == '\x02'
    assert config.framing.end_delimiter == '\x03'


def test_profile_delimiters_are_validated():
    registry = ProtocolRegistry.from_dict({'broken': {'start_delimiter': '</SEND>'}})
    framing = FramingConfig()

    with pytest.raises(ValueError):
        registry.get('broken').apply_framing(framing)

def test_load_registry_from_yaml(tmp_path):
    path = tmp_path / 'profiles.yaml'
    path.write_text(
        'profiles:\n'
        '  lab_bench:\n'
        '    transport: serial\n'
        '    baud: 38400\n'
        '    rtscts: true\n',
        encoding='utf-8',
    )

    registry = load_registry(path)
    device = DeviceConfig(profile='lab_bench')
    registry.apply_to_device(device)

    assert device.baud == 38400
    assert device.rtscts is True


def test_load_registry_requires_profiles_mapping(tmp_path):
    path = tmp_path / 'profiles.json'
    path.write_text('{"gluquant_hplc": {}}', encoding='utf-8')

    with pytest.raises(ValueError):
        load_registry(path)


def test_load_registry_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_registry(tmp_path / 'absent.toml')
