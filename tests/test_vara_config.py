from __future__ import annotations

import logging

import pytest

from config_validation import ConfigValidationError, validate_vara_settings
from modem_interface import ModemConfigurationError
from modem_registry import MODEM_SCHEMES, bandwidths
from modems.vara import ModemConfig, load_modem_config

log = logging.getLogger("test")


def test_defaults_are_back_filled():
    cfg = ModemConfig().with_defaults()
    assert (cfg.host, cfg.cmd_port, cfg.data_port) == ("localhost", 8300, 8301)


def test_data_port_follows_command_port():
    cfg = ModemConfig(cmd_port=8400).with_defaults()
    assert cfg.data_port == 8401


def test_explicit_values_are_kept():
    cfg = ModemConfig(host="vara.lan", cmd_port=9000, data_port=9100).with_defaults()
    assert (cfg.host, cfg.cmd_port, cfg.data_port) == ("vara.lan", 9000, 9100)


def test_config_is_immutable():
    cfg = ModemConfig().with_defaults()
    with pytest.raises(Exception):
        cfg.host = "elsewhere"


def test_out_of_range_port_is_rejected():
    with pytest.raises(ModemConfigurationError):
        ModemConfig(cmd_port=70000).with_defaults()


def test_load_modem_config_reads_vara_section():
    cfg = load_modem_config({"vara": {"host": "10.0.0.5", "cmd_port": "8500"}})
    assert (cfg.host, cfg.cmd_port, cfg.data_port) == ("10.0.0.5", 8500, 8501)
    assert load_modem_config(None) == ModemConfig().with_defaults()


def test_load_modem_config_rejects_garbage_port():
    with pytest.raises(ModemConfigurationError):
        load_modem_config({"vara": {"cmd_port": "eighty"}})


def test_scheme_registry():
    assert bandwidths("varahf") == ["500", "2300", "2750"]
    assert bandwidths("varafm") == []
    assert bandwidths("unknown") == []
    assert MODEM_SCHEMES["varahf"]["hf_commands"] is True
    assert MODEM_SCHEMES["varafm"]["hf_commands"] is False
    for entry in MODEM_SCHEMES.values():
        assert set(entry) == {"label", "hf_commands", "bandwidths"}


def test_valid_settings_pass():
    settings = {
        "vara": {"scheme": "varahf", "mycall": "N0CALL", "bandwidth": 2300, "cmd_port": 8300},
        "ptt": {"type": "rigctl", "port": 4532},
    }
    validate_vara_settings(settings, log)
    validate_vara_settings({}, log, mycall="N0CALL")


@pytest.mark.parametrize(
    "settings",
    [
        {"vara": {"scheme": "pactor", "mycall": "N0CALL"}},
        {"vara": {"scheme": "varahf"}},
        {"vara": {"mycall": "N0CALL", "bandwidth": 1000}},
        {"vara": {"scheme": "varafm", "mycall": "N0CALL", "bandwidth": 2300}},
        {"vara": {"mycall": "N0CALL", "cmd_port": "abc"}},
        {"vara": {"mycall": "N0CALL", "data_port": 0}},
        {"vara": {"mycall": "N0CALL"}, "ptt": {"type": "serial"}},
    ],
)
def test_invalid_settings_raise(settings):
    with pytest.raises(ConfigValidationError):
        validate_vara_settings(settings, log)
