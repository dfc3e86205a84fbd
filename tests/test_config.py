# tests/test_config.py
"""
Tests for hl7_toolkit.config
"""

from dataclasses import FrozenInstanceError

import pytest
import yaml

from hl7_toolkit.codec import DEFAULT_DELIMITERS
from hl7_toolkit.config import AppConfig, load_config, resolve_terminator
from hl7_toolkit.exceptions import DelimiterError


def test_load_config_defaults_when_path_is_none():
    cfg = load_config(None)
    assert isinstance(cfg, AppConfig)
    assert cfg.segment_terminator == "\r"
    assert cfg.delimiters() == DEFAULT_DELIMITERS


def test_load_config_reads_values(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text(
        "segment_terminator: crlf\n"
        "field_separator: '#'\n"
        "encoding_characters: '$*@!'\n"
    )
    cfg = load_config(p)
    assert cfg.segment_terminator == "\r\n"
    d = cfg.delimiters()
    assert (d.field, d.component, d.escape) == ("#", "$", "@")


def test_load_config_empty_file_uses_defaults(tmp_path):
    p = tmp_path / "empty.yaml"
    p.write_text("")
    assert load_config(p) == AppConfig()


def test_load_config_non_mapping_raises_type_error(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("- item1\n- item2\n")
    with pytest.raises(
        TypeError, match=r"^Config file must contain a mapping at top level"
    ):
        load_config(p)


def test_load_config_invalid_yaml_raises_yaml_error(tmp_path):
    p = tmp_path / "invalid.yaml"
    p.write_text("segment_terminator: [unclosed_list\n")
    with pytest.raises(yaml.YAMLError, match=r"^while parsing a flow sequence"):
        load_config(p)


def test_load_config_rejects_unknown_terminator(tmp_path):
    p = tmp_path / "term.yaml"
    p.write_text("segment_terminator: tab\n")
    with pytest.raises(ValueError, match=r"^Unsupported segment terminator"):
        load_config(p)


@pytest.mark.parametrize(
    "value, expected",
    [("cr", "\r"), ("LF", "\n"), ("crlf", "\r\n"), ("\r\n", "\r\n"), ("\n", "\n")],
)
def test_resolve_terminator(value, expected):
    assert resolve_terminator(value) == expected


def test_invalid_configured_delimiters_raise():
    cfg = AppConfig(encoding_characters="^^\\&")
    with pytest.raises(DelimiterError):
        cfg.delimiters()


def test_appconfig_is_immutable():
    cfg = AppConfig()
    with pytest.raises(FrozenInstanceError, match=r"^cannot assign to field"):
        cfg.segment_terminator = "\n"
