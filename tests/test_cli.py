# tests/test_cli.py
"""
Tests for hl7_toolkit/cli.
"""

import io
import json as _json
import os
import re
import runpy
import sys
import types
from pathlib import Path

import pytest

from hl7_toolkit import cli
from hl7_toolkit.message import parse_message


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

HL7_TEXT = (
    "MSH|^~\\&|HIS|RIH|EKG|EKG|20250101123000||ADT^A01|MSG00001|P|2.5.1\n"
    "EVN|A01|20250101123000\n"
    "PID|1||12345^^^MRN||Doe^John||19700101|M\n"
    "PV1|1|I|2000^2012^01||||1234^Physician^Primary\n"
)


def write_hl7(tmp_path: Path, name: str = "msg.hl7", text: str = HL7_TEXT) -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


# ------------------------------------------------------------------------------
# Happy paths
# ------------------------------------------------------------------------------


def test_parse_ok(tmp_path, capsys):
    p = write_hl7(tmp_path)
    code = cli.main(["parse", str(p)])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert out.splitlines() == HL7_TEXT.splitlines()


def test_parse_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO(HL7_TEXT.replace("\n", "\r")))
    code = cli.main(["parse", "-"])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert out.splitlines()[2] == "PID|1||12345^^^MRN||Doe^John||19700101|M"


def test_get_prints_each_path(tmp_path, capsys):
    p = write_hl7(tmp_path)
    code = cli.main(["get", str(p), "MSH.9.2", "PID.5", "PID.3.4", "PV1.50"])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert out.split("\n")[:4] == ["A01", "Doe^John", "MRN", ""]


def test_transform_stdout_pretty_ok(tmp_path, capsys):
    p = write_hl7(tmp_path)
    code = cli.main(["transform", str(p), "--pretty"])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert out.startswith("{\n")
    data = _json.loads(out)
    assert list(data) == ["MSH", "EVN", "PID", "PV1"]
    assert data["MSH"][0]["MSH.9"] == {"MSH.9.1": "ADT", "MSH.9.2": "A01"}
    assert data["PID"][0]["PID.5"]["PID.5.2"] == "John"


def test_build_applies_assignments(tmp_path, capsys):
    p = write_hl7(tmp_path)
    code = cli.main(
        ["build", str(p), "--set", "MSH.9.2=A08", "--set", "PID.8=F", "--terminator", "lf"]
    )
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    expected = HL7_TEXT.replace("ADT^A01", "ADT^A08").replace("19700101|M", "19700101|F")
    assert out == expected


def test_build_uses_configured_terminator(tmp_path, capsys):
    p = write_hl7(tmp_path)
    cfg = tmp_path / "config.yaml"
    cfg.write_text("segment_terminator: crlf\n")
    code = cli.main(["--config", str(cfg), "build", str(p)])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert out.count("\r\n") == 4


def test_new_without_timestamp(capsys):
    code = cli.main(
        [
            "new",
            "--no-timestamp",
            "--set",
            "MSH.9=ADT^A04",
            "--set",
            "PID.5.1=DOE",
            "--terminator",
            "lf",
        ]
    )
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert out == "MSH|^~\\&|||||||ADT^A04\nPID|||||DOE\n"


def test_new_creates_numbered_segments(capsys):
    code = cli.main(["new", "--no-timestamp", "--set", "OBX[2].1=2"])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert out == "MSH|^~\\&\rOBX\rOBX|2\r"


def test_new_stamps_msh7(capsys):
    code = cli.main(["new", "--set", "MSH.9=ADT^A01"])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert re.fullmatch(r"\d{14}", parse_message(out).get("MSH.7"))


# ------------------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------------------


def test_parse_file_not_found(tmp_path):
    missing = tmp_path / "nope.hl7"
    code = cli.main(["parse", str(missing)])
    assert code == cli.EXIT_ERR


def test_parse_path_is_directory(tmp_path):
    d = tmp_path / "adir"
    d.mkdir()
    code = cli.main(["parse", str(d)])
    assert code == cli.EXIT_ERR


def test_parse_not_readable(tmp_path, monkeypatch):
    p = write_hl7(tmp_path)
    real_access = os.access
    # force unreadable
    monkeypatch.setattr(
        os,
        "access",
        lambda path, mode: (
            False if Path(path) == p and (mode & os.R_OK) else real_access(path, mode)
        ),
    )
    code = cli.main(["parse", str(p)])
    assert code == cli.EXIT_ERR


def test_parse_malformed_message(tmp_path):
    p = write_hl7(tmp_path, text="PID|1||12345\n")
    assert cli.main(["parse", str(p)]) == cli.EXIT_ERR


def test_transform_malformed_message(tmp_path, capsys):
    p = write_hl7(tmp_path, text="MSH|^~\\&|A\npid|1\n")
    code = cli.main(["transform", str(p)])
    out, _ = capsys.readouterr()
    assert code == cli.EXIT_ERR
    assert out == ""


def test_get_unknown_segment(tmp_path):
    p = write_hl7(tmp_path)
    assert cli.main(["get", str(p), "OBX.5"]) == cli.EXIT_ERR


@pytest.mark.parametrize("assignment", ["MSH92", "msh.9=X", "PID=X"])
def test_build_rejects_bad_assignments(tmp_path, assignment):
    p = write_hl7(tmp_path)
    assert cli.main(["build", str(p), "--set", assignment]) == cli.EXIT_ERR


def test_build_rejects_header_change(tmp_path):
    p = write_hl7(tmp_path)
    assert cli.main(["build", str(p), "--set", "MSH.2=^~"]) == cli.EXIT_ERR


def test_invalid_config_is_cli_error(tmp_path):
    p = write_hl7(tmp_path)
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("- item1\n- item2\n")
    assert cli.main(["--config", str(cfg), "parse", str(p)]) == cli.EXIT_CLI


def test_missing_config_is_cli_error(tmp_path):
    p = write_hl7(tmp_path)
    missing = tmp_path / "none.yaml"
    assert cli.main(["--config", str(missing), "parse", str(p)]) == cli.EXIT_CLI


# ------------------------------------------------------------------------------
# _read_text_input / _parse_assignments
# ------------------------------------------------------------------------------


def _raise(exc):
    def boom(*a, **k):
        raise exc

    return boom


def test_read_text_input_file_not_found(tmp_path, monkeypatch):
    p = tmp_path / "ghost.hl7"
    monkeypatch.setattr(Path, "open", _raise(FileNotFoundError("nope")))
    with pytest.raises(cli.HL7ToolkitError, match=r"^File not found"):
        cli._read_text_input(p)


def test_read_text_input_permission_error(tmp_path, monkeypatch):
    p = write_hl7(tmp_path)
    monkeypatch.setattr(Path, "open", _raise(PermissionError("denied")))
    with pytest.raises(cli.HL7ToolkitError, match=r"^Permission denied"):
        cli._read_text_input(p)


def test_read_text_input_oserror(tmp_path, monkeypatch):
    p = write_hl7(tmp_path)
    monkeypatch.setattr(Path, "open", _raise(OSError("weird-os")))
    with pytest.raises(cli.HL7ToolkitError, match=r"^Failed to read"):
        cli._read_text_input(p)


def test_read_text_input_rejects_invalid_utf8(tmp_path):
    p = tmp_path / "latin.hl7"
    p.write_bytes(b"MSH|^~\\&|A\rPID|1||\xff\xfe")
    with pytest.raises(cli.HL7ToolkitError, match=r"is not valid UTF-8"):
        cli._read_text_input(p)


def test_parse_invalid_utf8_exits_with_error(tmp_path):
    p = tmp_path / "latin.hl7"
    p.write_bytes(b"MSH|^~\\&|A\rPID|1||\xff\xfe")
    assert cli.main(["parse", str(p)]) == cli.EXIT_ERR


def test_read_text_input_keeps_carriage_returns(tmp_path):
    p = tmp_path / "cr.hl7"
    p.write_bytes(b"MSH|^~\\&\rPID|1\r")
    assert cli._read_text_input(p) == "MSH|^~\\&\rPID|1\r"


def test_parse_assignments_keeps_value_verbatim():
    [(coord, value)] = cli._parse_assignments(["PID.5.1 = O'Neil=Smith"])
    assert str(coord) == "PID.5.1"
    assert value == " O'Neil=Smith"


# ------------------------------------------------------------------------------
# main()
# ------------------------------------------------------------------------------


def test_main_keyboardinterrupt(tmp_path, monkeypatch):
    p = write_hl7(tmp_path)
    monkeypatch.setattr(
        "hl7_toolkit.cli._cmd_parse",
        lambda _: (_ for _ in ()).throw(KeyboardInterrupt),
    )
    code = cli.main(["parse", str(p)])
    assert code == cli.EXIT_ERR


def test_main_unknown_command_path(monkeypatch):
    class DummyParser:
        def parse_args(self, argv=None):
            # main() reads verbose and config before dispatching
            return types.SimpleNamespace(cmd="weird", verbose=0, config=None)

        def error(self, msg):
            # override to NOT raise SystemExit so main() reaches return EXIT_CLI
            return None

    monkeypatch.setattr("hl7_toolkit.cli._build_parser", lambda: DummyParser())
    code = cli.main([])
    assert code == cli.EXIT_CLI


def test_main_usage_error_exits_2(capsys):
    with pytest.raises(SystemExit) as e:
        cli.main(["build"])
    assert e.value.code == cli.EXIT_CLI


# ------------------------------------------------------------------------------
# __main__
# ------------------------------------------------------------------------------


def test_main_dunder_name_runs_ok(monkeypatch):
    # Execute module as __main__ cleanly
    for k in list(sys.modules.keys()):
        if k.startswith("hl7_toolkit"):
            sys.modules.pop(k, None)

    old_argv, old_stdin = sys.argv, sys.stdin
    try:
        sys.argv = ["hl7-toolkit", "parse", "-"]
        sys.stdin = io.StringIO(HL7_TEXT)
        with pytest.raises(SystemExit) as e:
            runpy.run_module("hl7_toolkit.cli", run_name="__main__")
        assert e.value.code == 0
    finally:
        sys.argv, sys.stdin = old_argv, old_stdin
