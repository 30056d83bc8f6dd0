from __future__ import annotations

import io
import json
import threading

import pytest

import main
from main import (
    INVALID_JSON_OUTPUT,
    SAMPLE_JSON,
    ConversionSession,
    PLogger,
    convert_text,
    load_config,
    run_watch,
    watch_file,
)
from sinks import OutputSinks

QUIET = {"enabled": False}


def _cfg(**app):
    cfg = load_config()
    cfg["app"].update({"debounce_ms": 10_000, "poll_interval": 0})
    cfg["app"].update(app)
    cfg["logging"]["enabled"] = False
    return cfg


def test_convert_text_valid_and_invalid():
    app = load_config()["app"]
    assert convert_text('{"a": 1}', app) == "export interface Root {\n  a: number;\n}"
    assert convert_text('{"a": ', app) == INVALID_JSON_OUTPUT
    assert convert_text("", app) == INVALID_JSON_OUTPUT


def test_convert_text_uses_app_options():
    app = {"root_name": "payload", "use_optional": True, "use_readonly": True}
    assert convert_text('{"a": 1}', app) == "export interface Payload {\n  readonly a?: number;\n}"


def test_convert_text_logs_parse_failure():
    stream = io.StringIO()
    logger = PLogger({"timestamp": False}, stream=stream)
    convert_text("{oops}", {}, logger)
    assert stream.getvalue().startswith("[json2ts] [PARSE] Invalid JSON at line 1")


def test_load_config_defaults_and_overrides(tmp_path):
    cfg = load_config()
    assert cfg["app"]["debounce_ms"] == 500
    assert cfg["sinks"]["export_path"] == "interfaces.ts"

    path = tmp_path / "config.yaml"
    path.write_text("app:\n  root_name: Payload\n  use_optional: true\nlogging:\n  prefix: '[x]'\n", encoding="utf-8")
    cfg = load_config(str(path))
    assert cfg["app"]["root_name"] == "Payload"
    assert cfg["app"]["use_optional"] is True
    assert cfg["app"]["debounce_ms"] == 500
    assert cfg["logging"]["prefix"] == "[x]"
    assert load_config()["app"]["root_name"] == "Root"


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_plogger_format():
    stream = io.StringIO()
    PLogger({"timestamp": False, "prefix": "[t]"}, stream=stream).log("SEC", "hello")
    assert stream.getvalue() == "[t] [SEC] hello\n"

    stream = io.StringIO()
    PLogger({"enabled": False}, stream=stream).log("SEC", "hello")
    assert stream.getvalue() == ""


def test_session_debounces_input_and_reruns_on_options():
    outputs = []
    session = ConversionSession(_cfg(), on_output=outputs.append)
    try:
        first = session.convert()
        assert first.startswith("export interface Root {\n  name: string;")

        # options re-run the last debounced input right away
        out = session.set_use_optional(True)
        assert "  name?: string;" in out
        assert session.use_optional

        session.set_input('{"x": 1}')
        session.set_input('{"x": "later"}')
        out = session.set_use_readonly(True)
        assert "  readonly name?: string;" in out
        assert len(outputs) == 3

        assert session.flush() is True
        assert session.output == "export interface Root {\n  readonly x?: string;\n}"
        assert session.debounced_input == '{"x": "later"}'
        assert len(outputs) == 4
    finally:
        session.close()


def test_session_manual_convert_uses_latest_input():
    session = ConversionSession(_cfg(), json_input="{}")
    try:
        session.set_input("[1, 2")
        assert session.convert() == INVALID_JSON_OUTPUT
        assert session.convert('{"a": true}') == "export interface Root {\n  a: boolean;\n}"
    finally:
        session.close()


def test_session_delivers_after_quiet_period():
    done = threading.Event()
    outputs = []

    def on_output(text):
        outputs.append(text)
        done.set()

    session = ConversionSession(_cfg(debounce_ms=20), on_output=on_output)
    try:
        session.set_input('{"a": 1}')
        assert done.wait(2.0)
        assert outputs == ["export interface Root {\n  a: number;\n}"]
    finally:
        session.close()


def test_watch_file_feeds_session(tmp_path):
    path = tmp_path / "data.json"
    path.write_text(json.dumps({"id": 7, "tags": []}), encoding="utf-8")
    session = ConversionSession(_cfg(), json_input="")
    watch_file(str(path), session, poll_interval=0, max_polls=1)
    assert session.output == "export interface Root {\n  id: number;\n  tags: any[];\n}"


def test_watch_file_stops_on_event(tmp_path):
    stop = threading.Event()
    stop.set()
    session = ConversionSession(_cfg(), json_input="")
    watch_file(str(tmp_path / "missing.json"), session, stop_event=stop)
    assert session.output == ""


def test_run_watch_publishes_to_sinks(tmp_path):
    path = tmp_path / "data.json"
    path.write_text('{"ok": true}', encoding="utf-8")
    out_file = tmp_path / "interfaces.ts"
    stream = io.StringIO()
    cfg = _cfg()
    sinks = OutputSinks(cfg["sinks"], stream=stream)
    code = run_watch(str(path), cfg, PLogger(QUIET), sinks, output_path=str(out_file), max_polls=1)
    assert code == 0
    expected = "export interface Root {\n  ok: boolean;\n}"
    assert stream.getvalue() == expected + "\n"
    assert out_file.read_text(encoding="utf-8") == expected


def test_cli_converts_file(tmp_path, capsys):
    path = tmp_path / "data.json"
    path.write_text(SAMPLE_JSON, encoding="utf-8")
    assert main.main([str(path), "-q"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("export interface Root {\n")
    assert "  address: Address;\n" in out
    assert "export interface Address {\n  street: string;\n  city: string;\n  zip: number;\n}\n" in out
    assert "  tags: string[];\n" in out


def test_cli_flags_and_output_file(tmp_path, capsys):
    path = tmp_path / "data.json"
    path.write_text('{"a": 1}', encoding="utf-8")
    target = tmp_path / "out.ts"
    code = main.main([str(path), "-q", "--optional", "--readonly", "--root-name", "item", "-o", str(target)])
    assert code == 0
    expected = "export interface Item {\n  readonly a?: number;\n}"
    assert capsys.readouterr().out == expected + "\n"
    assert target.read_text(encoding="utf-8") == expected


def test_cli_collision_and_order_flags(tmp_path, capsys):
    path = tmp_path / "data.json"
    path.write_text('{"a": {"x": {"k": 1}}, "b": {"x": {"j": 1}}}', encoding="utf-8")
    assert main.main([str(path), "-q", "--collision", "first_wins", "--leaf-first"]) == 0
    out = capsys.readouterr().out
    assert "BX" not in out
    assert out.rstrip().endswith("export interface Root {\n  a: A;\n  b: B;\n}")


def test_cli_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO('["x"]'))
    assert main.main(["-q"]) == 0
    assert capsys.readouterr().out == "export type Root = string[];\n"


def test_cli_invalid_json(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text("{nope", encoding="utf-8")
    assert main.main([str(path), "-q"]) == 1
    assert capsys.readouterr().out == INVALID_JSON_OUTPUT + "\n"


def test_cli_missing_file(tmp_path, capsys):
    assert main.main([str(tmp_path / "absent.json"), "-q"]) == 2
    assert "File not found" in capsys.readouterr().err


def test_cli_config_file_and_logging(tmp_path, capsys):
    cfg = tmp_path / "config.yaml"
    cfg.write_text("app:\n  root_name: Payload\nlogging:\n  timestamp: false\n", encoding="utf-8")
    path = tmp_path / "data.json"
    path.write_text("{}", encoding="utf-8")
    assert main.main([str(path), "--config", str(cfg)]) == 0
    captured = capsys.readouterr()
    assert captured.out == "export interface Payload {}\n"
    assert "[json2ts] [CONVERT]" in captured.err


def test_cli_bad_config(tmp_path, capsys):
    assert main.main(["--config", str(tmp_path / "none.yaml")]) == 2
    assert "Cannot load config" in capsys.readouterr().err


def test_cli_watch_needs_path(capsys):
    assert main.main(["--watch", "-q"]) == 2


def test_convert_text_too_deeply_nested_is_invalid():
    app = load_config()["app"]
    assert convert_text("[" * 100000 + "]" * 100000, app) == INVALID_JSON_OUTPUT


def test_convert_text_with_oversized_max_depth():
    text = '{"n": ' * 600 + "1" + "}" * 600
    out = convert_text(text, {"max_depth": 1000})
    assert out.startswith("export interface Root {")
