# main.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import argparse
import copy
import os
import sys
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import yaml

from debounce import Debouncer
from json_input import JsonInputError, load_json_text, parse_json_text, safe_read_text
from json_to_interface import COLLISION_POLICIES, DEFAULT_MAX_DEPTH, DEFAULT_ROOT_NAME, json_to_interface
from sinks import DEFAULT_EXPORT_PATH, OutputSinks

INVALID_JSON_OUTPUT = "// ❌ Invalid JSON"

SAMPLE_JSON = """{
  "name": "John Doe",
  "age": 30,
  "email": "john@example.com",
  "address": {
    "street": "123 Main St",
    "city": "New York",
    "zip": 10001
  },
  "tags": ["dev", "blogger"],
  "isActive": true
}"""

DEFAULT_CONFIG: Dict[str, Any] = {
    "app": {
        "root_name": DEFAULT_ROOT_NAME,
        "use_optional": False,
        "use_readonly": False,
        "name_collision": "disambiguate",
        "leaf_first": False,
        "max_depth": DEFAULT_MAX_DEPTH,
        "debounce_ms": 500,
        "poll_interval": 0.5,
        "default_encoding": "utf-8",
        "max_input_chars": 5_000_000,
    },
    "sinks": {
        "available": ["display", "export_file", "copy_to_clipboard"],
        "export_path": DEFAULT_EXPORT_PATH,
    },
    "logging": {
        "enabled": True,
        "show_sink_io": False,
        "show_conversions": True,
        "timestamp": True,
        "time_format": "%H:%M:%S",
        "prefix": "[json2ts]",
    },
}

# -------- print-based logging (stderr keeps stdout for the declarations) --------
class PLogger:
    def __init__(self, log_cfg: Dict[str, Any], stream=None):
        self.enabled = bool(log_cfg.get("enabled", True))
        self.show_sink_io = bool(log_cfg.get("show_sink_io", False))
        self.show_conversions = bool(log_cfg.get("show_conversions", True))
        self.timestamp = bool(log_cfg.get("timestamp", True))
        self.time_format = log_cfg.get("time_format", "%H:%M:%S")
        self.prefix = log_cfg.get("prefix", "[json2ts]")
        self.stream = stream

    def _ts(self) -> str:
        if not self.timestamp:
            return ""
        return datetime.now().strftime(self.time_format)

    def log(self, section: str, msg: str):
        if not self.enabled:
            return
        stream = self.stream or sys.stderr
        ts = self._ts()
        if ts:
            print(f"{self.prefix} {ts} [{section}] {msg}", file=stream)
        else:
            print(f"{self.prefix} [{section}] {msg}", file=stream)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Built-in defaults, overlaid with the YAML file at ``path`` when one is given."""
    if not path:
        return copy.deepcopy(DEFAULT_CONFIG)
    with open(path, "r", encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config {path} must be a mapping, got {type(loaded).__name__}")
    return _merge(DEFAULT_CONFIG, loaded)


def convert_text(text: str, app_cfg: Dict[str, Any], logger: Optional[PLogger] = None) -> str:
    """
    Parse ``text`` and render its interfaces. Malformed JSON becomes the
    INVALID_JSON_OUTPUT placeholder; nothing is raised past this point.
    """
    try:
        parsed = parse_json_text(text)
    except JsonInputError as e:
        if logger:
            logger.log("PARSE", str(e))
        return INVALID_JSON_OUTPUT
    ts = json_to_interface(
        parsed,
        app_cfg.get("root_name") or DEFAULT_ROOT_NAME,
        bool(app_cfg.get("use_optional", False)),
        bool(app_cfg.get("use_readonly", False)),
        name_collision=app_cfg.get("name_collision", "disambiguate"),
        leaf_first=bool(app_cfg.get("leaf_first", False)),
        max_depth=app_cfg.get("max_depth", DEFAULT_MAX_DEPTH),
        logger=logger,
    )
    if logger and getattr(logger, "show_conversions", True):
        logger.log("CONVERT", f"input={len(text)} chars -> output={len(ts)} chars")
    return ts


class ConversionSession:
    """
    Input text, the two option flags and the current output.

    Edits to the input go through a debounce before conversion; toggling an
    option re-converts the last debounced input straight away. Every
    conversion recomputes the whole output.
    """

    def __init__(self, cfg: Dict[str, Any], logger: Optional[PLogger] = None,
                 on_output: Optional[Callable[[str], None]] = None, json_input: str = SAMPLE_JSON):
        self.app_cfg: Dict[str, Any] = dict(cfg.get("app", {}))
        self.logger = logger
        self.on_output = on_output
        self.json_input = json_input
        self.debounced_input = json_input
        self.output = ""
        self._lock = threading.RLock()
        self._debouncer = Debouncer(int(self.app_cfg.get("debounce_ms", 500)), self._on_debounced)

    @property
    def use_optional(self) -> bool:
        return bool(self.app_cfg.get("use_optional", False))

    @property
    def use_readonly(self) -> bool:
        return bool(self.app_cfg.get("use_readonly", False))

    def set_input(self, text: str):
        self.json_input = text
        self._debouncer.push(text)

    def set_use_optional(self, flag: bool) -> str:
        self.app_cfg["use_optional"] = bool(flag)
        return self.convert(self.debounced_input)

    def set_use_readonly(self, flag: bool) -> str:
        self.app_cfg["use_readonly"] = bool(flag)
        return self.convert(self.debounced_input)

    def convert(self, text: Optional[str] = None) -> str:
        with self._lock:
            source = text if isinstance(text, str) else self.json_input
            self.output = convert_text(source, self.app_cfg, self.logger)
            if self.on_output:
                self.on_output(self.output)
            return self.output

    def flush(self) -> bool:
        return self._debouncer.flush()

    def close(self):
        self._debouncer.cancel()

    def _on_debounced(self, text: str):
        with self._lock:
            self.debounced_input = text
            self.convert(text)


def watch_file(path: str, session: ConversionSession, poll_interval: float = 0.5,
               stop_event: Optional[threading.Event] = None, max_polls: Optional[int] = None,
               logger: Optional[PLogger] = None, encoding: str = "utf-8", max_chars: int = 5_000_000):
    """
    Poll ``path`` for modifications and feed each new content through the
    session's debounce. Returns after ``max_polls`` polls or once ``stop_event``
    is set; a still-pending edit is delivered before returning.
    """
    stop_event = stop_event or threading.Event()
    last_mtime = None
    missing_logged = False
    polls = 0
    while not stop_event.is_set():
        try:
            mtime = os.stat(path).st_mtime_ns
        except OSError:
            mtime = None
            if logger and not missing_logged:
                logger.log("WATCH", f"File not found: {path}")
            missing_logged = True
        if mtime is not None and mtime != last_mtime:
            missing_logged = False
            if logger and last_mtime is not None:
                logger.log("WATCH", f"Changed: {path}")
            last_mtime = mtime
            session.set_input(safe_read_text(path, encoding=encoding, max_chars=max_chars))
        polls += 1
        if max_polls is not None and polls >= max_polls:
            break
        stop_event.wait(poll_interval)
    session.flush()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="json2ts", description="Generate TypeScript interfaces from a JSON sample.")
    p.add_argument("path", nargs="?", default="-", help="Path to a JSON file, or - for stdin (default).")
    p.add_argument("--config", default=None, help="YAML config file (see config.yaml).")
    p.add_argument("--root-name", default=None, help="Name of the root interface (default: Root).")
    p.add_argument("--optional", action="store_true", default=None, help="Mark every field optional (`key?:`).")
    p.add_argument("--readonly", action="store_true", default=None, help="Mark every field readonly.")
    p.add_argument("--collision", choices=COLLISION_POLICIES, default=None,
                   help="What to do when two different objects map to the same name.")
    p.add_argument("--leaf-first", action="store_true", default=None,
                   help="Emit nested interfaces before the ones referring to them.")
    p.add_argument("--max-depth", type=int, default=None, help="Nesting depth past which values are typed any.")
    p.add_argument("-o", "--output", default=None, help=f"Also write the output to a file (e.g. {DEFAULT_EXPORT_PATH}).")
    p.add_argument("--copy", action="store_true", help="Also copy the output to the clipboard.")
    p.add_argument("--watch", action="store_true", help="Re-generate whenever the input file changes.")
    p.add_argument("-q", "--quiet", action="store_true", help="Disable log lines on stderr.")
    return p.parse_args(argv)


def _apply_overrides(cfg: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    app = cfg["app"]
    overrides = {
        "root_name": args.root_name,
        "use_optional": args.optional,
        "use_readonly": args.readonly,
        "name_collision": args.collision,
        "leaf_first": args.leaf_first,
        "max_depth": args.max_depth,
    }
    for k, v in overrides.items():
        if v is not None:
            app[k] = v
    if args.quiet:
        cfg["logging"]["enabled"] = False
    return cfg


def _publish(sinks: OutputSinks, text: str, output_path: Optional[str], copy_out: bool) -> bool:
    ok = True
    sinks.call("display", text=text)
    if output_path:
        res = sinks.call("export_file", text=text, path=output_path)
        ok = "error" not in res
    if copy_out:
        # clipboard failures are reported, not fatal
        sinks.call("copy_to_clipboard", text=text)
    return ok


def run_watch(path: str, cfg: Dict[str, Any], logger: PLogger, sinks: OutputSinks,
              output_path: Optional[str] = None, copy_out: bool = False,
              stop_event: Optional[threading.Event] = None, max_polls: Optional[int] = None) -> int:
    app = cfg["app"]
    session = ConversionSession(
        cfg, logger=logger, json_input="",
        on_output=lambda text: _publish(sinks, text, output_path, copy_out),
    )
    logger.log("WATCH", f"Watching {path} (debounce={app.get('debounce_ms', 500)}ms)")
    try:
        watch_file(path, session, poll_interval=float(app.get("poll_interval", 0.5)),
                   stop_event=stop_event, max_polls=max_polls, logger=logger,
                   encoding=app.get("default_encoding", "utf-8"),
                   max_chars=int(app.get("max_input_chars", 5_000_000)))
    except KeyboardInterrupt:
        logger.log("WATCH", "Stopped")
    finally:
        session.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        cfg = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Cannot load config: {e}", file=sys.stderr)
        return 2
    cfg = _apply_overrides(cfg, args)
    logger = PLogger(cfg["logging"])
    sinks = OutputSinks(cfg["sinks"], logger=logger)
    app = cfg["app"]

    if args.watch:
        if args.path == "-":
            print("--watch needs a file path", file=sys.stderr)
            return 2
        return run_watch(args.path, cfg, logger, sinks, output_path=args.output, copy_out=args.copy)

    try:
        text = load_json_text(args.path, encoding=app.get("default_encoding", "utf-8"),
                              max_chars=int(app.get("max_input_chars", 5_000_000)))
    except JsonInputError as e:
        print(str(e), file=sys.stderr)
        return 2

    output = convert_text(text, app, logger)
    if not _publish(sinks, output, args.output, args.copy):
        return 1
    return 1 if output == INVALID_JSON_OUTPUT else 0


if __name__ == "__main__":
    sys.exit(main())
