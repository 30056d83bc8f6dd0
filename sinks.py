# sinks.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import Any, Dict, List, Optional, TextIO
import os
import shutil
import subprocess
import sys

DEFAULT_EXPORT_PATH = "interfaces.ts"

# first command found on PATH wins
CLIPBOARD_COMMANDS: List[List[str]] = [
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
    ["clip"],
]


class OutputSinks:
    """Places generated declaration text somewhere: clipboard, a file, or a stream."""

    def __init__(self, sink_config: Optional[Dict[str, Any]] = None, logger=None,
                 stream: Optional[TextIO] = None):
        sink_config = sink_config or {}
        self.available: List[str] = sink_config.get("available", ["display", "export_file", "copy_to_clipboard"])
        self.export_path: str = sink_config.get("export_path", DEFAULT_EXPORT_PATH)
        self.encoding: str = sink_config.get("encoding", "utf-8")
        self.clipboard_commands: List[List[str]] = sink_config.get("clipboard_commands", CLIPBOARD_COMMANDS)
        self.stream = stream
        self.logger = logger

    def _log(self, name: str, detail: str):
        if self.logger and getattr(self.logger, "show_sink_io", True):
            self.logger.log(f"SINK-{name}", detail)

    def copy_to_clipboard(self, text: str) -> Dict[str, Any]:
        for cmd in self.clipboard_commands:
            if shutil.which(cmd[0]) is None:
                continue
            try:
                subprocess.run(cmd, input=text.encode(self.encoding), check=True, timeout=10)
            except (OSError, subprocess.SubprocessError) as e:
                out = {"sink": "copy_to_clipboard", "command": cmd[0], "error": str(e)}
                self._log("copy_to_clipboard", f"return={out}")
                return out
            out = {"sink": "copy_to_clipboard", "command": cmd[0], "chars": len(text)}
            self._log("copy_to_clipboard", f"return={out}")
            return out
        out = {"sink": "copy_to_clipboard", "error": "No clipboard command available."}
        self._log("copy_to_clipboard", f"return={out}")
        return out

    def export_file(self, text: str, path: Optional[str] = None) -> Dict[str, Any]:
        path = path or self.export_path
        try:
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            # newline="" keeps the text byte-for-byte
            with open(path, "w", encoding=self.encoding, newline="") as f:
                f.write(text)
        except OSError as e:
            out = {"sink": "export_file", "path": path, "error": str(e)}
            self._log("export_file", f"return={out}")
            return out
        out = {"sink": "export_file", "path": path, "chars": len(text)}
        self._log("export_file", f"return={out}")
        return out

    def display(self, text: str) -> Dict[str, Any]:
        stream = self.stream or sys.stdout
        stream.write(text)
        if not text.endswith("\n"):
            stream.write("\n")
        stream.flush()
        return {"sink": "display", "chars": len(text)}

    def call(self, name: str, **kwargs) -> Dict[str, Any]:
        if name not in self.available:
            out = {"error": f"Sink `{name}` is not available."}
            self._log("dispatcher", f"return={out}")
            return out
        text = kwargs.get("text", "")
        if name == "display":
            return self.display(text)
        if name == "export_file":
            return self.export_file(text, kwargs.get("path"))
        if name == "copy_to_clipboard":
            return self.copy_to_clipboard(text)
        out = {"error": f"Unknown sink `{name}`."}
        self._log("dispatcher", f"return={out}")
        return out
