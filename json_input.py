# json_input.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import Any, Optional
import json
import os
import sys


class JsonInputError(ValueError):
    """Raised when JSON text cannot be read or parsed."""


def _reject_constant(name: str):
    # json.loads accepts NaN / Infinity by default; JSON does not
    raise ValueError(f"Non-standard JSON constant {name}")


def parse_json_text(text: str) -> Any:
    if text is None or not text.strip():
        raise JsonInputError("Empty input")
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise JsonInputError(f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}") from e
    except ValueError as e:
        raise JsonInputError(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise JsonInputError("Input nested too deeply") from e


def load_json_text(path: str, encoding: str = "utf-8", max_chars: Optional[int] = None) -> str:
    """
    Read raw JSON text from ``path``; ``-`` means stdin.
    """
    if path == "-":
        s = sys.stdin.read()
    else:
        if not os.path.isfile(path):
            raise JsonInputError(f"File not found: {path}")
        try:
            with open(path, "r", encoding=encoding) as f:
                s = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise JsonInputError(f"Cannot read {path}: {e}") from e
    if max_chars and len(s) > max_chars:
        raise JsonInputError(f"Input is larger than {max_chars} chars")
    return s


def safe_read_text(path: str, encoding: str = "utf-8", max_chars: int = 2_000_000) -> str:
    try:
        with open(path, "r", encoding=encoding, errors="ignore") as f:
            s = f.read()
        if len(s) > max_chars:
            s = s[:max_chars]
        return s
    except OSError:
        return ""
