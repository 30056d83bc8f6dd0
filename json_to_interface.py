# json_to_interface.py
# -*- coding: utf-8 -*-
"""
Infer TypeScript interface declarations from a single JSON sample.

Features:
- One `export interface` per object shape, named after the key that introduced it.
- Arrays become `T[]`; mixed arrays become `(A | B)[]` with members in first-seen order.
- An object reachable twice (same identity) is declared once and referenced by name,
  which also keeps self-referencing structures from recursing forever.
- Different objects that land on the same name are disambiguated, or left "first wins".

Declarations are collected bottom-up (a nested object finishes before its parent) and
emitted in reverse, so the root interface comes first.
"""
from __future__ import annotations

import json
import re
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

Json = Any

DEFAULT_ROOT_NAME = "Root"
WILDCARD = "any"
EMPTY_ARRAY = "any[]"
DEFAULT_MAX_DEPTH = 200
COLLISION_POLICIES = ("disambiguate", "first_wins")
# frames kept free for the caller and the leaf helpers below the deepest level
_STACK_RESERVE = 250
_FRAMES_PER_LEVEL = 3

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_NON_IDENTIFIER_CHARS = re.compile(r"[^A-Za-z0-9_$]")


def max_safe_depth() -> int:
    """Deepest nesting the recursive walk can take under the current recursion limit."""
    return max(1, (sys.getrecursionlimit() - _STACK_RESERVE) // _FRAMES_PER_LEVEL)


def capitalize(s: str) -> str:
    if not s:
        return DEFAULT_ROOT_NAME
    return s[:1].upper() + s[1:]


def type_name(key: str) -> str:
    """Type name for an object reached through ``key``; non-identifier characters are dropped."""
    cleaned = _NON_IDENTIFIER_CHARS.sub("", key or "")
    if cleaned[:1].isdigit():
        cleaned = "_" + cleaned
    return capitalize(cleaned)


def property_key(key: str) -> str:
    if _IDENTIFIER.match(key):
        return key
    return json.dumps(key, ensure_ascii=False)


@dataclass
class Declaration:
    name: str
    fields: List[Tuple[str, str]] = field(default_factory=list)

    def render(self, use_optional: bool = False, use_readonly: bool = False) -> str:
        if not self.fields:
            return f"export interface {self.name} {{}}"
        opt = "?" if use_optional else ""
        ro = "readonly " if use_readonly else ""
        lines = [f"  {ro}{property_key(k)}{opt}: {t};" for k, t in self.fields]
        return "export interface {} {{\n{}\n}}".format(self.name, "\n".join(lines))


class InterfaceBuilder:
    """Working state of one conversion: the declaration registry and the identity map."""

    def __init__(self, name_collision: str = "disambiguate",
                 max_depth: int = DEFAULT_MAX_DEPTH, logger=None):
        if name_collision not in COLLISION_POLICIES:
            raise ValueError(f"Unknown name collision policy `{name_collision}`.")
        self.name_collision = name_collision
        self.logger = logger
        ceiling = max_safe_depth()
        if max_depth > ceiling:
            self._log("DEPTH", f"max_depth={max_depth} exceeds the recursion limit; using {ceiling}")
            max_depth = ceiling
        self.max_depth = max_depth
        self.declarations: List[Declaration] = []   # completion order
        self.finalized: Dict[str, Declaration] = {}
        self.taken: Set[str] = set()                # reserved or finalized names
        self.seen: Dict[int, str] = {}              # id(object) -> assigned name
        self.referenced: Set[str] = set()           # names handed out as back-references
        self.variants: Dict[str, List[str]] = {}    # base name -> names declared for it
        self.truncated = 0
        self._active_arrays: Set[int] = set()

    def _log(self, section: str, msg: str):
        if self.logger:
            self.logger.log(section, msg)

    def infer_type(self, value: Json, key_name: str, parent_name: str = "", depth: int = 0) -> str:
        if depth > self.max_depth:
            self.truncated += 1
            return WILDCARD
        if value is None:
            return WILDCARD
        if isinstance(value, (list, tuple)):
            return self._infer_array(value, key_name, parent_name, depth)
        if isinstance(value, dict):
            return self._infer_object(value, key_name, parent_name, depth)
        if isinstance(value, str):
            return "string"
        # bool is an int subclass
        if isinstance(value, bool):
            return "boolean"
        if isinstance(value, (int, float)):
            return "number"
        return WILDCARD

    def _infer_array(self, value, key_name: str, parent_name: str, depth: int) -> str:
        if not value:
            return EMPTY_ARRAY
        if id(value) in self._active_arrays:
            return WILDCARD
        self._active_arrays.add(id(value))
        types = list(dict.fromkeys(
            self.infer_type(item, key_name, parent_name, depth + 1) for item in value
        ))
        self._active_arrays.discard(id(value))
        if len(types) == 1:
            return f"{types[0]}[]"
        return "({})[]".format(" | ".join(types))

    def _infer_object(self, value: Dict[str, Json], key_name: str, parent_name: str, depth: int) -> str:
        known = self.seen.get(id(value))
        if known is not None:
            self.referenced.add(known)
            return known

        base = type_name(key_name)
        if base not in self.taken:
            self._claim(value, base)
            self.variants.setdefault(base, []).append(base)
            self._build(value, base, depth)
            return base

        if self.name_collision == "first_wins":
            self.seen[id(value)] = base
            self._log("NAME", f"`{base}` already declared; reusing it for a different object")
            return base

        provisional = self._unique_name(base, parent_name)
        self._claim(value, provisional)
        decl = self._build(value, provisional, depth)
        match = self._same_shape(base, decl)
        if match is not None and provisional not in self.referenced:
            self.declarations.pop()
            del self.finalized[provisional]
            self.taken.discard(provisional)
            self.seen[id(value)] = match
            return match
        self.variants.setdefault(base, []).append(provisional)
        self._log("NAME", f"`{base}` already declared with another shape; using `{provisional}`")
        return provisional

    def _same_shape(self, base: str, decl: Declaration) -> Optional[str]:
        """First finished declaration derived from ``base`` with the same fields as ``decl``."""
        for name in self.variants.get(base, []):
            other = self.finalized.get(name)
            if other is not None and other.fields == decl.fields:
                return name
        return None

    def _unique_name(self, base: str, parent_name: str) -> str:
        candidate = parent_name + base
        if parent_name and candidate not in self.taken:
            return candidate
        n = 2
        while f"{base}{n}" in self.taken:
            n += 1
        return f"{base}{n}"

    def _claim(self, value, name: str):
        # Claimed before recursing so aliases back to `value` resolve by name.
        self.seen[id(value)] = name
        self.taken.add(name)

    def _build(self, obj: Dict[str, Json], name: str, depth: int) -> Declaration:
        decl = Declaration(name)
        for k, v in obj.items():
            key = str(k)
            decl.fields.append((key, self.infer_type(v, key, name, depth + 1)))
        self.declarations.append(decl)
        self.finalized[name] = decl
        return decl


def json_to_interface(value: Json, root_name: str = DEFAULT_ROOT_NAME,
                      use_optional: bool = False, use_readonly: bool = False, *,
                      name_collision: str = "disambiguate", leaf_first: bool = False,
                      max_depth: Optional[int] = DEFAULT_MAX_DEPTH, logger=None) -> str:
    """
    Render the interface declarations describing ``value``.

    A root object becomes ``export interface <root_name>``. Any other root (primitive,
    null, array) becomes ``export type <root_name> = ...;`` ahead of the interfaces it
    refers to, so the result is never empty. ``value`` is not modified.
    """
    root = type_name(root_name)
    builder = InterfaceBuilder(name_collision=name_collision,
                               max_depth=DEFAULT_MAX_DEPTH if max_depth is None else max_depth,
                               logger=logger)

    alias = None
    if isinstance(value, dict):
        builder.infer_type(value, root)
    else:
        builder.taken.add(root)
        root_type = builder.infer_type(value, root + "Item", root)
        alias = f"export type {root} = {root_type};"

    if builder.truncated and logger:
        logger.log("DEPTH", f"{builder.truncated} value(s) nested deeper than {builder.max_depth} typed `{WILDCARD}`")

    blocks = [d.render(use_optional, use_readonly) for d in builder.declarations]
    if not leaf_first:
        blocks.reverse()
    if alias is not None:
        if leaf_first:
            blocks.append(alias)
        else:
            blocks.insert(0, alias)
    return "\n\n".join(blocks)
