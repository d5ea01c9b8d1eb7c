"""Lightweight extraction of exported function signatures from Rust source.

Only the subset of Rust used in exported signatures is understood: plain
identifiers, primitive numeric types and string types. Anything fancier is
passed through as text and rejected later when bindings are generated.
"""

import re
from pathlib import Path
from typing import Optional, TypedDict

from .errors import BindingGenerationError


class Parameter(TypedDict):
    name: str
    type: str


class FunctionSignature(TypedDict):
    name: str
    params: list[Parameter]
    return_type: Optional[str]


_MARKER_RE = re.compile(r"^[ \t]*\#\[export\]", re.MULTILINE)
_EXPORTED_FN_RE = re.compile(
    r"^[ \t]*\#\[export\]\s*"
    # doc comments and other attributes may sit between marker and fn
    r"(?:(?://[^\n]*|\#\[[^\]]*\])\s*)*"
    r"(?:pub(?:\s*\([^)]*\))?\s+)?"
    r"fn\s+(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*"
    r"\((?P<params>[^)]*)\)\s*"
    r"(?:->\s*(?P<return_type>[^{]*?))?\s*\{",
    re.MULTILINE,
)
_LIFETIME_RE = re.compile(r"'[A-Za-z_][A-Za-z0-9_]*")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_type(text: str) -> str:
    """Drop lifetimes and insignificant whitespace: `&'static str` -> `&str`."""
    text = _LIFETIME_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    text = re.sub(r"\s*([&*<>,()\[\]])\s*", r"\1", text)
    return text


def _split_top_level(text: str) -> list[str]:
    parts = []
    depth = 0
    current = []
    for char in text:
        if char in "<([":
            depth += 1
        elif char in ">)]" and depth > 0:
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def _parse_parameter(entry: str) -> Parameter:
    name, _, type_text = entry.partition(":")
    name = name.strip()
    if name.startswith("mut "):
        name = name[len("mut ") :].strip()
    return {"name": name, "type": normalize_type(type_text)}


def parse_parameters(text: str) -> list[Parameter]:
    params = []
    for entry in _split_top_level(text):
        if not entry.strip():
            continue
        params.append(_parse_parameter(entry))
    return params


def extract_signatures(source: str) -> list[FunctionSignature]:
    """Return one signature per export marker, in source order.

    Raises BindingGenerationError for a marker that is not followed by a
    function signature.
    """
    matches = list(_EXPORTED_FN_RE.finditer(source))
    matched = {match.start() for match in matches}
    for marker in _MARKER_RE.finditer(source):
        if marker.start() not in matched:
            line = source.count("\n", 0, marker.start()) + 1
            raise BindingGenerationError(
                "",
                "",
                "",
                message=f"#[export] on line {line} is not followed by a function",
            )

    signatures: list[FunctionSignature] = []
    for match in matches:
        return_text = match.group("return_type")
        return_type = normalize_type(return_text) if return_text else None
        signatures.append(
            {
                "name": match.group("name"),
                "params": parse_parameters(match.group("params")),
                "return_type": return_type or None,
            }
        )
    return signatures


def read_exported_functions(path: Path) -> list[FunctionSignature]:
    return extract_signatures(Path(path).read_text(encoding="utf-8"))


def format_signature(signature: FunctionSignature) -> str:
    params = ", ".join(f"{p['name']}: {p['type']}" for p in signature["params"])
    rendered = f"{signature['name']}({params})"
    if signature["return_type"]:
        rendered += f" -> {signature['return_type']}"
    return rendered
