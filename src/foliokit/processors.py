"""Default per-file processor used by ``foliokit build``.

Processor dispatch by extension:
  .md .markdown                    → markdown   headers, links, images, words, reading time
  .css .scss .less                 → stylesheet rules, selectors
  .js .mjs .cjs .jsx               → script     lines, functions, imports, complexity
  .ts .tsx                         → script     lines, interfaces, types, complexity
  .json                            → json       top-level keys, nested objects
  .html .htm                       → html       elements, links, images
  .jpg .jpeg .png .gif .webp .svg  → image      size, format
  .mp4 .mov .webm                  → video      size, format
  .pdf                             → pdf        size
  anything else                    → generic    size, extension

Every processor is a pure function of the file bytes, so results are safe to
cache by content fingerprint. Invalid JSON raises ``json.JSONDecodeError``.
"""

from __future__ import annotations

import json
import math
import posixpath
import re
from collections.abc import Callable
from typing import Any

Processor = Callable[[bytes, str], dict[str, Any]]

WORDS_PER_MINUTE = 200

_MD_HEADER_RE = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_MD_IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
_MD_LINK_RE = re.compile(r"(?<!!)\[[^\]]*\]\([^)]*\)")

_CSS_RULE_RE = re.compile(r"[^{}]+\{[^{}]*\}")
_CSS_SELECTOR_RE = re.compile(r"[^{};]+(?=\{)")
_CSS_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)

_JS_FUNCTION_RE = re.compile(r"\bfunction\s*\*?\s*\w+|\b\w+\s*=\s*(?:async\s*)?\([^)]*\)\s*=>")
_JS_IMPORT_RE = re.compile(r"^\s*import\b.*?\bfrom\b|^\s*import\s+[\"']|\brequire\s*\(", re.MULTILINE)
_JS_BRANCH_RE = re.compile(r"\b(?:for|while|if|switch|case|catch)\b")
_TS_INTERFACE_RE = re.compile(r"\binterface\s+\w+")
_TS_TYPE_RE = re.compile(r"\btype\s+\w+\s*=")

_HTML_ELEMENT_RE = re.compile(r"<[a-zA-Z][\w-]*")
_HTML_LINK_RE = re.compile(r"<a\s[^>]*\bhref\s*=", re.IGNORECASE)
_HTML_IMAGE_RE = re.compile(r"<img\s[^>]*\bsrc\s*=", re.IGNORECASE)


def _text(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


def _complexity(text: str, functions: int) -> int:
    """Branch and function density per 100 lines."""
    lines = text.count("\n") + 1
    return round((len(_JS_BRANCH_RE.findall(text)) + functions) / lines * 100)


# ------------------------------------------------------------------
# Processors
# ------------------------------------------------------------------


def process_markdown(content: bytes, path: str) -> dict[str, Any]:
    text = _text(content)
    words = len(text.split())
    return {
        "type": "markdown",
        "headers": len(_MD_HEADER_RE.findall(text)),
        "links": len(_MD_LINK_RE.findall(text)),
        "images": len(_MD_IMAGE_RE.findall(text)),
        "words": words,
        "readingTime": math.ceil(words / WORDS_PER_MINUTE),
    }


def process_stylesheet(content: bytes, path: str) -> dict[str, Any]:
    text = _CSS_COMMENT_RE.sub("", _text(content))
    return {
        "type": "stylesheet",
        "rules": len(_CSS_RULE_RE.findall(text)),
        "selectors": len(_CSS_SELECTOR_RE.findall(text)),
        "size": len(content),
    }


def process_script(content: bytes, path: str) -> dict[str, Any]:
    text = _text(content)
    functions = len(_JS_FUNCTION_RE.findall(text))
    result: dict[str, Any] = {
        "type": "script",
        "lines": text.count("\n") + 1,
        "functions": functions,
        "imports": len(_JS_IMPORT_RE.findall(text)),
        "complexity": _complexity(text, functions),
    }
    if posixpath.splitext(path)[1].lower() in (".ts", ".tsx"):
        result["interfaces"] = len(_TS_INTERFACE_RE.findall(text))
        result["types"] = len(_TS_TYPE_RE.findall(text))
    return result


def _count_nested(value: Any, depth: int = 0) -> int:
    if depth > 10:
        return 0
    children: list[Any]
    if isinstance(value, dict):
        children = list(value.values())
    elif isinstance(value, list):
        children = value
    else:
        return 0
    return sum(
        (1 if isinstance(c, (dict, list)) else 0) + _count_nested(c, depth + 1) for c in children
    )


def process_json(content: bytes, path: str) -> dict[str, Any]:
    data = json.loads(content)
    return {
        "type": "json",
        "keys": len(data) if isinstance(data, dict) else 0,
        "nested": _count_nested(data),
        "size": len(content),
    }


def process_html(content: bytes, path: str) -> dict[str, Any]:
    text = _text(content)
    return {
        "type": "html",
        "elements": len(_HTML_ELEMENT_RE.findall(text)),
        "links": len(_HTML_LINK_RE.findall(text)),
        "images": len(_HTML_IMAGE_RE.findall(text)),
        "size": len(content),
    }


def _binary(kind: str) -> Processor:
    def process(content: bytes, path: str) -> dict[str, Any]:
        return {
            "type": kind,
            "size": len(content),
            "format": posixpath.splitext(path)[1].lower().lstrip("."),
        }

    process.__name__ = f"process_{kind}"
    return process


def process_generic(content: bytes, path: str) -> dict[str, Any]:
    return {
        "type": "generic",
        "size": len(content),
        "extension": posixpath.splitext(path)[1].lower(),
    }


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------

PROCESSORS: dict[str, Processor] = {}


def register_processor(extensions: list[str] | tuple[str, ...], processor: Processor) -> None:
    for ext in extensions:
        PROCESSORS[ext.lower()] = processor


register_processor((".md", ".markdown"), process_markdown)
register_processor((".css", ".scss", ".less"), process_stylesheet)
register_processor((".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx"), process_script)
register_processor((".json",), process_json)
register_processor((".html", ".htm"), process_html)
register_processor((".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"), _binary("image"))
register_processor((".mp4", ".mov", ".webm"), _binary("video"))
register_processor((".pdf",), _binary("pdf"))


def describe(content: bytes, path: str) -> dict[str, Any]:
    """Summarise one file; matches the ``process_fn`` signature of the pipeline."""
    processor = PROCESSORS.get(posixpath.splitext(path)[1].lower(), process_generic)
    return processor(content, path)
