"""Atlassian Document Format (ADF) comment bodies as plain text.

Work-log comments arrive either as plain strings (older sites) or as an ADF
document tree. The tree is parsed into a small set of node types and then
flattened by a pure recursive function.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Text:
    text: str


@dataclass(frozen=True, slots=True)
class HardBreak:
    pass


@dataclass(frozen=True, slots=True)
class Paragraph:
    children: tuple[Node, ...] = ()


@dataclass(frozen=True, slots=True)
class CodeBlock:
    children: tuple[Node, ...] = ()


@dataclass(frozen=True, slots=True)
class BulletList:
    items: tuple[tuple[Node, ...], ...] = ()


@dataclass(frozen=True, slots=True)
class OrderedList:
    items: tuple[tuple[Node, ...], ...] = ()
    start: int = 1


Node = Text | HardBreak | Paragraph | CodeBlock | BulletList | OrderedList

# Inline nodes whose visible text lives in attrs.text
_ATTR_TEXT_NODES = {"mention", "emoji", "status", "date", "inlineCard"}
# Block containers whose children are block nodes
_CONTAINER_NODES = {"blockquote", "panel", "expand", "nestedExpand", "layoutSection", "layoutColumn"}


def _parse_list_items(node: dict[str, Any]) -> tuple[tuple[Node, ...], ...]:
    items = []
    for item in node.get("content") or []:
        if isinstance(item, dict) and item.get("type") == "listItem":
            items.append(parse_nodes(item.get("content") or []))
    return tuple(items)


def _parse_node(node: Any) -> list[Node]:
    if not isinstance(node, dict):
        return []
    kind = node.get("type")
    content = node.get("content") or []
    if kind == "text":
        return [Text(str(node.get("text") or ""))]
    if kind == "hardBreak":
        return [HardBreak()]
    if kind in ("paragraph", "heading"):
        return [Paragraph(parse_nodes(content))]
    if kind == "codeBlock":
        return [CodeBlock(parse_nodes(content))]
    if kind == "bulletList":
        return [BulletList(_parse_list_items(node))]
    if kind == "orderedList":
        try:
            start = int((node.get("attrs") or {}).get("order") or 1)
        except (TypeError, ValueError):
            start = 1
        return [OrderedList(_parse_list_items(node), start=start)]
    if kind in _ATTR_TEXT_NODES:
        text = (node.get("attrs") or {}).get("text")
        return [Text(str(text))] if text else []
    if kind in _CONTAINER_NODES or kind == "doc":
        return list(parse_nodes(content))
    return []


def parse_nodes(nodes: Iterable[Any]) -> tuple[Node, ...]:
    out: list[Node] = []
    for node in nodes:
        out.extend(_parse_node(node))
    return tuple(out)


def parse_adf(document: dict[str, Any]) -> tuple[Node, ...]:
    """Parse an ADF ``doc`` into nodes; unknown node types are dropped."""
    return parse_nodes(document.get("content") or [])


def flatten(nodes: Sequence[Node]) -> str:
    """Render nodes as plain text (lists get bullets/numbers, code gets fences)."""
    parts: list[str] = []
    for node in nodes:
        if isinstance(node, Text):
            parts.append(node.text)
        elif isinstance(node, HardBreak):
            parts.append("\n")
        elif isinstance(node, Paragraph):
            parts.append(flatten(node.children) + "\n")
        elif isinstance(node, CodeBlock):
            parts.append("```\n" + flatten(node.children).rstrip("\n") + "\n```\n")
        elif isinstance(node, BulletList):
            for item in node.items:
                parts.append("• " + flatten(item).strip() + "\n")
        elif isinstance(node, OrderedList):
            for index, item in enumerate(node.items, start=node.start):
                parts.append(f"{index}. " + flatten(item).strip() + "\n")
    return "".join(parts)


def comment_to_text(comment: Any) -> str:
    """Plain text for a work-log comment in any of the shapes Jira returns."""
    if not comment:
        return ""
    if isinstance(comment, str):
        return comment
    if isinstance(comment, dict) and comment.get("type") == "doc":
        return flatten(parse_adf(comment)).strip()
    return json.dumps(comment)
