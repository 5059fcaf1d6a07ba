# --- Tree-sitter plumbing ----------------------------------------------------
from typing import Optional


def node_text(source_bytes: bytes, node) -> str:
    """
    Converts a node's [start_byte:end_byte] into the corresponding string.
    Tree-sitter nodes only store byte offsets, so we slice the original source.
    """
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def node_line(node) -> int:
    """1-based line of a node's start, matching the line scanner's numbering."""
    return node.start_point[0] + 1


def child_of_type(node, *types: str):
    """First direct child whose type is one of `types`, or None."""
    for child in node.children:
        if child.type in types:
            return child
    return None


def parenthesized_text(source_bytes: bytes, node) -> Optional[str]:
    """
    Text between a node's first `(` and its matching `)` child tokens, e.g. the
    header of a `for` statement. Whitespace is collapsed.
    """
    open_paren = child_of_type(node, "(")
    close_paren = None
    for child in node.children:
        if child.type == ")":
            close_paren = child
    if open_paren is None or close_paren is None:
        return None
    text = source_bytes[open_paren.end_byte:close_paren.start_byte].decode("utf-8", errors="replace")
    return " ".join(text.split()) or None


def strip_parens(text: str) -> str:
    text = text.strip()
    if text.startswith("(") and text.endswith(")"):
        text = text[1:-1]
    return " ".join(text.split())
