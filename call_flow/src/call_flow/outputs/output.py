import json
from typing import Iterable

from call_flow.src.call_flow.models.ast_models import Branch, Call, ClassDeclaration, Loop
from call_flow.src.call_flow.models.flow_models import (
    EntryMethodListing,
    FlowEdge,
    FlowGraph,
    FlowNode,
)


# --- Wire format (field names are what renderers expect) --------------------

def node_to_dict(node: FlowNode) -> dict:
    out = {"id": node.id, "kind": node.kind.value, "name": node.name}
    if node.class_name is not None:
        out["className"] = node.class_name
    if node.condition is not None:
        out["condition"] = node.condition
    if node.loop_kind is not None:
        out["loopKind"] = node.loop_kind.value
    if node.line is not None:
        out["line"] = node.line
    return out


def edge_to_dict(edge: FlowEdge) -> dict:
    out = {"source": edge.source, "target": edge.target, "kind": edge.kind.value}
    if edge.branch_label is not None:
        out["branchLabel"] = edge.branch_label
    return out


def graph_to_dict(graph: FlowGraph) -> dict:
    return {
        "nodes": [node_to_dict(n) for n in graph.nodes],
        "links": [edge_to_dict(e) for e in graph.edges],
        "entryMethod": graph.entry_method,
    }


def listing_to_dict(listing: EntryMethodListing) -> dict:
    return {
        "entryMethods": list(listing.entry_methods),
        "allMethods": list(listing.all_methods),
        "totalMethods": listing.total_methods,
        "totalClasses": listing.total_classes,
    }


def to_json(payload) -> str:
    """
    Serializes a FlowGraph, an EntryMethodListing, or an already-built dict.
    """
    if isinstance(payload, FlowGraph):
        payload = graph_to_dict(payload)
    elif isinstance(payload, EntryMethodListing):
        payload = listing_to_dict(payload)
    return json.dumps(payload, indent=2)


# --- Pretty printing ----------------------------------------------------------

def _describe_statement(statement, indent: str) -> list[str]:
    if isinstance(statement, Call):
        recv = f"{statement.receiver}." if statement.receiver else ""
        lines = [f"{indent}calls: {recv}{statement.callee_name}  @ {statement.line}"]
    elif isinstance(statement, Branch):
        lines = [f"{indent}if ({statement.condition})  @ {statement.line}"]
        lines += [l for s in statement.true_body for l in _describe_statement(s, indent + "  ")]
        if statement.false_body:
            lines.append(f"{indent}else")
            lines += [l for s in statement.false_body for l in _describe_statement(s, indent + "  ")]
    elif isinstance(statement, Loop):
        lines = [f"{indent}{statement.kind.value} ({statement.condition})  @ {statement.line}"]
        lines += [l for s in statement.body for l in _describe_statement(s, indent + "  ")]
    else:
        raise TypeError(f"Unsupported statement type: {type(statement).__name__}")
    return lines


def print_classes(classes: Iterable[ClassDeclaration]):
    """
    Human-friendly printout of the extracted structure.
    """
    print("\n=== CLASSES & METHODS ===")
    for cls in classes:
        parents = []
        if cls.superclass:
            parents.append(f"extends {cls.superclass}")
        if cls.interfaces:
            parents.append(f"implements {', '.join(cls.interfaces)}")
        suffix = f"  {' '.join(parents)}" if parents else ""
        print(f"\n[{cls.name}]{suffix}  (line {cls.line})")
        for mi in cls.methods:
            sig = f"{mi.name}({', '.join(f'{p.type} {p.name}' for p in mi.parameters)})"
            rtype = f" -> {mi.return_type}" if mi.return_type else ""
            print(f"  - {mi.visibility} {sig}{rtype}  @ {mi.line}")
            for statement in mi.statements:
                for line in _describe_statement(statement, "      "):
                    print(line)


def print_listing(listing: EntryMethodListing):
    print("\n=== ENTRY METHODS ===")
    for name in listing.entry_methods:
        print(" -", name)
    print(f"\n{listing.total_methods} methods in {listing.total_classes} classes")


def print_summary(graph: FlowGraph):
    """
    One line per link, e.g. `START --calls--> MainActivity.onCreate`.
    """
    labels = {}
    for node in graph.nodes:
        label = node.name
        if node.class_name and not label.endswith("(ref)"):
            label = f"{node.class_name}.{label}"
        if node.condition:
            label = f"{label} [{node.condition}]"
        labels[node.id] = label

    print(f"\n=== CALL FLOW from {graph.entry_method} ===")
    print(f"{len(graph.nodes)} nodes, {len(graph.edges)} links")
    for edge in graph.edges:
        print(f"  {labels[edge.source]} --{edge.kind.value}--> {labels[edge.target]}")
