import logging
from typing import Optional

from tree_sitter import Language, Node, Parser, Tree

from call_flow.src.call_flow.call_filters import is_framework_call
from call_flow.src.call_flow.errors import GrammarUnavailableError
from call_flow.src.call_flow.extractor import split_top_level, visibility_of
from call_flow.src.call_flow.models.ast_models import (
    Branch,
    Call,
    ClassDeclaration,
    Dialect,
    Loop,
    LoopKind,
    MethodDeclaration,
    Parameter,
)
from call_flow.src.call_flow.tree_sitter_helpers import (
    child_of_type,
    node_line,
    node_text,
    parenthesized_text,
    strip_parens,
)

logger = logging.getLogger(__name__)

CLASS_NODE_TYPES = ("class_declaration", "interface_declaration", "enum_declaration", "record_declaration")
METHOD_NODE_TYPES = ("method_declaration", "constructor_declaration")


# --- Tree-sitter language loading -------------------------------------------

def load_java_language() -> Language:
    """
    Loads the Tree-sitter Java grammar from the `tree-sitter-java` wheel.
    """
    try:
        import tree_sitter_java
    except ImportError as e:
        raise GrammarUnavailableError(
            "Could not load Java grammar.\n"
            "- Install `tree-sitter-java` (pip install tree-sitter-java)."
        ) from e
    return Language(tree_sitter_java.language())


# --- The extractor -----------------------------------------------------------

class JavaTreeExtractor:
    """
    Walks a Tree-sitter Java syntax tree to build the same structural model as
    the line scanner: classes -> methods -> statements. Unlike the line scanner
    it fills in the bodies of `if` and loop statements, so decisions and loops
    unfold with their real contents.
    """

    def __init__(self):
        self.language = load_java_language()
        self.parser = Parser(self.language)

    def parse(self, source: str) -> Tree:
        return self.parser.parse(source.encode("utf-8"))

    def extract(self, source: str, file_path: Optional[str] = None) -> list[ClassDeclaration]:
        source_bytes = source.encode("utf-8")
        root: Node = self.parse(source).root_node

        package = self._find_package(source_bytes, root)
        classes: list[ClassDeclaration] = []
        for child in root.named_children:
            self._collect_classes(source_bytes, child, package, file_path, classes)

        logger.debug("Extracted %d classes from %s (tree-sitter)", len(classes), file_path or "<source>")
        return classes

    # -- declarations ---------------------------------------------------------

    def _find_package(self, source_bytes: bytes, root: Node) -> Optional[str]:
        for child in root.children:
            if child.type == "package_declaration":
                name_node = child_of_type(child, "scoped_identifier", "identifier")
                if name_node is not None:
                    return node_text(source_bytes, name_node)
        return None

    def _collect_classes(self, source_bytes: bytes, node: Node, package: Optional[str],
                         file_path: Optional[str], out: list):
        """Appends the class at `node` and then its nested classes, in source order."""
        if node.type not in CLASS_NODE_TYPES:
            return
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = node_text(source_bytes, name_node)
        superclass, interfaces = self._inheritance(source_bytes, node)

        members = self._body_members(node)
        methods = tuple(
            self._method(source_bytes, member, name)
            for member in members
            if member.type in METHOD_NODE_TYPES
        )
        out.append(ClassDeclaration(
            name=name,
            superclass=superclass,
            interfaces=interfaces,
            methods=methods,
            line=node_line(node),
            package=package,
            file_path=file_path,
            dialect=Dialect.JAVA,
        ))
        for member in members:
            self._collect_classes(source_bytes, member, package, file_path, out)

    def _body_members(self, class_node: Node) -> list:
        body = class_node.child_by_field_name("body")
        if body is None:
            return []
        members = []
        for child in body.named_children:
            if child.type == "enum_body_declarations":
                members.extend(child.named_children)
            else:
                members.append(child)
        return members

    def _inheritance(self, source_bytes: bytes, node: Node) -> tuple[Optional[str], tuple]:
        supers = []
        superclass_node = node.child_by_field_name("superclass")
        if superclass_node is not None and superclass_node.named_children:
            supers.append(node_text(source_bytes, superclass_node.named_children[0]))

        # `extends A, B` on an interface reads like the line scanner: A, then B as interface
        extends_node = child_of_type(node, "extends_interfaces")
        interfaces_node = node.child_by_field_name("interfaces")
        for holder in (extends_node, interfaces_node):
            if holder is None:
                continue
            type_list = child_of_type(holder, "type_list")
            if type_list is not None:
                supers.extend(node_text(source_bytes, t) for t in type_list.named_children)

        if superclass_node is None and extends_node is None:
            return None, tuple(supers)
        return (supers[0] if supers else None), tuple(supers[1:])

    def _method(self, source_bytes: bytes, node: Node, class_name: str) -> MethodDeclaration:
        name_node = node.child_by_field_name("name")
        name = node_text(source_bytes, name_node) if name_node else "<anonymous>"

        modifiers = child_of_type(node, "modifiers")
        visibility = visibility_of(node_text(source_bytes, modifiers)) if modifiers is not None else "package"

        # Return type (None for constructors)
        return_type = None
        if node.type == "method_declaration":
            ret_node = node.child_by_field_name("type")
            return_type = node_text(source_bytes, ret_node) if ret_node else None

        body = node.child_by_field_name("body")
        statements = tuple(self._statements(source_bytes, body)) if body is not None else ()

        return MethodDeclaration(
            name=name,
            class_name=class_name,
            visibility=visibility,
            parameters=self._parameters(source_bytes, node),
            return_type=return_type,
            line=node_line(node),
            statements=statements,
        )

    def _parameters(self, source_bytes: bytes, node: Node) -> tuple:
        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            return ()
        params = []
        for p in params_node.named_children:
            if p.type == "formal_parameter":
                p_type = p.child_by_field_name("type")
                p_name = p.child_by_field_name("name")
                params.append(Parameter(
                    name=node_text(source_bytes, p_name) if p_name else "param",
                    type=node_text(source_bytes, p_type) if p_type else "?",
                ))
            elif p.type == "spread_parameter":
                # `String... args`
                pieces = split_top_level(node_text(source_bytes, p), " ")
                tokens = [t for t in pieces if not t.startswith("@") and t != "final"]
                if len(tokens) >= 2:
                    params.append(Parameter(name=tokens[-1], type=" ".join(tokens[:-1])))
        return tuple(params)

    # -- statements -----------------------------------------------------------

    def _statements(self, source_bytes: bytes, node: Optional[Node]) -> list:
        out = []
        if node is not None:
            self._walk(source_bytes, node, out)
        return out

    def _walk(self, source_bytes: bytes, node: Node, out: list):
        """
        Appends statements for `node` in evaluation-ish source order. Calls in
        a receiver come before the call itself, and calls in an `if`/loop
        header come before the Branch/Loop they belong to.
        """
        if node is None:
            return
        kind = node.type

        if kind == "method_invocation":
            obj = node.child_by_field_name("object")
            if obj is not None:
                self._walk(source_bytes, obj, out)
            name_node = node.child_by_field_name("name")
            receiver = node_text(source_bytes, obj) if obj is not None else None
            if name_node is not None:
                name = node_text(source_bytes, name_node)
                if not is_framework_call(name, receiver):
                    out.append(Call(callee_name=name, line=node_line(node), receiver=receiver))
            args = node.child_by_field_name("arguments")
            if args is not None:
                self._walk(source_bytes, args, out)
            return

        if kind == "object_creation_expression":
            # `new Foo<>(x)` counts as a call to `Foo`, like the line scanner
            type_node = node.child_by_field_name("type")
            if type_node is not None:
                ctor = node_text(source_bytes, type_node).split("<", 1)[0].rsplit(".", 1)[-1]
                if not is_framework_call(ctor):
                    out.append(Call(callee_name=ctor, line=node_line(node)))
            for child in node.children:
                if child != type_node:
                    self._walk(source_bytes, child, out)
            return

        if kind == "if_statement":
            condition = node.child_by_field_name("condition")
            self._walk(source_bytes, condition, out)
            out.append(Branch(
                condition=strip_parens(node_text(source_bytes, condition)) or "condition",
                line=node_line(node),
                true_body=tuple(self._statements(source_bytes, node.child_by_field_name("consequence"))),
                false_body=tuple(self._statements(source_bytes, node.child_by_field_name("alternative"))),
            ))
            return

        if kind in ("for_statement", "enhanced_for_statement"):
            body = node.child_by_field_name("body")
            for child in node.children:
                if child != body:
                    self._walk(source_bytes, child, out)
            out.append(self._loop(source_bytes, node, LoopKind.FOR, parenthesized_text(source_bytes, node), body))
            return

        if kind in ("while_statement", "do_statement"):
            condition = node.child_by_field_name("condition")
            self._walk(source_bytes, condition, out)
            loop_kind = LoopKind.WHILE if kind == "while_statement" else LoopKind.DO_WHILE
            text = strip_parens(node_text(source_bytes, condition)) if condition is not None else None
            out.append(self._loop(source_bytes, node, loop_kind, text, node.child_by_field_name("body")))
            return

        for child in node.children:
            self._walk(source_bytes, child, out)

    def _loop(self, source_bytes: bytes, node: Node, kind: LoopKind, condition: Optional[str],
              body: Optional[Node]) -> Loop:
        return Loop(
            kind=kind,
            condition=condition or "loop_condition",
            line=node_line(node),
            body=tuple(self._statements(source_bytes, body)),
        )
