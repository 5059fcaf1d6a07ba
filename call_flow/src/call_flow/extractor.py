"""
Line-oriented structure extractor
---------------------------------
Recovers a shallow structural model from Java or Kotlin source text without a
grammar:
- classes (with superclass / implemented interfaces)
- methods in each class (visibility, parameters, return type)
- for each method, a flat list of calls, `if` headers and loop headers

Scope is tracked with a brace-depth counter over comment- and string-masked
lines. Anything a pattern doesn't recognise is skipped; extraction never fails.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from call_flow.src.call_flow.call_filters import is_user_call
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

logger = logging.getLogger(__name__)

VISIBILITY_KEYWORDS = ("public", "private", "protected", "internal")

_ANNOTATIONS = r"(?:@[\w.]+(?:\([^)]*\))?\s+)*"

# --- Declaration patterns (applied to a stripped, masked line) ---------------

JAVA_CLASS_RE = re.compile(
    r"^" + _ANNOTATIONS +
    r"(?:(?:public|private|protected|static|final|abstract|sealed|non-sealed|strictfp)\s+)*"
    r"(?:class|interface|enum|record)\s+(?P<name>\w+)"
    r"(?:\s*<[^{]*?>)?"
    r"(?:\s*\([^)]*\))?"
    r"(?:\s+extends\s+(?P<extends>[\w.<>,?\s]+?))?"
    r"(?:\s+implements\s+(?P<implements>[\w.<>,?\s]+?))?"
    r"(?:\s+permits\s+[\w.,\s]+?)?"
    r"\s*(?:\{.*)?$"
)

KOTLIN_CLASS_RE = re.compile(
    r"^" + _ANNOTATIONS +
    r"(?:(?:public|private|protected|internal|open|final|abstract|sealed|data|enum|inner"
    r"|annotation|value|inline|expect|actual)\s+)*"
    r"(?:class|interface|object)\s+(?P<name>\w+)"
    r"(?:\s*<[^>]*>)?"
    r"(?:\s*(?:(?:public|private|protected|internal)\s+)?(?:constructor\s*)?\(.*?\))?"
    r"(?:\s*:\s*(?P<supers>[^{]+?))?"
    r"\s*(?:\{.*)?$"
)

KOTLIN_COMPANION_RE = re.compile(
    r"^(?:(?:public|private|protected|internal)\s+)?companion\s+object(?:\s+(?P<name>\w+))?"
    r"(?:\s*:\s*(?P<supers>[^{]+?))?\s*(?:\{.*)?$"
)

# Heads only need the name: the header may wrap onto the following lines.
JAVA_CLASS_HEAD_RE = re.compile(
    r"^" + _ANNOTATIONS +
    r"(?:(?:public|private|protected|static|final|abstract|sealed|non-sealed|strictfp)\s+)*"
    r"(?:class|interface|enum|record)\s+(?P<name>\w+)"
)

KOTLIN_CLASS_HEAD_RE = re.compile(
    r"^" + _ANNOTATIONS +
    r"(?:(?:public|private|protected|internal|open|final|abstract|sealed|data|enum|inner"
    r"|annotation|value|inline|expect|actual)\s+)*"
    r"(?:class|interface|object)\s+(?P<name>\w+)"
)

# Method heads end at the `(` of the parameter list; the matching `)` is
# found by counting, so default values like `= bar()` are fine.
JAVA_METHOD_HEAD_RE = re.compile(
    r"^" + _ANNOTATIONS +
    r"(?P<mods>(?:(?:public|private|protected|static|final|abstract|synchronized|native|default"
    r"|strictfp)\s+)*)"
    r"(?:<[^>]+>\s+)?"
    r"(?P<ret>[\w.$]+(?:\s*<.*?>)?(?:\s*\[\s*\])*)\s+"
    r"(?P<name>\w+)\s*\("
)

JAVA_CONSTRUCTOR_HEAD_RE = re.compile(
    r"^" + _ANNOTATIONS +
    r"(?P<mods>(?:(?:public|private|protected)\s+)*)"
    r"(?P<name>\w+)\s*\("
)

KOTLIN_FUN_HEAD_RE = re.compile(
    r"^" + _ANNOTATIONS +
    r"(?P<mods>(?:(?:public|private|protected|internal|open|override|final|abstract|suspend"
    r"|inline|operator|infix|tailrec|external|actual|expect)\s+)*)"
    r"fun\s+(?:<[^>]*>\s*)?(?:[\w.<>?]+\.)?(?P<name>\w+)\s*\("
)

# Tails are matched against the text after the parameter list's `)`.
JAVA_METHOD_TAIL_RE = re.compile(r"^(?:\s*throws(?:\s+[\w.,\s]+?)?)?\s*(?P<tail>\{.*|;.*|)$")
JAVA_CONSTRUCTOR_TAIL_RE = re.compile(r"^(?:\s*throws(?:\s+[\w.,\s]+?)?)?\s*(?P<tail>\{.*|)$")
KOTLIN_FUN_TAIL_RE = re.compile(r"^(?:\s*:\s*(?P<ret>[^{=]+?))?\s*(?P<tail>\{.*|=.*|)$")

# A declaration header carries on to the next line when the line starts or
# the header so far ends with one of these.
_CONTINUATION_START_RE = re.compile(
    r"^(?:[{:,)(.<=]|(?:extends|implements|permits|throws|where|constructor)\b)"
)
_CONTINUATION_END_RE = re.compile(r"(?:[,:(<.=]|\b(?:extends|implements|permits|throws|where))$")

PACKAGE_RE = re.compile(r"^package\s+([\w.]+)\s*;?$")

# --- Statement patterns (applied anywhere in a masked body line) -------------

CALL_RE = re.compile(
    r"(?:(?P<receiver>[A-Za-z_$][\w$]*(?:\s*\.\s*[A-Za-z_$][\w$]*)*)\s*\.\s*)?"
    r"(?P<name>[A-Za-z_$][\w$]*)\s*\("
)
BRANCH_RE = re.compile(r"\bif\s*\(")
LOOP_RE = re.compile(r"\b(?P<keyword>for|while|do)\s*\(")


# --- Line masking -------------------------------------------------------------

def mask_line(raw: str, in_block_comment: bool) -> tuple[str, str, bool]:
    """
    Returns (code, masked, in_block_comment) for one physical line.

    `code` is the line with comments blanked out; `masked` additionally blanks
    the inside of string and char literals. Both keep the original column
    positions so a match found in `masked` can be sliced out of `code`.
    """
    code = []
    masked = []
    i = 0
    n = len(raw)
    quote = None
    while i < n:
        ch = raw[i]
        nxt = raw[i + 1] if i + 1 < n else ""
        if in_block_comment:
            if ch == "*" and nxt == "/":
                in_block_comment = False
                code.append("  ")
                masked.append("  ")
                i += 2
                continue
            code.append(" ")
            masked.append(" ")
            i += 1
            continue
        if quote:
            code.append(ch)
            if ch == "\\" and nxt:
                code.append(nxt)
                masked.append("  ")
                i += 2
                continue
            if ch == quote:
                quote = None
                masked.append(ch)
            else:
                masked.append(" ")
            i += 1
            continue
        if ch == "/" and nxt == "/":
            break
        if ch == "/" and nxt == "*":
            in_block_comment = True
            code.append("  ")
            masked.append("  ")
            i += 2
            continue
        if ch in ("\"", "'"):
            quote = ch
        code.append(ch)
        masked.append(ch)
        i += 1
    return "".join(code), "".join(masked), in_block_comment


def _balanced_end(masked: str, open_index: int) -> Optional[int]:
    """Index of the `)` matching the `(` at open_index, or None if the line ends first."""
    depth = 0
    for i in range(open_index, len(masked)):
        if masked[i] == "(":
            depth += 1
        elif masked[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return None


def extract_condition(masked: str, code: str, open_index: int) -> Optional[str]:
    close = _balanced_end(masked, open_index)
    text = code[open_index + 1:close] if close is not None else code[open_index + 1:]
    text = " ".join(text.split())
    return text or None


def _closes_do_block(before: str, masked: str, dialect: Dialect) -> bool:
    """`} while (cond);` in Java, `} while (cond)` in Kotlin."""
    before = before.strip()
    if before != "}" and not (re.match(r"do\s*\{", before) and before.endswith("}")):
        return False
    line = masked.rstrip()
    if dialect is Dialect.JAVA:
        return line.endswith(";")
    return not line.endswith("{")


def continues_header(header: str, line: str) -> bool:
    """True when `line` is more of the declaration header collected so far."""
    if header.count("(") > header.count(")"):
        return True
    return bool(_CONTINUATION_START_RE.match(line) or _CONTINUATION_END_RE.search(header))


def scan_statements(masked: str, code: str, line_no: int, dialect: Dialect = Dialect.JAVA) -> list:
    """
    Finds every statement on one body line: calls first (in textual order),
    then `if` headers, then loop headers.
    """
    statements = []

    for m in CALL_RE.finditer(masked):
        start = m.start()
        if start > 0 and masked[start - 1] in "@:":
            continue  # annotation or method reference
        name = m.group("name")
        receiver = m.group("receiver")
        if receiver:
            receiver = re.sub(r"\s+", "", receiver)
        if not is_user_call(name, receiver):
            continue
        statements.append(Call(callee_name=name, line=line_no, receiver=receiver))

    for m in BRANCH_RE.finditer(masked):
        condition = extract_condition(masked, code, m.end() - 1)
        statements.append(Branch(condition=condition or "condition", line=line_no))

    for m in LOOP_RE.finditer(masked):
        keyword = m.group("keyword")
        if keyword == "do":
            kind = LoopKind.DO_WHILE
        elif keyword == "while" and _closes_do_block(masked[:m.start()], masked, dialect):
            kind = LoopKind.DO_WHILE
        else:
            kind = LoopKind(keyword)
        condition = extract_condition(masked, code, m.end() - 1)
        statements.append(Loop(kind=kind, condition=condition or "loop_condition", line=line_no))

    return statements


# --- Parameter / inheritance parsing -----------------------------------------

def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Splits on `sep` outside of <...>, (...) and [...]."""
    parts = []
    depth = 0
    current = []
    for ch in text:
        if ch in "<([":
            depth += 1
        elif ch in ">)]":
            depth = max(0, depth - 1)
        if ch == sep and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def parse_parameters(param_text: str, dialect: Dialect) -> tuple:
    """
    Java: `final Map<K, V> byKey` -> name is the trailing identifier.
    Kotlin: `name: Type = default` -> type is the text after the colon.
    Pieces that don't fit the shape are dropped.
    """
    params = []
    for piece in split_top_level(param_text):
        if dialect is Dialect.JAVA:
            tokens = [t for t in piece.split() if not t.startswith("@") and t != "final"]
            if len(tokens) >= 2:
                params.append(Parameter(name=tokens[-1], type=" ".join(tokens[:-1])))
        else:
            name, colon, rest = piece.partition(":")
            if not colon:
                continue
            name_tokens = [t for t in name.split() if not t.startswith("@")]
            if not name_tokens:
                continue
            param_type = rest.split("=", 1)[0].strip()
            params.append(Parameter(name=name_tokens[-1], type=param_type))
    return tuple(params)


def _clean_type_name(text: str) -> str:
    # `Base(arg)` -> `Base`, `Listener by impl` -> `Listener`
    text = re.sub(r"\(.*\)", "", text)
    text = re.split(r"\s+by\s+", text)[0]
    return " ".join(text.split())


def parse_java_inheritance(extends: Optional[str], implements: Optional[str]) -> tuple[Optional[str], tuple]:
    supers = split_top_level(extends) if extends else []
    interfaces = supers[1:] + (split_top_level(implements) if implements else [])
    return (supers[0] if supers else None), tuple(interfaces)


def parse_kotlin_inheritance(supers: Optional[str]) -> tuple[Optional[str], tuple]:
    """First name in `: A(), B, C` is treated as the superclass, the rest as interfaces."""
    names = [_clean_type_name(s) for s in split_top_level(supers)] if supers else []
    names = [n for n in names if n]
    if not names:
        return None, ()
    return names[0], tuple(names[1:])


def visibility_of(modifiers: str) -> str:
    for token in modifiers.split():
        if token in VISIBILITY_KEYWORDS:
            return token
    return "package"


# --- Extraction state ---------------------------------------------------------

@dataclass
class _OpenMethod:
    name: str
    class_name: str
    visibility: str
    parameters: tuple
    return_type: Optional[str]
    line: int
    base_depth: int
    header: list = field(default_factory=list)  # masked header lines, until the body opens
    entered: bool = False
    statements: list = field(default_factory=list)

    def freeze(self) -> MethodDeclaration:
        return MethodDeclaration(
            name=self.name,
            class_name=self.class_name,
            visibility=self.visibility,
            parameters=self.parameters,
            return_type=self.return_type,
            line=self.line,
            statements=tuple(self.statements),
        )


@dataclass
class _OpenClass:
    name: str
    superclass: Optional[str]
    interfaces: tuple
    line: int
    base_depth: int
    header: list = field(default_factory=list)
    entered: bool = False
    methods: list = field(default_factory=list)

    def freeze(self, package: Optional[str], file_path: Optional[str], dialect: Dialect) -> ClassDeclaration:
        return ClassDeclaration(
            name=self.name,
            superclass=self.superclass,
            interfaces=self.interfaces,
            methods=tuple(self.methods),
            line=self.line,
            package=package,
            file_path=file_path,
            dialect=dialect,
        )


def _signature(header: str, open_index: int, tail_re):
    """
    Splits a declaration header at the parameter list opened at `open_index`.
    Returns (params, tail match, tail start), with None for the last two while
    the list is still open, or None when the text after `)` isn't a valid tail.
    """
    close = _balanced_end(header, open_index)
    if close is None:
        return header[open_index + 1:], None, None
    rest = header[close + 1:]
    tail = tail_re.match(rest)
    if tail is None:
        return None
    return header[open_index + 1:close], tail, close + 1 + tail.start("tail")


class SourceExtractor:
    """
    Scans one source file line by line. A fresh scan state is used for every
    call to `extract`, so one instance can be shared.
    """

    def extract(self, source: str, dialect: Dialect, file_path: Optional[str] = None) -> list[ClassDeclaration]:
        scan = _Scan(Dialect(dialect), file_path)
        for index, raw in enumerate(source.splitlines()):
            scan.feed(raw, index + 1)
        classes = scan.finish()
        logger.debug("Extracted %d classes from %s", len(classes), file_path or "<source>")
        return classes


class _Scan:
    def __init__(self, dialect: Dialect, file_path: Optional[str]):
        self.dialect = dialect
        self.file_path = file_path
        self.package: Optional[str] = None
        self.depth = 0
        self.in_block_comment = False
        self.opened: list[_OpenClass] = []  # every class, in opening order
        self.class_stack: list[_OpenClass] = []  # enclosing classes of `current_class`
        self.current_class: Optional[_OpenClass] = None
        self.current_method: Optional[_OpenMethod] = None

    # -- feeding ---------------------------------------------------------------

    def feed(self, raw: str, line_no: int):
        code, masked, self.in_block_comment = mask_line(raw, self.in_block_comment)
        code = code.strip()
        masked = masked.strip()
        if not masked or masked.startswith("*"):
            return

        depth_before = self.depth
        self.depth += masked.count("{") - masked.count("}")

        if self._continue_header(masked, code, line_no):
            return

        if self.package is None and self.current_class is None:
            m = PACKAGE_RE.match(masked)
            if m:
                self.package = m.group(1)
                return

        if self.current_method is None and self._open_class(masked, line_no, depth_before):
            return

        if (self.current_class is not None and self.current_method is None
                and self.current_class.entered and depth_before == self.current_class.base_depth + 1):
            if self._open_method(masked, code, line_no, depth_before):
                return

        if self.current_method is not None:
            self.current_method.statements.extend(scan_statements(masked, code, line_no, self.dialect))
            self._settle_method()

        self._settle_class()

    def _continue_header(self, masked: str, code: str, line_no: int) -> bool:
        """
        Offers a line to the class or method whose body hasn't opened yet.
        A line that isn't more of its header closes it as a declaration
        without a body, and False is returned so the line is handled normally.
        """
        method = self.current_method
        if method is not None and not method.entered:
            if not continues_header(" ".join(method.header), masked):
                self._close_method()
                return False
            method.header.append(masked)
            self._resolve_method(method, masked, code, line_no)
            self._settle_class()
            return True

        cls = self.current_class
        if method is None and cls is not None and not cls.entered:
            if not continues_header(" ".join(cls.header), masked):
                self._close_class()  # `data class Point(val x: Int)`
                return False
            cls.header.append(masked)
            self._resolve_class(cls, masked)
            return True
        return False

    def finish(self) -> list[ClassDeclaration]:
        if self.current_method is not None:
            self._close_method()
        while self.current_class is not None:
            self._close_class()
        return [c.freeze(self.package, self.file_path, self.dialect) for c in self.opened]

    # -- classes ---------------------------------------------------------------

    def _open_class(self, masked: str, line_no: int, depth_before: int) -> bool:
        if self.dialect is Dialect.JAVA:
            m = JAVA_CLASS_HEAD_RE.match(masked)
        else:
            m = KOTLIN_CLASS_HEAD_RE.match(masked) or KOTLIN_COMPANION_RE.match(masked)
        if not m:
            return False
        name = m.group("name") or "Companion"

        if self.current_class is not None:
            self.class_stack.append(self.current_class)
        cls = _OpenClass(name, None, (), line_no, base_depth=depth_before, header=[masked])
        self.opened.append(cls)
        self.current_class = cls
        logger.debug("Class %s opened at line %d", name, line_no)
        self._resolve_class(cls, masked)
        return True

    def _resolve_class(self, cls: _OpenClass, masked: str):
        """Re-reads inheritance from the header so far; a `{` on this line opens the body."""
        header = " ".join(cls.header)
        if self.dialect is Dialect.JAVA:
            m = JAVA_CLASS_RE.match(header)
            if m:
                cls.superclass, cls.interfaces = parse_java_inheritance(m.group("extends"), m.group("implements"))
        else:
            m = KOTLIN_CLASS_RE.match(header) or KOTLIN_COMPANION_RE.match(header)
            if m:
                cls.superclass, cls.interfaces = parse_kotlin_inheritance(m.group("supers"))

        if "{" in masked:
            if self.depth > cls.base_depth:
                cls.entered = True
            else:
                self._close_class()  # `class Empty {}`

    def _settle_class(self):
        cls = self.current_class
        if cls is not None and cls.entered and self.depth <= cls.base_depth:
            self._close_class()
            # a single line can close more than one scope: `} }`
            self._settle_class()

    def _close_class(self):
        if self.current_method is not None:
            self._close_method()
        self.current_class = self.class_stack.pop() if self.class_stack else None

    # -- methods ---------------------------------------------------------------

    def _open_method(self, masked: str, code: str, line_no: int, depth_before: int) -> bool:
        cls = self.current_class
        decl = self._match_method(masked, cls.name)
        if decl is None:
            return False
        name, visibility, params, return_type, _ = decl
        method = _OpenMethod(
            name=name,
            class_name=cls.name,
            visibility=visibility,
            parameters=parse_parameters(params, self.dialect),
            return_type=return_type,
            line=line_no,
            base_depth=depth_before,
            header=[masked],
        )
        self.current_method = method
        logger.debug("Method %s.%s opened at line %d", cls.name, name, line_no)
        self._resolve_method(method, masked, code, line_no)
        return True

    def _resolve_method(self, method: _OpenMethod, masked: str, code: str, line_no: int):
        """
        Re-reads the header collected so far. Once the parameter list has
        closed, a `{` or `=` tail opens the body and `;` ends the declaration.
        """
        header = " ".join(method.header)
        decl = self._match_method(header, method.class_name)
        if decl is None:
            self._close_method()
            return
        _, _, params, return_type, tail_start = decl
        method.parameters = parse_parameters(params, self.dialect)
        method.return_type = return_type
        if tail_start is None:
            return  # parameter list continues on the next line

        tail = header[tail_start:]
        if tail.startswith(";"):
            self._close_method()  # abstract / interface method
            return
        if tail in ("", "="):
            return  # body or expression starts on a later line

        # statements after the `{` or `=`, counted from the start of this line
        start = max(0, tail_start + 1 - (len(header) - len(masked)))
        method.statements.extend(scan_statements(masked[start:], code[start:], line_no, self.dialect))
        if self.depth > method.base_depth:
            method.entered = True  # also Kotlin `= run {`
        else:
            self._close_method()  # body opened and closed on the same line

    def _match_method(self, header: str, class_name: str):
        """Returns (name, visibility, params, return_type, tail_start) or None."""
        if self.dialect is Dialect.KOTLIN:
            m = KOTLIN_FUN_HEAD_RE.match(header)
            sig = _signature(header, m.end() - 1, KOTLIN_FUN_TAIL_RE) if m else None
            if sig is None:
                return None
            params, tail, tail_start = sig
            ret = tail.group("ret") if tail else None
            return_type = " ".join(ret.split()) if ret else "Unit"
            return m.group("name"), visibility_of(m.group("mods")), params, return_type, tail_start

        m = JAVA_CONSTRUCTOR_HEAD_RE.match(header)
        if m and m.group("name") == class_name:
            sig = _signature(header, m.end() - 1, JAVA_CONSTRUCTOR_TAIL_RE)
            if sig is not None:
                return m.group("name"), visibility_of(m.group("mods")), sig[0], None, sig[2]

        m = JAVA_METHOD_HEAD_RE.match(header)
        if not m:
            return None
        ret = m.group("ret")
        if ret in ("return", "new", "else", "throw", "case", "yield", "package", "import"):
            return None
        sig = _signature(header, m.end() - 1, JAVA_METHOD_TAIL_RE)
        if sig is None:
            return None
        return m.group("name"), visibility_of(m.group("mods")), sig[0], " ".join(ret.split()), sig[2]

    def _settle_method(self):
        method = self.current_method
        if method is not None and method.entered and self.depth <= method.base_depth:
            self._close_method()

    def _close_method(self):
        method = self.current_method
        self.current_method = None
        if method is not None and self.current_class is not None:
            self.current_class.methods.append(method.freeze())


def extract(source: str, dialect: Dialect, file_path: Optional[str] = None) -> list[ClassDeclaration]:
    """Convenience wrapper around `SourceExtractor().extract`."""
    return SourceExtractor().extract(source, dialect, file_path)
