# --- Structural model recovered from source text ----------------------------
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class Dialect(str, Enum):
    """Source dialects the extractors understand."""
    JAVA = "java"
    KOTLIN = "kotlin"

    @classmethod
    def from_path(cls, path: str) -> "Dialect":
        # Anything that isn't a .java file is read as Kotlin
        return cls.JAVA if path.endswith(".java") else cls.KOTLIN


class LoopKind(str, Enum):
    FOR = "for"
    WHILE = "while"
    DO_WHILE = "do_while"


@dataclass(frozen=True)
class Parameter:
    name: str
    type: str


@dataclass(frozen=True)
class Call:
    """A call-like token found in a method body (e.g. `repo.save(name)`)."""
    callee_name: str  # simple name being called, e.g. "save"
    line: int
    receiver: Optional[str] = None  # text left of the dot, e.g. "repo"


@dataclass(frozen=True)
class Branch:
    """An `if (...)` header, with optional nested bodies."""
    condition: str
    line: int
    true_body: tuple = ()
    false_body: tuple = ()


@dataclass(frozen=True)
class Loop:
    """A `for`/`while`/`do ... while` header, with an optional nested body."""
    kind: LoopKind
    condition: str
    line: int
    body: tuple = ()


Statement = Union[Call, Branch, Loop]


@dataclass(frozen=True)
class MethodDeclaration:
    name: str  # e.g. "onCreate"
    class_name: str  # e.g. "MainActivity"
    visibility: str  # public/private/protected/internal, or "package"
    parameters: tuple  # Parameter, in declaration order
    return_type: Optional[str]  # None for constructors
    line: int
    statements: tuple = ()  # Statement, in source order

    @property
    def full_name(self) -> str:
        return f"{self.class_name}.{self.name}"


@dataclass(frozen=True)
class ClassDeclaration:
    name: str
    superclass: Optional[str]
    interfaces: tuple  # names, as written
    methods: tuple = ()  # MethodDeclaration, in declaration order
    line: int = 0
    package: Optional[str] = None
    file_path: Optional[str] = None
    dialect: Dialect = field(default=Dialect.JAVA)
