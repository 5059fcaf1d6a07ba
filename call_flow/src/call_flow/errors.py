# --- Exceptions ----------------------------------------------------------------


class CallFlowError(Exception):
    """Base class for errors raised by the call-flow pipeline."""


class ConfigurationError(CallFlowError, ValueError):
    """A setting (environment variable or CLI flag) has an unusable value."""


class InvalidEntryMethodError(CallFlowError, ValueError):
    """The requested entry method can't be traced."""


class UnknownEntryMethodError(InvalidEntryMethodError):
    """The entry method isn't declared in any analysed source."""

    def __init__(self, entry_method: str):
        super().__init__(f"Unknown entry method: {entry_method!r}")
        self.entry_method = entry_method


class GrammarUnavailableError(CallFlowError, RuntimeError):
    """The tree-sitter Java grammar couldn't be loaded."""
