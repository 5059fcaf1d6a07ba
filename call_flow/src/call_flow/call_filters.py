# --- Call-name filtering shared by both extractors --------------------------
from typing import Optional

# Android framework/utility calls that never count as user calls. Matched
# against the called name and against the root of its receiver, so both
# `finish()` and `Log.d(TAG, msg)` are dropped.
FRAMEWORK_CALLS = frozenset({
    "Log",
    "Toast",
    "findViewById",
    "setContentView",
    "getSystemService",
    "startActivity",
    "finish",
    "runOnUiThread",
    "getString",
    "getResources",
})

# Tokens that look like `name(` but are language syntax, not calls.
KEYWORDS = frozenset({
    "if", "else", "for", "while", "do", "switch", "case", "when", "catch",
    "try", "synchronized", "return", "throw", "new", "assert", "super",
    "this", "fun", "class", "interface", "object", "constructor",
    "is", "in", "as", "instanceof", "typeof", "sizeof",
})


def is_framework_call(name: str, receiver: Optional[str] = None) -> bool:
    """
    `showToast`, `logEvent` and `getStringExtra` count as framework calls too:
    a name matches when it contains a deny-listed name or starts with its
    lowercase form. A receiver matches on its root segment only.
    """
    if any(framework in name or name.startswith(framework.lower()) for framework in FRAMEWORK_CALLS):
        return True
    if receiver:
        root = receiver.split(".", 1)[0]
        return root in FRAMEWORK_CALLS
    return False


def is_user_call(name: str, receiver: Optional[str] = None) -> bool:
    return name not in KEYWORDS and not is_framework_call(name, receiver)
