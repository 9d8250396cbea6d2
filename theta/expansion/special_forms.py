"""Reserved special-form names.

Heads listed here are core syntax rather than ordinary calls. The
symbol-substitution engine never rewrites a reserved name in head position, so
a local binding that happens to share a keyword's name cannot rename it.
Names are stored mangled.
"""

from theta.types.models import mangle

SPECIAL_FORMS = frozenset(
    mangle(name)
    for name in (
        ".",
        "and",
        "annotate",
        "assert",
        "await",
        "break",
        "chainc",
        "continue",
        "cut",
        "defclass",
        "defmacro",
        "defn",
        "deftype",
        "del",
        "dfor",
        "do",
        "do-mac",
        "eval-and-compile",
        "eval-when-compile",
        "except",
        "finally",
        "fn",
        "for",
        "get",
        "gfor",
        "global",
        "if",
        "import",
        "in",
        "is",
        "is-not",
        "lfor",
        "local-macros",
        "match",
        "nonlocal",
        "not",
        "not-in",
        "or",
        "pragma",
        "py",
        "pys",
        "quasiquote",
        "quote",
        "raise",
        "require",
        "return",
        "setv",
        "setx",
        "sfor",
        "try",
        "unpack-iterable",
        "unpack-mapping",
        "unquote",
        "unquote-splice",
        "while",
        "with",
        "yield",
        "yield-from",
    )
)

QUOTE = mangle("quote")
QUASIQUOTE = mangle("quasiquote")
UNQUOTE = mangle("unquote")
UNQUOTE_SPLICE = mangle("unquote-splice")
UNQUOTES = frozenset((UNQUOTE, UNQUOTE_SPLICE))
REQUIRE = mangle("require")
UNPACK_ITERABLE = mangle("unpack-iterable")
UNPACK_MAPPING = mangle("unpack-mapping")
EXCEPT = mangle("except")
DOT = "."
