from __future__ import annotations

from theta import SExpression
from theta.builtin.macro_builtin import register as register_macros
from theta.debug_utils.pprint import to_source
from theta.expansion.macroexpand import macroexpand_all
from theta.reader.parser import read_many
from theta.types.macro_environment import MacroEnvironment


class Expander:
    """
    Reads theta source and expands every form it contains.
    Keeps one MacroEnvironment, so macros pulled in by `require` and the
    gensym counter persist across calls.

    Logging is left to the application; call
    `theta.config.configure_logging()` to get theta's stderr handler.
    """
    def __init__(self, macros: MacroEnvironment | None = None):
        if macros is None:
            macros = MacroEnvironment()
            register_macros(macros)
        self.macros = macros

    def expand_form(self, form: SExpression) -> SExpression:
        """Fully expand one already-read form."""
        return macroexpand_all(form, self.macros)

    def expand(self, code: str) -> list[SExpression]:
        """Read `code` and return the fully expanded forms, in order."""
        return [self.expand_form(form) for form in read_many(code)]

    def expand_to_source(self, code: str) -> str:
        """Expand `code` and render the result back to source text, one form per line."""
        return "\n".join(to_source(form) for form in self.expand(code))
