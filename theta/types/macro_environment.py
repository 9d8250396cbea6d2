from __future__ import annotations

import importlib
import logging
from itertools import count
from typing import Optional

from theta import MacroTransformer, SExpression
from theta.config import get_gensym_prefix
from theta.errors import ThetaNameError, ThetaSyntaxError
from theta.types.models import Expression, List, head_name, mangle
from theta.types.symbol import Symbol

logger = logging.getLogger(__name__)

# Name of the module attribute through which a Python module publishes macros
# to `require`: a dict mapping macro names to transformers.
MACROS_ATTRIBUTE = "__theta_macros__"


class MacroEnvironment:
    """
    Macro environment mapping mangled macro names to Python transformers.

    Features:
    - Head-position macro lookup (`try_expand`)
    - Fixed-point and full expansion (delegating to theta.expansion.macroexpand)
    - Fresh, non-colliding names for generated code (`gen_sym`)
    - `require` side effects that load macros from Python modules

    A transformer is called as `transformer(args, macros)` where `args` is the
    tuple of unevaluated argument forms and `macros` is this environment.
    """

    def __init__(self, gensym_prefix: str | None = None):
        self.macros: dict[str, MacroTransformer] = {}
        self.gensym_prefix = gensym_prefix if gensym_prefix is not None else get_gensym_prefix()
        self._gensym_counter = count(1)
        # require forms already processed, by node identity; the node is kept so
        # its id cannot be reused
        self._required: dict[int, Expression] = {}

    def define_macro(self, name: Symbol | str, transformer: MacroTransformer) -> None:
        key = name.id if isinstance(name, Symbol) else name
        self.macros[mangle(key)] = transformer

    def is_macro(self, sym: Symbol) -> bool:
        return isinstance(sym, Symbol) and mangle(sym.id) in self.macros

    def gen_sym(self, hint: Symbol | str = "G") -> Symbol:
        """Return a symbol that collides with no user name and no other generated name.

        Names beginning with `gensym_prefix` (THETA_GENSYM_PREFIX, default
        `_theta_gensym`) are reserved for generated code. Source that spells such
        a name itself is outside that guarantee.
        """
        text = hint.id if isinstance(hint, Symbol) else str(hint)
        return Symbol(f"{self.gensym_prefix}_{mangle(text)}_{next(self._gensym_counter)}")

    # Single-step head expansion
    def try_expand(self, form: SExpression) -> Optional[SExpression]:
        """Expand the head-position macro once, or return None if `form` is not a macro call."""
        name = head_name(form)
        if name is None or name not in self.macros:
            return None
        transformer = self.macros[name]
        logger.debug("expanding macro %s", form[0])
        # Errors raised by the transformer propagate unchanged
        return transformer(tuple(form[1:]), self)

    # Fixed-point head expansion
    def macro_expand_head(self, form: SExpression) -> SExpression:
        cur = form
        while True:
            nxt = self.try_expand(cur)
            if nxt is None:
                return cur
            cur = nxt

    # Full expansion
    def macro_expand_all(self, form: SExpression) -> SExpression:
        from theta.expansion.macroexpand import macroexpand_all
        return macroexpand_all(form, self)

    # Host compiler hook for `require`
    def compile_side_effect(self, form: Expression) -> None:
        """Process `(require module)`, `(require module [names])` or `(require module *)`.

        The module is imported and the macros it publishes under
        `__theta_macros__` are registered: qualified as `module.name` for the
        bare form, unqualified when names (or `*`) are given.
        A form is processed once: walking the same node again, as happens when a
        macro expands its body and the driver re-expands the macro's result, is
        a no-op.
        """
        if len(form) not in (2, 3) or not isinstance(form[1], Symbol):
            raise ThetaSyntaxError(f"Malformed require form: {form!r}")
        if self._required.get(id(form)) is form:
            return
        self._require(form)
        self._required[id(form)] = form

    def _require(self, form: Expression) -> None:
        module_name = form[1].id
        module = importlib.import_module(mangle(module_name))
        published: dict = getattr(module, MACROS_ATTRIBUTE, {})
        logger.debug("require %s: %d macro(s) published", module_name, len(published))

        if len(form) == 2:
            for name, transformer in published.items():
                self.define_macro(f"{module_name}.{name}", transformer)
            return

        selection = form[2]
        if selection == Symbol("*"):
            for name, transformer in published.items():
                self.define_macro(name, transformer)
            return
        if not isinstance(selection, List):
            raise ThetaSyntaxError(f"require expects a list of names or *, got {selection!r}")

        by_mangled = {mangle(name): transformer for name, transformer in published.items()}
        for sym in selection:
            if not isinstance(sym, Symbol):
                raise ThetaSyntaxError(f"require names must be symbols, got {sym!r}")
            if mangle(sym.id) not in by_mangled:
                raise ThetaNameError(f"Module '{module_name}' does not publish macro '{sym.id}'")
            self.define_macro(sym, by_mangled[mangle(sym.id)])
