# Core type aliases for theta's code model.
# Code is represented by theta models (Symbol, Keyword and the Sequence kinds in
# theta.types.models) plus plain Python atoms (int, float, str, bool, None).
#
# Naming guidance:
# - SExpression: any code node, used throughout the reader, expander and macros.
# - SymbolExpander: callback used by the symbol-substitution engine.
# - MacroTransformer: Python implementation of a macro.

from typing import Any, Callable

SExpression = Any

# Replacement callback: receives a Symbol, returns its replacement form
SymbolExpander = Callable[[Any], SExpression]

# Macro transformer: receives the unevaluated argument forms and the macro environment
MacroTransformer = Callable[..., SExpression]
