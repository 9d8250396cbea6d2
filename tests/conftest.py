import pytest

from theta.builtin.macro_builtin import register
from theta.reader.parser import read
from theta.types.macro_environment import MacroEnvironment
from theta.types.models import Dict, Expression, List, Tuple, head_name, mangle
from theta.types.symbol import Symbol

# Most tests check the *shape* of an expansion. The run-time properties of `let`
# (shadowing, sequential visibility, aliasing, destructuring) are checked by
# running the expansion through `mini_eval`, a tiny evaluator that understands
# just the forms the builtin macros emit.


@pytest.fixture
def macros():
    """Macro environment with the builtin macros and a short, predictable gensym prefix."""
    env = MacroEnvironment(gensym_prefix="_g")
    register(env)
    return env


@pytest.fixture
def expand(macros):
    """Read a single form from source and fully expand it."""
    def _expand(source):
        return macros.macro_expand_all(read(source))
    return _expand


@pytest.fixture
def run(expand):
    """Expand a single form from source and evaluate the expansion."""
    def _run(source, **bindings):
        scope = Scope(dict(BUILTINS))
        for name, value in bindings.items():
            scope.vars[mangle(name)] = value
        return mini_eval(expand(source), scope)
    return _run


# -------------------------
# Minimal evaluator
# -------------------------

BUILTINS = {
    "+": lambda *args: sum(args[1:], args[0]),
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "list": list,
    "len": len,
    "callable": callable,
}
BUILTINS = {mangle(name): value for name, value in BUILTINS.items()}


class Scope:
    def __init__(self, vars=None, outer=None):
        self.vars = vars if vars is not None else {}
        self.outer = outer

    def lookup(self, name):
        scope = self
        while scope is not None:
            if name in scope.vars:
                return scope.vars[name]
            scope = scope.outer
        raise NameError(name)


def _assign(target, value, scope):
    if isinstance(target, Symbol):
        scope.vars[mangle(target.id)] = value
    elif head_name(target) == "get":
        mini_eval(target[1], scope)[mini_eval(target[2], scope)] = value
    elif isinstance(target, (List, Tuple)):
        values = list(value)
        rest = [i for i, t in enumerate(target) if head_name(t) == "unpack_iterable"]
        if rest:
            i = rest[0]
            after = len(target) - i - 1
            _assign_each(target[:i], values[:i], scope)
            _assign(target[i][1], values[i:len(values) - after], scope)
            _assign_each(target[i + 1:], values[len(values) - after:], scope)
        else:
            assert len(values) == len(target), "wrong number of values to unpack"
            _assign_each(target, values, scope)
    else:
        raise TypeError(f"cannot assign to {target!r}")


def _assign_each(targets, values, scope):
    for t, v in zip(targets, values):
        _assign(t, v, scope)


def _eval_items(items, scope):
    result = []
    for item in items:
        if head_name(item) == "unpack_iterable":
            result.extend(mini_eval(item[1], scope))
        else:
            result.append(mini_eval(item, scope))
    return result


def _make_fn(params, body, scope):
    def fn(*args):
        local = Scope(outer=scope)
        _assign(List(params), args, local)
        result = None
        for form in body:
            result = mini_eval(form, local)
        return result
    return fn


def mini_eval(form, scope):
    if isinstance(form, Symbol):
        return scope.lookup(mangle(form.id))
    if isinstance(form, List):
        return _eval_items(form, scope)
    if isinstance(form, Tuple):
        return tuple(_eval_items(form, scope))
    if isinstance(form, Dict):
        values = _eval_items(form, scope)
        return dict(zip(values[::2], values[1::2]))
    if not isinstance(form, Expression):
        return form

    head = head_name(form)
    if head == "quote":
        return form[1]
    if head == "do":
        result = None
        for sub in form[1:]:
            result = mini_eval(sub, scope)
        return result
    if head == "setv":
        for target, value in zip(form[1::2], form[2::2]):
            _assign(target, mini_eval(value, scope), scope)
        return None
    if head == "get":
        return mini_eval(form[1], scope)[mini_eval(form[2], scope)]
    if head == "if":
        return mini_eval(form[2] if mini_eval(form[1], scope) else form[3], scope)
    if head == "fn":
        return _make_fn(form[1], form[2:], scope)
    if head == mangle(","):
        return tuple(_eval_items(form[1:], scope))
    fn, *args = _eval_items(form, scope)
    return fn(*args)
