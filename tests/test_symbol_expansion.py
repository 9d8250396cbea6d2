import pytest

from theta.debug_utils.pprint import to_source
from theta.errors import ThetaQuotationUnderflow, ThetaSyntaxError
from theta.expansion.symbols import expand_symbols
from theta.reader.parser import read
from theta.types.models import Dict, Expression, mangle
from theta.types.symbol import Symbol

X_Y = {"x": "X", "y": "Y"}


def table_expander(table):
    """Expander replacing the names in `table` with the form read from its value."""
    replacements = {mangle(name): read(code) for name, code in table.items()}
    return lambda sym: replacements.get(mangle(sym.id), sym)


def subst(source, table=X_Y, **kwargs):
    return to_source(expand_symbols(read(source), table_expander(table), **kwargs))


# -------------------------
# Plain substitution
# -------------------------

@pytest.mark.parametrize(
    "source, expected",
    [
        ("x", "X"),
        ("z", "z"),
        ("(g x y)", "(g X Y)"),
        ("(x y)", "(X Y)"),
        ("(g x [y {x y}] #(x) #{y})", "(g X [Y {X Y}] #(X) #{Y})"),
        ('(g 1 "x" :x None)', '(g 1 "x" :x None)'),
        ("((g x) y)", "((g X) Y)"),
    ]
)
def test_free_symbols_are_replaced(source, expected):
    assert subst(source) == expected


def test_atoms_pass_through():
    expander = table_expander(X_Y)
    assert expand_symbols(5, expander) == 5
    assert expand_symbols("x", expander) == "x"
    assert expand_symbols(None, expander) is None


def test_reserved_heads_are_never_replaced():
    table = {"if": "IF", "setv": "SETV", "x": "X"}
    assert subst("(if x (setv y x) x)", table) == "(if X (setv y X) X)"
    # ...but the same names in argument position are ordinary symbols
    assert subst("(g if)", table) == "(g IF)"


def test_replacement_is_not_walked_again():
    assert subst("(g x)", {"x": "(h x y)", "y": "Y"}) == "(g (h x y))"


def test_spellings_of_one_name_are_the_same_name():
    assert subst("(g foo_bar foo-bar)", {"foo-bar": "FB"}) == "(g FB FB)"


def test_input_is_not_mutated():
    form = read("(g x `(x ~y) (fn [x] x))")
    before = to_source(form)
    expand_symbols(form, table_expander(X_Y))
    assert to_source(form) == before


# -------------------------
# Protected names
# -------------------------

def test_protected_names_are_left_alone():
    assert subst("(g x y)", protected=["x"]) == "(g x Y)"
    assert subst("(g x y)", protected=[Symbol("y")]) == "(g X y)"
    assert subst("(g foo-bar)", {"foo-bar": "FB"}, protected=["foo_bar"]) == "(g foo-bar)"


# -------------------------
# Quotation
# -------------------------

@pytest.mark.parametrize(
    "source, expected",
    [
        ("'(x y)", "'(x y)"),
        ("(quote x)", "'x"),
        ("'(g ~x)", "'(g ~x)"),
        ("`(x ~x ~@y)", "`(x ~X ~@Y)"),
        ("`[x {y ~y}]", "`[x {y ~Y}]"),
        ("`x.y", "`x.y"),
        ("`(x `(x ~x ~~y))", "`(x `(x ~x ~~Y))"),
        ("(g `x x)", "(g `x X)"),
    ]
)
def test_quotation(source, expected):
    assert subst(source) == expected


def test_starting_quote_level():
    assert subst("(x ~y)", quote_level=1) == "(x ~Y)"
    assert subst("(x ~(g ~y))", quote_level=2) == "(x ~(g ~Y))"


@pytest.mark.parametrize("source", ["~x", "(g ~@x)", "`~~x", "`(g ~(h ~x))"])
def test_unquote_outside_quasiquote(source):
    with pytest.raises(ThetaQuotationUnderflow):
        subst(source)


@pytest.mark.parametrize(
    "source",
    ["(import x)", "(require x [y])", "(eval-and-compile (setv x y))", "(eval-when-compile x)"]
)
def test_opaque_forms_are_untouched(source):
    assert subst(source) == source


# -------------------------
# Attribute access
# -------------------------

@pytest.mark.parametrize(
    "source, expected",
    [
        ("x.y", "(. X y)"),
        ("x.y.x", "(. X y x)"),
        ("a.x", "(. a x)"),
        ("(. x y (g y))", "(. X y (g Y))"),
        ("(. x)", "(. X)"),
        ("(x.y 1)", "((. X y) 1)"),
        ("(.x y)", "(.x Y)"),
        ("(g .x)", "(g .x)"),
    ]
)
def test_attribute_access(source, expected):
    assert subst(source) == expected


def test_dotted_object_replaced_by_code():
    assert subst("x.y", {"x": "(g)"}) == "(. (g) y)"


# -------------------------
# except
# -------------------------

def test_except_binds_its_name_for_the_clause():
    assert (
        subst("(try (x) (except [x E] (g x y)) x)")
        == "(try (X) (except [x E] (g x Y)) X)"
    )


def test_except_exception_types_are_values():
    assert subst("(except [e E] e)", {"E": "Err", "e": "ee"}) == "(except [e Err] e)"
    assert subst("(except [E] x)", {"E": "Err", "x": "X"}) == "(except [Err] X)"
    assert subst("(except [] x)") == "(except [] X)"


# -------------------------
# fn / defn / defmacro
# -------------------------

@pytest.mark.parametrize(
    "source, expected",
    [
        ("(fn [x] (g x y))", "(fn [x] (g x Y))"),
        ("(fn [x [y x]] (g x y))", "(fn [x [y X]] (g x y))"),
        ("(fn [a #*x #**y] (g x y))", "(fn [a #*x #**y] (g x y))"),
        ("(fn [a * [x y]] (g x y))", "(fn [a * [x Y]] (g x Y))"),
        ("(fn [a / x] (g a x y))", "(fn [a / x] (g a x Y))"),
        ("(fn :async [a] (await x))", "(fn :async [a] (await X))"),
        ("(fn [] x)", "(fn [] X)"),
        # parameters do not reach siblings
        ("(g (fn [x] x) x)", "(g (fn [x] x) X)"),
        # inner binders nest inside outer ones
        ("(fn [x] (fn [y] (g x y)))", "(fn [x] (fn [y] (g x y)))"),
    ]
)
def test_fn(source, expected):
    assert subst(source) == expected


@pytest.mark.parametrize(
    "source, expected",
    [
        ("(defn x [y] (g x y))", "(defn x [y] (g X y))"),
        ("(defn [x] :async f [a] (g a y))", "(defn [X] :async f [a] (g a Y))"),
        ("(defn f [[a x]] a)", "(defn f [[a X]] a)"),
        ("(defmacro m [x] `(g ~x ~y))", "(defmacro m [x] `(g ~x ~Y))"),
    ]
)
def test_defn(source, expected):
    assert subst(source) == expected


@pytest.mark.parametrize(
    "source",
    [
        "(fn)",
        "(fn x x)",
        "(fn [a.b] 1)",
        "(fn [a [b]] 1)",
        "(fn [* ] 1)",
        "(defn f)",
        "(defn [d])",
        "(defn \"f\" [] 1)",
    ]
)
def test_malformed_binders(source):
    with pytest.raises(ThetaSyntaxError):
        subst(source)


# -------------------------
# defclass
# -------------------------

def test_defclass_name_is_kept():
    assert (
        subst("(defclass x [y] (setv z x))", {"x": "X", "y": "Y", "z": "Z"})
        == "(defclass x [Y] (setv Z X))"
    )
    assert subst("(defclass)") == "(defclass)"


# -------------------------
# global / nonlocal
# -------------------------

@pytest.mark.parametrize(
    "source, expected",
    [
        ("(global x)", "(global x)"),
        ("(do (global x) (g x y))", "(do (global x) (g x Y))"),
        ("(do x (global x) x)", "(do X (global x) x)"),
        ("(do (nonlocal x y) x y)", "(do (nonlocal x y) x y)"),
        # stays in effect up to the enclosing binder
        ("(do (fn [] (global x) x) x)", "(do (fn [] (global x) x) X)"),
        ("(do (when c (global x)) x)", "(do (when c (global x)) x)"),
    ]
)
def test_global_declarations(source, expected):
    assert subst(source) == expected


# -------------------------
# match
# -------------------------

@pytest.mark.parametrize(
    "source, expected",
    [
        ("(match x [x y] (g x y) _ x)", "(match X [x y] (g x y) _ X)"),
        ("(match v [a #*x] (g a x y))", "(match v [a #*x] (g a x Y))"),
        ("(match v #(x _) x)", "(match v #(x _) x)"),
        ("(match v (| [x] [x y]) (g x y))", "(match v (| [x] [x y]) (g x y))"),
        ("(match v [a] :as x :if (g x a y) (h x a y))", "(match v [a] :as x :if (g x a Y) (h x a Y))"),
        ("(match v {x y} (g x y))", "(match v {X y} (g X y))"),
        ("(match v 1 x \"s\" y)", "(match v 1 X \"s\" Y)"),
        # captures are scoped to their own clause
        ("(match v x x _ x)", "(match v x x _ X)"),
    ]
)
def test_match(source, expected):
    assert subst(source) == expected


def test_match_value_patterns_are_substituted():
    table = {"Color": "C", "x": "X"}
    assert subst("(match v Color.x x)", table) == "(match v (. C x) X)"
    assert subst("(match v (. Color x) x)", table) == "(match v (. C x) X)"


def test_match_class_patterns():
    table = {"P": "Q", "x": "X", "y": "Y"}
    assert subst("(match v (P :a x y) (g x y P))", table) == "(match v (Q :a x y) (g x y Q))"


def test_match_mapping_rest_capture():
    pattern = Dict([Symbol("x"), Symbol("y"), Expression([Symbol("unpack-mapping"), Symbol("z")])])
    form = Expression([Symbol("match"), Symbol("v"), pattern, read("(g x y z)")])
    result = expand_symbols(form, table_expander({"x": "X", "y": "Y", "z": "Z"}))
    assert to_source(result) == "(match v {X y #**z} (g X y z))"


@pytest.mark.parametrize(
    "source",
    [
        "(match)",
        "(match v [a])",
        "(match v [a] :as)",
        "(match v [a] :as a.b a)",
        "(match v [a] :if)",
    ]
)
def test_malformed_match(source):
    with pytest.raises(ThetaSyntaxError):
        subst(source)
