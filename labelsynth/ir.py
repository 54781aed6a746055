"""Solver-instrumented mirror of the predicate grammar.

Every optional production carries a boolean toggle that tells whether the
production is part of the synthesized predicate. A template tree refers to
object variables. Before it can be lowered to z3 it has to be reified
against one concrete example with `apply`: variables are replaced by the
bound boxes and quantifiers are unrolled over the boxes of the example.
The toggles (and the real valued unknowns of numeric productions) are
shared between the template and all its reifications, so one model of the
lowered constraints can be compiled back on the template.
"""

import enum

from dataclasses import dataclass, field
from fractions import Fraction

from z3 import *

from labelsynth import grammar as g
from labelsynth.color import Yuv
from labelsynth.util import InvariantViolation, UnboundVariable, model_bool

class Form(enum.Enum):
    DNF = enum.auto()
    """Disjunction of conjunctive clauses."""
    CNF = enum.auto()
    """Conjunction of disjunctive clauses."""

def _real(value, ctx):
    # str(float) may use an exponent that z3 does not parse
    return RealVal(Fraction(value), ctx)

def _real_value(model, var):
    val = model.evaluate(var, model_completion=True)
    if is_algebraic_value(val):
        val = val.approx(20)
    return float(val.as_fraction())

def _lookup(env, var):
    try:
        return env[var]
    except KeyError:
        raise UnboundVariable(var) from None

class Fresh:
    """Names solver variables uniquely within one synthesis session."""

    def __init__(self, ctx):
        self.ctx    = ctx
        self.n_vars = 0

    def _name(self, prefix):
        name = f'{prefix}{self.n_vars}'
        self.n_vars += 1
        return name

    def toggle(self):
        return Bool(self._name('v'), self.ctx)

    def real(self):
        return Real(self._name('r'), self.ctx)

@dataclass(frozen=True, eq=False)
class Ir:
    toggle: BoolRef | None = field(kw_only=True, default=None)
    """Whether this production is active. None only for the connectives
       that give a candidate its shape (outer node, clauses, level roots)."""

    weight = 1

    def apply(self, env, example) -> 'Ir':
        """Substitute the variables bound in env and unroll quantifiers
           over the boxes of example."""
        raise NotImplementedError()

    def to_z3(self, solver, form: Form) -> BoolRef:
        raise InvariantViolation(
            f'{type(self).__name__} has to be reified before it can be lowered')

    def compile(self, model) -> g.BooleanAst | None:
        raise NotImplementedError()

    def collect_toggles(self, res):
        if self.toggle is not None:
            res.append((self.toggle, self.weight))
        return res

    def toggles(self):
        # the body of a level is shared by its existential and universal
        uniq = {}
        for t, w in self.collect_toggles([]):
            uniq.setdefault(t.get_id(), (t, w))
        return list(uniq.values())

    def cost(self, ctx):
        terms = [ If(t, IntVal(w, ctx), IntVal(0, ctx)) for t, w in self.toggles() ]
        return Sum(terms) if terms else IntVal(0, ctx)

    def is_enabled(self, model):
        return self.toggle is None or model_bool(model, self.toggle)

    def _guard(self, value, form):
        if self.toggle is None:
            raise InvariantViolation(f'{type(self).__name__} leaf without toggle')
        if form is Form.DNF:
            return Implies(self.toggle, value)
        return And(self.toggle, value)

@dataclass(frozen=True, eq=False)
class _Connective(Ir):
    children: tuple[Ir, ...]

    def _lower_children(self, solver, form):
        return [ c.to_z3(solver, form) for c in self.children ]

    def _child_toggles(self):
        toggles = [ c.toggle for c in self.children ]
        if any(t is None for t in toggles):
            raise InvariantViolation(f'clause with untoggled children: {self}')
        return toggles

    def collect_toggles(self, res):
        super().collect_toggles(res)
        for c in self.children:
            c.collect_toggles(res)
        return res

    def compile(self, model):
        if not self.is_enabled(model):
            return None
        items = [ p for c in self.children if (p := c.compile(model)) is not None ]
        return self.combine(items) if items else None

class OrIr(_Connective):
    combine = staticmethod(g.or_all)

    def apply(self, env, example):
        return OrIr(tuple(c.apply(env, example) for c in self.children), toggle=self.toggle)

    def to_z3(self, solver, form):
        ctx   = solver.ctx
        inner = Or(self._lower_children(solver, form), ctx)
        match form, self.toggle:
            case Form.DNF, None:
                # outermost disjunction of clauses
                return inner
            case Form.DNF, t:
                # existential unrolled inside a clause
                return Implies(t, inner)
            case Form.CNF, None:
                # a clause holds trivially if none of its terms is enabled
                return Or(Not(Or(self._child_toggles(), ctx)), inner)
            case Form.CNF, t:
                return And(t, inner)

class AndIr(_Connective):
    combine = staticmethod(g.and_all)

    def apply(self, env, example):
        return AndIr(tuple(c.apply(env, example) for c in self.children), toggle=self.toggle)

    def to_z3(self, solver, form):
        ctx   = solver.ctx
        inner = And(self._lower_children(solver, form), ctx)
        match form, self.toggle:
            case Form.DNF, None:
                # a clause needs at least one enabled term
                return And(Or(self._child_toggles(), ctx), inner)
            case Form.DNF, t:
                return Implies(t, inner)
            case Form.CNF, None:
                # outermost conjunction of clauses
                return inner
            case Form.CNF, t:
                # universal unrolled inside a clause
                return And(t, inner)

@dataclass(frozen=True, eq=False)
class _Quantifier(Ir):
    var: g.ObjectVariable
    body: Ir

    def _unroll(self, env, example):
        return tuple(self.body.apply(env | { self.var: (box, example.base(box)) }, example)
                     for box in example.boxes())

    def collect_toggles(self, res):
        super().collect_toggles(res)
        return self.body.collect_toggles(res)

    def _compile_body(self, model):
        body = self.body.compile(model)
        if body is None:
            body = g.FalseBool() if isinstance(self.body, OrIr) else g.TrueBool()
        return body

class AnyIr(_Quantifier):
    def apply(self, env, example):
        return OrIr(self._unroll(env, example), toggle=self.toggle)

    def compile(self, model):
        return g.Exists(self.var, self._compile_body(model)) if self.is_enabled(model) else None

class AllIr(_Quantifier):
    def apply(self, env, example):
        return AndIr(self._unroll(env, example), toggle=self.toggle)

    def compile(self, model):
        return g.Forall(self.var, self._compile_body(model)) if self.is_enabled(model) else None

@dataclass(frozen=True, eq=False)
class BooleanIr(Ir):
    """A production whose truth is known for the bound boxes."""

    value: bool

    def apply(self, env, example):
        return self

    def to_z3(self, solver, form):
        return self._guard(BoolVal(self.value, solver.ctx), form)

    def compile(self, model):
        raise InvariantViolation('a reified boolean has no grammar counterpart')

@dataclass(frozen=True, eq=False)
class LabelIsIr(Ir):
    var: g.ObjectVariable
    label: g.ObjectLiteral
    negated: bool = False

    COST = 1
    NEGATED_COST = 2

    @property
    def weight(self):
        return self.NEGATED_COST if self.negated else self.COST

    def apply(self, env, example):
        _, base = _lookup(env, self.var)
        return BooleanIr((base == self.label) != self.negated, toggle=self.toggle)

    def compile(self, model):
        if not self.is_enabled(model):
            return None
        res = g.LabelIs(self.var, self.label)
        return g.NotBool(res) if self.negated else res

@dataclass(frozen=True, eq=False)
class EqualLabelIr(Ir):
    a: g.ObjectVariable
    b: g.ObjectVariable
    negated: bool = False

    COST = 2
    NEGATED_COST = 3

    @property
    def weight(self):
        return self.NEGATED_COST if self.negated else self.COST

    def apply(self, env, example):
        _, base_a = _lookup(env, self.a)
        _, base_b = _lookup(env, self.b)
        return BooleanIr((base_a == base_b) != self.negated, toggle=self.toggle)

    def compile(self, model):
        if not self.is_enabled(model):
            return None
        res = g.EqualLabel(self.a, self.b)
        return g.NotBool(res) if self.negated else res

@dataclass(frozen=True, eq=False)
class GeqIr(Ir):
    """A ratio of the bound boxes compared against a threshold to be solved for."""

    value: float
    threshold: ArithRef

    def apply(self, env, example):
        return self

    def to_z3(self, solver, form):
        ctx = self.threshold.ctx
        solver.add(self.threshold >= 0, self.threshold <= 1)
        return self._guard(_real(self.value, ctx) >= self.threshold, form)

    def compile(self, model):
        raise InvariantViolation('a reified comparison has no grammar counterpart')

@dataclass(frozen=True, eq=False)
class IouIr(Ir):
    a: g.ObjectVariable
    b: g.ObjectVariable
    threshold: ArithRef

    def apply(self, env, example):
        box_a, _ = _lookup(env, self.a)
        box_b, _ = _lookup(env, self.b)
        return GeqIr(box_a.jaccard_index(box_b), self.threshold, toggle=self.toggle)

    def compile(self, model):
        if not self.is_enabled(model):
            return None
        return g.IOU(self.a, self.b, _real_value(model, self.threshold))

@dataclass(frozen=True, eq=False)
class ContainmentIr(Ir):
    container: g.ObjectVariable
    contained: g.ObjectVariable
    threshold: ArithRef

    def apply(self, env, example):
        box_a, _ = _lookup(env, self.container)
        box_b, _ = _lookup(env, self.contained)
        return GeqIr(box_a.containment_fraction(box_b), self.threshold, toggle=self.toggle)

    def compile(self, model):
        if not self.is_enabled(model):
            return None
        return g.Containment(self.container, self.contained, _real_value(model, self.threshold))

@dataclass(frozen=True, eq=False)
class _PlacementIr(Ir):
    a: g.ObjectVariable
    b: g.ObjectVariable

    def holds(self, box_a, box_b):
        raise NotImplementedError()

    def apply(self, env, example):
        box_a, _ = _lookup(env, self.a)
        box_b, _ = _lookup(env, self.b)
        return BooleanIr(self.holds(box_a, box_b), toggle=self.toggle)

    def compile(self, model):
        return self.node(self.a, self.b) if self.is_enabled(model) else None

class LeftIr(_PlacementIr):
    node = g.Left

    def holds(self, box_a, box_b):
        return box_a.center_x <= box_b.center_x

class RightIr(_PlacementIr):
    node = g.Right

    def holds(self, box_a, box_b):
        return box_a.center_x >= box_b.center_x

class AboveIr(_PlacementIr):
    node = g.Above

    def holds(self, box_a, box_b):
        return box_a.center_y <= box_b.center_y

class BelowIr(_PlacementIr):
    node = g.Below

    def holds(self, box_a, box_b):
        return box_a.center_y >= box_b.center_y

COLOR_COST = 4
MIN_COLOR_THRESHOLD = 0.1

@dataclass(frozen=True, eq=False)
class AppliedColorIr(Ir):
    """The average color of a bound box compared against a color to be solved for."""

    color: Yuv
    y: ArithRef
    u: ArithRef
    v: ArithRef
    threshold: ArithRef

    weight = COLOR_COST

    def apply(self, env, example):
        return self

    def to_z3(self, solver, form):
        ctx = self.threshold.ctx
        t   = self.threshold
        solver.add(self.y >= 0, self.y <= 1,
                   self.u >= -0.5, self.u <= 0.5,
                   self.v >= -0.5, self.v <= 0.5,
                   t >= _real(MIN_COLOR_THRESHOLD, ctx))
        diffs  = [ _real(c, ctx) - x for c, x in zip(self.color.channels(), (self.y, self.u, self.v)) ]
        passed = And([ And(-t <= d, d <= t) for d in diffs ], ctx)
        return self._guard(passed, form)

    def compile(self, model):
        raise InvariantViolation('a reified color comparison has no grammar counterpart')

@dataclass(frozen=True, eq=False)
class ColorComparisonIr(Ir):
    var: g.ObjectVariable
    y: ArithRef
    u: ArithRef
    v: ArithRef
    threshold: ArithRef

    weight = COLOR_COST

    def apply(self, env, example):
        box, _ = _lookup(env, self.var)
        return AppliedColorIr(example.average_color(box), self.y, self.u, self.v,
                              self.threshold, toggle=self.toggle)

    def compile(self, model):
        if not self.is_enabled(model):
            return None
        y, u, v, t = (_real_value(model, x) for x in (self.y, self.u, self.v, self.threshold))
        return g.ColorComparison(self.var, Yuv(y, u, v), t)
