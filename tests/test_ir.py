import pytest

from z3 import *

from labelsynth import grammar as g
from labelsynth import ir
from labelsynth.ir import Form
from labelsynth.util import InvariantViolation, UnboundVariable

from bench.util import obj, image
from tests.helpers import valid, model_of

circle = g.ObjectLiteral('circle')
square = g.ObjectLiteral('square')

def env_of(example, var, i):
    box = example.boxes()[i]
    return { var: (box, example.base(box)) }

def test_fresh_names_are_unique(ctx):
    fresh = ir.Fresh(ctx)
    assert str(fresh.toggle()) == 'v0'
    assert str(fresh.real()) == 'r1'
    assert str(fresh.toggle()) == 'v2'
    assert fresh.n_vars == 3

def test_unbound_variable(ctx, scene, x0, x1):
    node = ir.EqualLabelIr(x0, x1, toggle=Bool('t', ctx))
    with pytest.raises(UnboundVariable) as e:
        node.apply(env_of(scene, x0, 0), scene)
    assert e.value.var == x1
    assert isinstance(e.value, InvariantViolation)

def test_lowering_requires_reification(ctx, solver, x0):
    node = ir.LabelIsIr(x0, circle, toggle=Bool('t', ctx))
    with pytest.raises(InvariantViolation):
        node.to_z3(solver, Form.DNF)
    quant = ir.AnyIr(x0, node, toggle=Bool('q', ctx))
    with pytest.raises(InvariantViolation):
        quant.to_z3(solver, Form.CNF)

def test_reified_nodes_do_not_compile(ctx, scene, x0):
    node = ir.LabelIsIr(x0, circle, toggle=Bool('t', ctx)).apply(env_of(scene, x0, 0), scene)
    m = model_of(ctx, node.toggle)
    with pytest.raises(InvariantViolation):
        node.compile(m)

def test_label_is_reification(ctx, scene, x0):
    t = Bool('t', ctx)
    pos = ir.LabelIsIr(x0, circle, toggle=t)
    neg = ir.LabelIsIr(x0, circle, True, toggle=t)
    assert [ pos.apply(env_of(scene, x0, i), scene).value for i in range(3) ] == [ True, False, True ]
    assert [ neg.apply(env_of(scene, x0, i), scene).value for i in range(3) ] == [ False, True, False ]
    assert pos.apply(env_of(scene, x0, 1), scene).toggle.eq(t)

def test_reification_is_idempotent(ctx, scene, x0, x1):
    env = env_of(scene, x0, 0) | env_of(scene, x1, 2)
    for node in (ir.EqualLabelIr(x0, x1, toggle=Bool('t', ctx)),
                 ir.IouIr(x0, x1, Real('r', ctx), toggle=Bool('t', ctx)),
                 ir.LeftIr(x0, x1, toggle=Bool('t', ctx)),
                 ir.ColorComparisonIr(x0, *(Real(n, ctx) for n in 'yuvr'), toggle=Bool('t', ctx))):
        once = node.apply(env, scene)
        assert once.apply(env, scene) is once
        assert once.apply({}, scene) is once

def test_existential_unrolls_to_disjunction(ctx, scene, x0, x1):
    q, t = Bool('q', ctx), Bool('t', ctx)
    body = ir.EqualLabelIr(x1, x0, toggle=t)
    env  = env_of(scene, x1, 0)
    res  = ir.AnyIr(x0, body, toggle=q).apply(env, scene)
    assert isinstance(res, ir.OrIr)
    assert res.toggle.eq(q)
    assert [ c.value for c in res.children ] == [ True, False, True ]
    assert all(c.toggle.eq(t) for c in res.children)

def test_universal_unrolls_to_conjunction(ctx, scene, x0, x1):
    body = ir.LeftIr(x1, x0, toggle=Bool('t', ctx))
    res  = ir.AllIr(x0, body, toggle=Bool('q', ctx)).apply(env_of(scene, x1, 0), scene)
    assert isinstance(res, ir.AndIr)
    assert [ c.value for c in res.children ] == [ True, True, True ]
    res  = ir.AllIr(x0, body, toggle=Bool('q', ctx)).apply(env_of(scene, x1, 2), scene)
    assert [ c.value for c in res.children ] == [ False, False, True ]

def test_leaf_lowering(ctx, solver):
    t = Bool('t', ctx)
    leaf = ir.BooleanIr(False, toggle=t)
    dnf = leaf.to_z3(solver, Form.DNF)
    cnf = leaf.to_z3(solver, Form.CNF)
    # disabled terms are neutral in their clause
    assert valid(ctx, Implies(Not(t), dnf), Implies(Not(t), Not(cnf)))
    assert valid(ctx, Implies(t, Not(dnf)), Implies(t, Not(cnf)))

def test_leaf_without_toggle(solver):
    with pytest.raises(InvariantViolation):
        ir.BooleanIr(True).to_z3(solver, Form.DNF)

def test_threshold_is_bounded(ctx, solver, scene, x0, x1):
    r = Real('r', ctx)
    env = env_of(scene, x0, 0) | env_of(scene, x1, 0)
    node = ir.ContainmentIr(x0, x1, r, toggle=Bool('t', ctx)).apply(env, scene)
    solver.add(node.to_z3(solver, Form.CNF))
    solver.add_soft(r > 2)
    _, m = solver.solve()
    assert m is not None
    assert m.evaluate(r).as_fraction() <= 1

def clause(form, children):
    return ir.AndIr(children) if form is Form.DNF else ir.OrIr(children)

def top(form, clauses):
    return ir.OrIr(clauses) if form is Form.DNF else ir.AndIr(clauses)

@pytest.mark.parametrize('form', list(Form))
def test_empty_clause_is_neutral(ctx, solver, form):
    t = Bool('t', ctx)
    c = clause(form, (ir.BooleanIr(True, toggle=t),))
    lowered = c.to_z3(solver, form)
    if form is Form.DNF:
        assert valid(ctx, Implies(Not(t), Not(lowered)))
    else:
        assert valid(ctx, Implies(Not(t), lowered))

@pytest.mark.parametrize('a,b', [ (True, True), (True, False), (False, False) ])
def test_duality(ctx, solver, a, b):
    """a && b as a single DNF clause agrees with a && b as two CNF clauses."""
    ta, tb = Bool('ta', ctx), Bool('tb', ctx)
    dnf = top(Form.DNF, (clause(Form.DNF, (ir.BooleanIr(a, toggle=ta), ir.BooleanIr(b, toggle=tb))),))
    cnf = top(Form.CNF, (clause(Form.CNF, (ir.BooleanIr(a, toggle=ta),)),
                         clause(Form.CNF, (ir.BooleanIr(b, toggle=tb),))))
    on = And(ta, tb)
    lowered_dnf = dnf.to_z3(solver, Form.DNF)
    lowered_cnf = cnf.to_z3(solver, Form.CNF)
    expected = BoolVal(a and b, ctx)
    assert valid(ctx, Implies(on, lowered_dnf == expected), Implies(on, lowered_cnf == expected))

def template(ctx, x0, x1):
    fresh = ir.Fresh(ctx)
    body = ir.OrIr((ir.AndIr((ir.EqualLabelIr(x1, x0, toggle=fresh.toggle()),
                              ir.EqualLabelIr(x1, x0, True, toggle=fresh.toggle()))),))
    terms = (ir.LabelIsIr(x1, circle, toggle=fresh.toggle()),
             ir.LabelIsIr(x1, square, True, toggle=fresh.toggle()),
             ir.ColorComparisonIr(x1, *(fresh.real() for _ in range(4)), toggle=fresh.toggle()),
             ir.AnyIr(x0, body, toggle=fresh.toggle()),
             ir.AllIr(x0, body, toggle=fresh.toggle()))
    return ir.OrIr((ir.AndIr(terms),)), terms, body

def test_toggles_and_weights(ctx, x0, x1):
    tree, terms, body = template(ctx, x0, x1)
    weights = sorted(w for _, w in tree.toggles())
    # the shared body is counted once
    assert weights == [ 1, 1, 1, 2, 2, 3, 4 ]
    assert len(tree.collect_toggles([])) == 9

def test_cost_accounting(ctx, x0, x1):
    tree, terms, body = template(ctx, x0, x1)
    label, neg_label, color, any_, all_ = (t.toggle for t in terms)
    equal, neg_equal = (c.toggle for c in body.children[0].children)
    cost = tree.cost(ctx)
    cases = [ ([], 0), ([ label ], 1), ([ neg_label, color ], 6),
              ([ any_, equal, neg_equal ], 6), ([ label, neg_label, color, any_, all_, equal, neg_equal ], 14) ]
    for on, expected in cases:
        toggles = [ t for t, _ in tree.toggles() ]
        m = model_of(ctx, *(t if any(t.eq(o) for o in on) else Not(t) for t in toggles))
        assert m.evaluate(cost, model_completion=True).as_long() == expected

def test_all_off_elides(ctx, x0, x1):
    tree, terms, body = template(ctx, x0, x1)
    m = model_of(ctx, *(Not(t) for t, _ in tree.toggles()))
    assert tree.compile(m) is None
    assert body.compile(m) is None
    assert all(t.compile(m) is None for t in terms)

def test_compile_enabled(ctx, x0, x1):
    tree, terms, body = template(ctx, x0, x1)
    label, neg_label, color, any_, all_ = (t.toggle for t in terms)
    equal, neg_equal = (c.toggle for c in body.children[0].children)
    m = model_of(ctx, label, Not(neg_label), Not(color), any_, Not(all_), equal, Not(neg_equal))
    pred = tree.compile(m)
    assert str(pred) == '(LabelIs(x1, "circle") && exists x0 . (EqualLabel(x1, x0)))'

def test_compile_quantifier_with_empty_body(ctx, x0, x1):
    tree, terms, body = template(ctx, x0, x1)
    all_ = terms[4].toggle
    m = model_of(ctx, *(t == t.eq(all_) for t, _ in tree.toggles()))
    assert str(tree.compile(m)) == 'forall x0 . (false)'
    cnf_body = ir.AndIr((ir.OrIr((ir.LabelIsIr(x0, circle, toggle=Bool('t', ctx)),)),))
    q = ir.AnyIr(x0, cnf_body, toggle=Bool('q', ctx))
    m = model_of(ctx, Bool('q', ctx), Not(Bool('t', ctx)))
    assert str(q.compile(m)) == 'exists x0 . (true)'

def test_compile_color(ctx, x0):
    y, u, v, r = (Real(n, ctx) for n in 'yuvr')
    t = Bool('t', ctx)
    node = ir.ColorComparisonIr(x0, y, u, v, r, toggle=t)
    m = model_of(ctx, t, y == 0.5, u == 0, v == 0, r == RealVal('1/4', ctx))
    pred = node.compile(m)
    assert isinstance(pred, g.ColorComparison)
    assert (pred.color.y, pred.color.u, pred.color.v, pred.threshold) == (0.5, 0.0, 0.0, 0.25)

def test_color_reification(ctx, solver, x0):
    ex = image('red', obj((0, 0, 1, 1), 'ball', color=(255, 0, 0)),
                      obj((2, 0, 1, 1), 'ball', color=(0, 0, 255)))
    y, u, v, r = (Real(n, ctx) for n in 'yuvr')
    t = Bool('t', ctx)
    node = ir.ColorComparisonIr(x0, y, u, v, r, toggle=t)
    red, blue = (node.apply(env_of(ex, x0, i), ex) for i in range(2))
    assert isinstance(red, ir.AppliedColorIr)
    solver.add(red.to_z3(solver, Form.CNF), Not(blue.to_z3(solver, Form.CNF)))
    _, m = solver.solve()
    assert m is not None
    assert m.evaluate(r).as_fraction() >= ir.MIN_COLOR_THRESHOLD
