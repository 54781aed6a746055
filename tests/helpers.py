from z3 import *

from labelsynth import grammar as g

def evaluate(ast, env, example):
    """Evaluates a synthesized predicate with env mapping variables to boxes."""
    match ast:
        case g.TrueBool():
            return True
        case g.FalseBool():
            return False
        case g.LabelIs(var, label):
            return example.base(env[var]) == label
        case g.EqualLabel(a, b):
            return example.base(env[a]) == example.base(env[b])
        case g.NotBool(inner):
            return not evaluate(inner, env, example)
        case g.OrBool(l, r):
            return evaluate(l, env, example) or evaluate(r, env, example)
        case g.AndBool(l, r):
            return evaluate(l, env, example) and evaluate(r, env, example)
        case g.Exists(var, body):
            return any(evaluate(body, env | { var: b }, example) for b in example.boxes())
        case g.Forall(var, body):
            return all(evaluate(body, env | { var: b }, example) for b in example.boxes())
        case g.Left(a, b):
            return env[a].center_x <= env[b].center_x
        case g.Right(a, b):
            return env[a].center_x >= env[b].center_x
        case g.Above(a, b):
            return env[a].center_y <= env[b].center_y
        case g.Below(a, b):
            return env[a].center_y >= env[b].center_y
        case g.IOU(a, b, t):
            return env[a].jaccard_index(env[b]) >= t
        case g.Containment(a, b, t):
            return env[a].containment_fraction(env[b]) >= t
        case g.ColorComparison(var, color, t):
            box_color = example.average_color(env[var])
            # thresholds are read back from exact rationals
            return all(abs(c - x) <= t + 1e-9 for c, x in zip(box_color.channels(), color.channels()))
    raise ValueError(f'cannot evaluate {ast}')

def selected(action, example):
    """The boxes of example that a Filter over AllObjects selects."""
    pred = action.objects.predicate
    return { box for box in example.boxes()
             if evaluate(pred.body, { pred.var: box }, example) }

def valid(ctx, *constraints):
    """Checks that the conjunction of constraints is a tautology."""
    s = Solver(ctx=ctx)
    s.add(Not(And(list(constraints), ctx)))
    return s.check() == unsat

def model_of(ctx, *constraints):
    s = Solver(ctx=ctx)
    s.add(*constraints)
    assert s.check() == sat
    return s.model()
