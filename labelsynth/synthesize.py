from itertools import combinations as comb
from itertools import islice
from dataclasses import dataclass, field

from z3 import *

from labelsynth import grammar as g
from labelsynth import ir, solvers, util
from labelsynth.ir import Form

def base_library(examples):
    """The distinct base labels of all boxes in first-seen order."""
    return list(dict.fromkeys(ex.base(box) for ex in examples for box in ex.boxes()))

def _sorted(labels):
    return sorted(labels, key=lambda l: l.name)

def precise_library(examples):
    return list(dict.fromkeys(l for ex in examples for box in ex.boxes()
                                for l in _sorted(ex.precise(box))))

def group_library(examples):
    return list(dict.fromkeys(l for ex in examples for box in ex.boxes()
                                for l in _sorted(ex.groups(box))))

def has_precise(example, box, label):
    return label in example.precise(box)

def has_group(example, box, group):
    return group in example.groups(box)

@dataclass(frozen=True)
class SynthesisConfig:
    use_color: bool = False
    """Synthesize comparisons against the average color of a box."""

    use_placement: bool = False
    """Synthesize relative placement of boxes (left, right, above, below)."""

    use_containment: bool = False
    """Synthesize overlap (IoU) and containment thresholds between boxes."""

@dataclass(frozen=True, kw_only=True)
class Synthesizer(util.HasDebug, solvers.HasSolver):
    """Iterative deepening MaxSMT search for the cheapest labeling predicates."""

    config: SynthesisConfig = field(default_factory=SynthesisConfig)
    """Productions to use in the predicates."""

    max_candidates: int = 5
    """Maximum number of predicates returned per label."""

    init_clauses: int = 5
    """Number of clauses per level when a depth is first tried."""

    clause_step: int = 2
    """Number of clauses added to a depth each time it fails."""

    init_depths: int = 3
    """Number of depths (0 up to init_depths - 1) the search starts with."""

    start_depth: int = 1
    """Quantifier nesting depth of the first search point."""

    max_depth: int = 3
    """Deepest quantifier nesting the search may add. Must be at least
       init_depths - 1, the initial depths are always tried."""

    max_rounds: int | None = 12
    """Maximum number of (depth, clauses) points tried per label (None for no limit)."""

    def search_points(self):
        """Yields the (depth, number of clauses) points in search order.

        After a failed point, the point's depth gets more clauses and the
        search moves to the next depth. A new depth is only added after
        all existing depths were retried once with more clauses.
        """
        assert 0 <= self.start_depth < self.init_depths
        assert self.max_depth >= self.init_depths - 1
        clauses = [ self.init_clauses ] * self.init_depths
        depth   = self.start_depth
        grown   = True
        while True:
            yield depth, clauses[depth]
            clauses[depth] += self.clause_step
            depth += 1
            if depth == len(clauses):
                if not grown and len(clauses) <= self.max_depth:
                    clauses.append(self.init_clauses)
                    grown = True
                else:
                    depth = 0
                    grown = False

    def instantiate(self, form: Form, depth: int, n_clauses: int, library, fresh: ir.Fresh):
        """Creates the template of all candidate predicates over the outer variable x<depth>."""
        cfg = self.config
        placements = (ir.LeftIr, ir.RightIr, ir.BelowIr, ir.AboveIr)

        def level(k, bound):
            var      = g.ObjectVariable(f'x{k}')
            next_var = g.ObjectVariable(f'x{k - 1}')
            clauses  = []
            for _ in range(n_clauses):
                terms = []
                for label in library:
                    terms += [ ir.LabelIsIr(var, label, False, toggle=fresh.toggle()),
                               ir.LabelIsIr(var, label, True,  toggle=fresh.toggle()) ]
                if cfg.use_color:
                    y, u, v, t = (fresh.real() for _ in range(4))
                    terms += [ ir.ColorComparisonIr(var, y, u, v, t, toggle=fresh.toggle()) ]
                for a, b in comb(bound, 2):
                    terms += [ ir.EqualLabelIr(a, b, False, toggle=fresh.toggle()),
                               ir.EqualLabelIr(a, b, True,  toggle=fresh.toggle()) ]
                    if cfg.use_containment:
                        terms += [ ir.IouIr(a, b, fresh.real(), toggle=fresh.toggle()),
                                   ir.ContainmentIr(a, b, fresh.real(), toggle=fresh.toggle()),
                                   ir.ContainmentIr(b, a, fresh.real(), toggle=fresh.toggle()) ]
                    if cfg.use_placement:
                        terms += [ cls(a, b, toggle=fresh.toggle()) for cls in placements ]
                if k > 0:
                    # both quantifiers share the body of the next level
                    body = level(k - 1, bound + [ next_var ])
                    terms += [ ir.AnyIr(next_var, body, toggle=fresh.toggle()),
                               ir.AllIr(next_var, body, toggle=fresh.toggle()) ]
                terms = tuple(terms)
                clauses.append(ir.AndIr(terms) if form is Form.DNF else ir.OrIr(terms))
            clauses = tuple(clauses)
            return ir.OrIr(clauses) if form is Form.DNF else ir.AndIr(clauses)

        return level(depth, [ g.ObjectVariable(f'x{depth}') ])

    def _encode(self, solver, tree: ir.Ir, form: Form, outer, examples, is_applied):
        ctx = solver.ctx
        n_objects = 0
        for example in examples:
            for box in example.boxes():
                env = { outer: (box, example.base(box)) }
                phi = tree.apply(env, example).to_z3(solver, form)
                solver.add(phi == BoolVal(is_applied(example, box), ctx))
                n_objects += 1
        toggles = tree.toggles()
        for t, w in toggles:
            solver.add_soft(Not(t), w)
        self.debug('enc', f'{form.name}: {n_objects} objects, {len(toggles)} toggles')
        return toggles

    def _enumerate(self, solver, tree: ir.Ir, form: Form, toggles):
        ctx       = solver.ctx
        objective = tree.cost(ctx)
        found     = []
        seen      = set()
        first     = None
        stat      = { 'form': form.name, 'n_toggles': len(toggles), 'costs': [],
                      'duplicates': 0, 'synth_time': 0 }
        while len(found) < self.max_candidates:
            time, model = solver.solve()
            stat['synth_time'] += time
            self.debug('time', f'solver time: {time / 1e9:.3f}')
            if model is None:
                break
            cost = model.evaluate(objective, model_completion=True).as_long()
            if first is None:
                first = cost
            elif cost > first:
                break
            pred = tree.compile(model)
            if pred is None:
                pred = g.FalseBool() if form is Form.DNF else g.TrueBool()
            # exclude exactly this choice of productions
            solver.add(Or([ t != model.evaluate(t, model_completion=True) for t, _ in toggles ], ctx))
            # permuted clauses render alike
            if str(pred) in seen:
                stat['duplicates'] += 1
                continue
            seen.add(str(pred))
            self.debug('cand', f'cost {cost}: {pred}')
            found.append((cost, pred))
            stat['costs'].append(cost)
        return found, stat

    def synth_label(self, examples, target, applied, make_action):
        """Synthesizes predicates for one precise label or group.

        Attributes:
        examples: The labeled examples.
        target: The label or group to explain.
        applied: applied(example, box, target) tells if box carries target.
        make_action: Creates the action from target and the synthesized filter.

        Returns a list of at most max_candidates actions (empty if the
        search bound was exhausted) and a statistics dictionary.
        """
        # all solver state of this search lives in its own context
        ctx     = Context()
        fresh   = ir.Fresh(ctx)
        library = base_library(examples)
        stats   = []
        is_applied = lambda example, box: applied(example, box, target)
        with util.timer() as elapsed:
            for depth, n_clauses in islice(self.search_points(), self.max_rounds):
                outer = g.ObjectVariable(f'x{depth}')
                self.debug('synth', f'synthesizing {target} with {n_clauses} clauses at depth {depth}')
                for form in Form:
                    tree    = self.instantiate(form, depth, n_clauses, library, fresh)
                    solver  = self.solver.create(ctx)
                    toggles = self._encode(solver, tree, form, outer, examples, is_applied)
                    found, stat = self._enumerate(solver, tree, form, toggles)
                    stats.append(stat | { 'depth': depth, 'clauses': n_clauses })
                    if found:
                        actions = [ make_action(target, g.Filter(g.PredicateLambda(outer, pred), g.AllObjects()))
                                    for _, pred in found ]
                        return actions, {
                            'time': elapsed(),
                            'success': True,
                            'cost': found[0][0],
                            'prgs': [ str(a) for a in actions ],
                            'stats': stats,
                        }
            self.debug('synth', f'no predicate for {target} in {len(stats) // 2} search points')
            return [], { 'time': elapsed(), 'success': False, 'stats': stats }

    def synth_all(self, examples):
        """Synthesizes actions for every precise label and every group in examples.

        Returns one list of LabelApply candidates per precise label, one list
        of GroupApply candidates per group (both in library order) and the
        statistics of all searches.
        """
        label_applies, group_applies, stats = [], [], {}
        for label in precise_library(examples):
            applies, stats[f'label:{label.name}'] = \
                self.synth_label(examples, label, has_precise, g.LabelApply)
            label_applies.append(applies)
        for group in group_library(examples):
            applies, stats[f'group:{group.name}'] = \
                self.synth_label(examples, group, has_group, g.GroupApply)
            group_applies.append(applies)
        return label_applies, group_applies, stats
