import types

from dataclasses import dataclass, field

from z3 import *

from labelsynth import util

@dataclass(frozen=True)
class Z3Opt:
    """The z3 MaxSMT engine."""

    timeout: int | None = None
    """Timeout in seconds for a single optimization call (None for no timeout)."""

    verbose: int = 0
    """Set Z3 verbosity level."""

    def __post_init__(self):
        if self.verbose > 0:
            set_option("verbose", self.verbose)

    def _solve(solver):
        with util.timer() as elapsed:
            res = solver.check()
            time = elapsed()
        model = solver.model() if res == sat else None
        return time, model

    def create(self, ctx):
        set_option("sat.random_seed", 0)
        set_option("smt.random_seed", 0)
        s = Optimize(ctx=ctx)
        if self.timeout:
            s.set("timeout", self.timeout * 1000)
        s.solve = types.MethodType(Z3Opt._solve, s)
        return s

@dataclass(frozen=True)
class HasSolver:
    solver: Z3Opt = field(kw_only=True, default_factory=Z3Opt)
    """Solver to use for synthesis."""
