import time
import re

from contextlib import contextmanager
from dataclasses import dataclass, field

from z3 import is_true

def model_bool(model, var):
    return is_true(model.evaluate(var, model_completion=True))

@contextmanager
def timer():
    start = time.perf_counter_ns()
    yield lambda: time.perf_counter_ns() - start

@dataclass(frozen=True)
class Debug:
    what: str = field(kw_only=True, default='')
    """Regular expression of debug tags to print."""

    def __call__(self, tag, *args):
        if self.what and re.match(self.what, str(tag)):
            print(*args)

@dataclass(frozen=True)
class HasDebug:
    debug: Debug = field(kw_only=True, default_factory=Debug)
    """Debug output."""

class InvariantViolation(Exception):
    """Raised when a tree is substituted, lowered or compiled out of order.

    Its presence always indicates a bug in how the search built the tree,
    never bad input data. It is not caught anywhere in this package.
    """

class UnboundVariable(InvariantViolation):
    def __init__(self, var):
        super().__init__(f'variable {var} is not bound in the environment')
        self.var = var
