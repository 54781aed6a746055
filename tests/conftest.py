import pytest

from z3 import Context

from labelsynth import grammar as g
from labelsynth.solvers import Z3Opt

from bench.util import obj, image

@pytest.fixture
def ctx():
    return Context()

@pytest.fixture
def solver(ctx):
    return Z3Opt().create(ctx)

@pytest.fixture
def circle_square():
    return [
        image('a', obj((0, 0, 10, 10), 'circle', precise=['target'])),
        image('b', obj((0, 0, 10, 10), 'square')),
    ]

@pytest.fixture
def scene():
    return image('scene',
                 obj((0, 0, 10, 10),   'circle'),
                 obj((20, 0, 10, 10),  'square'),
                 obj((40, 40, 10, 10), 'circle'))

@pytest.fixture
def x0():
    return g.ObjectVariable('x0')

@pytest.fixture
def x1():
    return g.ObjectVariable('x1')
