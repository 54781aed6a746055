from dataclasses import dataclass

from bench.util import Scene, obj, image

RED   = (230, 20, 20)
GREEN = (20, 200, 40)
BLUE  = (20, 40, 220)

@dataclass(frozen=True)
class Shapes:
    """Small synthetic scenes of labeled shapes."""

    def test_base_label(self):
        yield Scene('base_label', [
            image('a', obj((0, 0, 10, 10), 'circle', precise=['target'])),
            image('b', obj((0, 0, 10, 10), 'square')),
        ], desc='label every circle')

    def test_not_square(self):
        yield Scene('not_square', [
            image('a', obj((0, 0, 10, 10), 'circle', precise=['round']),
                       obj((20, 0, 10, 10), 'square')),
            image('b', obj((0, 0, 10, 10), 'oval', precise=['round']),
                       obj((20, 0, 10, 10), 'triangle', precise=['round'])),
        ], desc='label everything that is not a square')

    def test_has_neighbor(self):
        yield Scene('has_neighbor', [
            image('a', obj((0, 0, 10, 10), 'car', precise=['parked']),
                       obj((20, 0, 10, 10), 'meter')),
            image('b', obj((0, 0, 10, 10), 'car')),
        ], desc='label cars in images that contain a parking meter')

    def test_left_of(self):
        yield Scene('left_of', [
            image('a', obj((0, 0, 10, 10), 'circle', precise=['left']),
                       obj((30, 0, 10, 10), 'square')),
            image('b', obj((30, 0, 10, 10), 'circle'),
                       obj((0, 0, 10, 10), 'square')),
        ], desc='label circles left of a square', use_placement=True)

    def test_inside(self):
        yield Scene('inside', [
            image('a', obj((0, 0, 100, 100), 'table'),
                       obj((10, 10, 10, 10), 'cup', precise=['on_table'])),
            image('b', obj((0, 0, 100, 100), 'table'),
                       obj((200, 10, 10, 10), 'cup')),
        ], desc='label cups inside a table', use_containment=True)

    def test_red(self):
        yield Scene('red', [
            image('a', obj((0, 0, 10, 10), 'ball', precise=['red'], color=RED),
                       obj((20, 0, 10, 10), 'ball', color=BLUE)),
            image('b', obj((0, 0, 10, 10), 'ball', color=GREEN),
                       obj((20, 0, 10, 10), 'ball', precise=['red'], color=RED)),
        ], desc='label red balls', use_color=True)

    def test_group(self):
        yield Scene('group', [
            image('a', obj((0, 0, 10, 10), 'person', groups=['people']),
                       obj((20, 0, 10, 10), 'person', groups=['people']),
                       obj((40, 0, 10, 10), 'dog')),
            image('b', obj((0, 0, 10, 10), 'dog'),
                       obj((20, 0, 10, 10), 'person', groups=['people'])),
        ], desc='group all persons')
