"""The predicate language produced by the synthesizer.

Literals and variables compare by value. All other nodes are immutable
and compare by identity. The synthesizer never evaluates these trees,
it only renders them for whoever executes the resulting actions.
"""

from dataclasses import dataclass
from functools import reduce

from labelsynth.color import Yuv

@dataclass(frozen=True)
class ObjectLiteral:
    name: str

    def __str__(self):
        return f'"{self.name}"'

@dataclass(frozen=True)
class GroupLiteral:
    name: str

    def __str__(self):
        return f'"{self.name}"'

@dataclass(frozen=True)
class ObjectVariable:
    name: str

    def __str__(self):
        return self.name

@dataclass(frozen=True, eq=False)
class BooleanAst:
    pass

@dataclass(frozen=True, eq=False)
class TrueBool(BooleanAst):
    def __str__(self):
        return 'true'

@dataclass(frozen=True, eq=False)
class FalseBool(BooleanAst):
    def __str__(self):
        return 'false'

@dataclass(frozen=True, eq=False)
class LabelIs(BooleanAst):
    var: ObjectVariable
    label: ObjectLiteral

    def __str__(self):
        return f'LabelIs({self.var}, {self.label})'

@dataclass(frozen=True, eq=False)
class EqualLabel(BooleanAst):
    a: ObjectVariable
    b: ObjectVariable

    def __str__(self):
        return f'EqualLabel({self.a}, {self.b})'

@dataclass(frozen=True, eq=False)
class NotBool(BooleanAst):
    inner: BooleanAst

    def __str__(self):
        return f'!{self.inner}'

@dataclass(frozen=True, eq=False)
class OrBool(BooleanAst):
    left: BooleanAst
    right: BooleanAst

    def __str__(self):
        return f'({self.left} || {self.right})'

@dataclass(frozen=True, eq=False)
class AndBool(BooleanAst):
    left: BooleanAst
    right: BooleanAst

    def __str__(self):
        return f'({self.left} && {self.right})'

def or_all(items):
    return reduce(OrBool, items)

def and_all(items):
    return reduce(AndBool, items)

@dataclass(frozen=True, eq=False)
class Exists(BooleanAst):
    var: ObjectVariable
    body: BooleanAst

    def __str__(self):
        return f'exists {self.var} . ({self.body})'

@dataclass(frozen=True, eq=False)
class Forall(BooleanAst):
    var: ObjectVariable
    body: BooleanAst

    def __str__(self):
        return f'forall {self.var} . ({self.body})'

@dataclass(frozen=True, eq=False)
class _Placement(BooleanAst):
    a: ObjectVariable
    b: ObjectVariable

    def __str__(self):
        return f'{type(self).__name__}({self.a}, {self.b})'

class Left(_Placement):
    pass

class Right(_Placement):
    pass

class Above(_Placement):
    pass

class Below(_Placement):
    pass

@dataclass(frozen=True, eq=False)
class IOU(BooleanAst):
    a: ObjectVariable
    b: ObjectVariable
    threshold: float

    def __str__(self):
        return f'IOU({self.a}, {self.b}) >= {self.threshold}'

@dataclass(frozen=True, eq=False)
class Containment(BooleanAst):
    container: ObjectVariable
    contained: ObjectVariable
    threshold: float

    def __str__(self):
        return f'Containment({self.container}, {self.contained}) >= {self.threshold}'

@dataclass(frozen=True, eq=False)
class ColorComparison(BooleanAst):
    var: ObjectVariable
    color: Yuv
    threshold: float

    def __str__(self):
        r, g, b = self.color.to_rgb().to_bytes()
        return f'ColorComparison({self.var}, ({r}, {g}, {b}), {self.threshold})'

@dataclass(frozen=True, eq=False)
class PredicateLambda:
    var: ObjectVariable
    body: BooleanAst

    def __str__(self):
        return f'fun {self.var} -> {self.body}'

@dataclass(frozen=True, eq=False)
class ObjectList:
    pass

@dataclass(frozen=True, eq=False)
class AllObjects(ObjectList):
    def __str__(self):
        return 'AllObjects()'

@dataclass(frozen=True, eq=False)
class Filter(ObjectList):
    predicate: PredicateLambda
    objects: ObjectList

    def __str__(self):
        return f'Filter({self.predicate}, {self.objects})'

@dataclass(frozen=True, eq=False)
class LabelApply:
    label: ObjectLiteral
    objects: ObjectList

    def __str__(self):
        return f'LabelApply({self.label}, {self.objects})'

@dataclass(frozen=True, eq=False)
class GroupApply:
    group: GroupLiteral
    objects: ObjectList

    def __str__(self):
        return f'GroupApply({self.group}, {self.objects})'

@dataclass(frozen=True, eq=False)
class Program:
    applies: tuple[LabelApply | GroupApply, ...]

    def __str__(self):
        return f'Program({", ".join(str(a) for a in self.applies)})'
