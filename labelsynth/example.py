import json

from dataclasses import dataclass, field
from pathlib import Path

from labelsynth.color import Rgb, Yuv
from labelsynth.geometry import BoundingBox
from labelsynth.grammar import ObjectLiteral, GroupLiteral

@dataclass(frozen=True)
class Annotation:
    base: ObjectLiteral
    precise: frozenset[ObjectLiteral] = frozenset()
    groups: frozenset[GroupLiteral] = frozenset()
    color: Yuv = Yuv(0.0, 0.0, 0.0)

@dataclass(frozen=True)
class Example:
    """One labeled image.

    Attributes:
    name: Name of the image (only used for diagnostics).
    annotations: Maps each bounding box in the image to its labels
        and its average color. Boxes are unique within an image.
    """

    name: str
    annotations: dict[BoundingBox, Annotation] = field(compare=False)

    def boxes(self):
        return list(self.annotations)

    def base(self, box):
        return self.annotations[box].base

    def precise(self, box):
        return self.annotations[box].precise

    def groups(self, box):
        return self.annotations[box].groups

    def average_color(self, box):
        return self.annotations[box].color

    @staticmethod
    def from_json(d, default_name=''):
        annotations = {}
        name = d.get('name', default_name)
        for obj in d['objects']:
            left, top, width, height = obj['box']
            if width < 0 or height < 0:
                raise ValueError(f'{name}: box {obj["box"]} has negative extent')
            box = BoundingBox(left, top, width, height)
            if box in annotations:
                raise ValueError(f'{name}: duplicate box {obj["box"]}')
            r, g, b = obj.get('color', [0, 0, 0])
            annotations[box] = Annotation(
                base=ObjectLiteral(obj['base']),
                precise=frozenset(ObjectLiteral(l) for l in obj.get('precise', [])),
                groups=frozenset(GroupLiteral(g) for g in obj.get('groups', [])),
                color=Rgb.from_bytes(r, g, b).to_yuv(),
            )
        return Example(name, annotations)

def load_examples(path: Path):
    with open(path) as f:
        data = json.load(f)
    return [ Example.from_json(d, default_name=f'example{i}')
             for i, d in enumerate(data['examples']) ]
