from typing import Optional
from dataclasses import dataclass
from contextlib import contextmanager

from labelsynth.color import Rgb
from labelsynth.example import Annotation, Example
from labelsynth.geometry import BoundingBox
from labelsynth.grammar import ObjectLiteral, GroupLiteral

@contextmanager
def timeout(duration: Optional[int]):
    import signal
    def timeout_handler(signum, frame):
        raise TimeoutError(f'timeout after {duration} seconds')
    if not duration is None:
        signal.signal(signal.SIGALRM, timeout_handler)
        signal.alarm(duration)
    try:
        yield
    finally:
        if not duration is None:
            signal.alarm(0)

@dataclass(frozen=True)
class Scene:
    name: str
    examples: list[Example]
    desc: Optional[str] = None
    use_color: bool = False
    use_placement: bool = False
    use_containment: bool = False

def obj(box, base, precise=(), groups=(), color=(0, 0, 0)):
    """Shorthand for one annotated box: (box, annotation)."""
    return BoundingBox(*box), Annotation(
        base=ObjectLiteral(base),
        precise=frozenset(ObjectLiteral(p) for p in precise),
        groups=frozenset(GroupLiteral(g) for g in groups),
        color=Rgb.from_bytes(*color).to_yuv(),
    )

def image(name, *objs):
    annotations = dict(objs)
    if len(annotations) != len(objs):
        raise ValueError(f'{name}: duplicate box')
    return Example(name, annotations)
