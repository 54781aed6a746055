from dataclasses import dataclass

@dataclass(frozen=True)
class BoundingBox:
    left: float
    top: float
    width: float
    height: float

    def __post_init__(self):
        assert self.width >= 0 and self.height >= 0, f'degenerate box {self}'

    @property
    def right(self):
        return self.left + self.width

    @property
    def bottom(self):
        return self.top + self.height

    @property
    def center_x(self):
        return self.left + self.width / 2.0

    @property
    def center_y(self):
        return self.top + self.height / 2.0

    @property
    def area(self):
        return self.width * self.height

    def intersection_area(self, other):
        w = min(self.right, other.right) - max(self.left, other.left)
        h = min(self.bottom, other.bottom) - max(self.top, other.top)
        return max(0.0, w) * max(0.0, h)

    def jaccard_index(self, other):
        """Intersection over union of both boxes, in [0, 1]."""
        inter = self.intersection_area(other)
        union = self.area + other.area - inter
        return inter / union if union > 0 else 0.0

    def containment_fraction(self, other):
        """Fraction of the area of other that lies inside this box, in [0, 1]."""
        if other.area == 0:
            return 0.0
        return self.intersection_area(other) / other.area
