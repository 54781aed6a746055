from dataclasses import dataclass

def _clamp(x, lo=0.0, hi=1.0):
    return min(hi, max(lo, x))

@dataclass(frozen=True)
class Rgb:
    """An RGB color with channels in [0, 1]."""

    r: float
    g: float
    b: float

    @staticmethod
    def from_bytes(r, g, b):
        return Rgb(r / 255.0, g / 255.0, b / 255.0)

    def to_bytes(self):
        return tuple(int(_clamp(c) * 255.0) for c in (self.r, self.g, self.b))

    def to_yuv(self):
        y = 0.299 * self.r + 0.587 * self.g + 0.114 * self.b
        return Yuv(y, 0.492 * (self.b - y), 0.877 * (self.r - y))

@dataclass(frozen=True)
class Yuv:
    """A YUV (BT.601) color. y is in [0, 1], u and v are roughly in [-0.5, 0.5]."""

    y: float
    u: float
    v: float

    def to_rgb(self):
        r = self.y + 1.140 * self.v
        g = self.y - 0.395 * self.u - 0.581 * self.v
        b = self.y + 2.032 * self.u
        return Rgb(_clamp(r), _clamp(g), _clamp(b))

    def channels(self):
        return (self.y, self.u, self.v)
