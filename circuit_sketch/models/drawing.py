from __future__ import annotations
from dataclasses import dataclass, field
import math
from typing import List, Tuple

Point = Tuple[float, float]

DEFAULT_PEN_WIDTH = 10.0
DEFAULT_PEN_COLOR: Tuple[int, int, int, int] = (0, 0, 255, 255)  # opaque blue pen


@dataclass
class Stroke:
    """One continuous pen stroke, points in canvas coordinates."""
    points: List[Point]
    width: float = DEFAULT_PEN_WIDTH
    color: Tuple[int, int, int, int] = DEFAULT_PEN_COLOR  # RGBA

    def __post_init__(self):
        if not math.isfinite(self.width) or self.width <= 0:
            raise ValueError(f"Pen width must be positive, got {self.width}")
        if len(self.color) != 4:
            raise ValueError(f"Stroke color must be RGBA, got {self.color}")
        self.points = [(float(x), float(y)) for x, y in self.points]
        if not all(math.isfinite(x) and math.isfinite(y) for x, y in self.points):
            raise ValueError("Stroke points must be finite")


@dataclass
class Drawing:
    """
    Ordered list of strokes, the vector form of a sketch.
    Later strokes are painted over earlier ones.
    """
    strokes: List[Stroke] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(s.points for s in self.strokes)

    @property
    def bounds(self) -> Tuple[float, float, float, float] | None:
        """
        (left, top, right, bottom) covering every stroke including its pen width,
        None for a drawing without points.
        """
        boxes = []
        for stroke in self.strokes:
            if not stroke.points:
                continue
            xs = [p[0] for p in stroke.points]
            ys = [p[1] for p in stroke.points]
            half = stroke.width / 2
            boxes.append((min(xs) - half, min(ys) - half, max(xs) + half, max(ys) + half))

        if not boxes:
            return None
        return (
            min(b[0] for b in boxes),
            min(b[1] for b in boxes),
            max(b[2] for b in boxes),
            max(b[3] for b in boxes),
        )
