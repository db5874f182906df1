from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import math


class ComponentKind(str, Enum):
    RESISTOR = "resistor"
    CAPACITOR = "capacitor"
    DIODE = "diode"
    TRANSISTOR = "transistor"
    WIRE = "wire"
    JUNCTION = "junction"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class BoundingBox:
    x: float       # left, image coordinates
    y: float       # top, image coordinates
    width: float
    height: float

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Bounding box with negative size: {self.width}x{self.height}")


@dataclass(frozen=True)
class DetectedComponent:
    """
    One circuit element found in a normalized image.
    Produced only by an external detector, nothing in this package creates them.
    """
    kind: ComponentKind
    bounding_box: BoundingBox
    confidence: float  # [0, 1]

    def __post_init__(self):
        if not (math.isfinite(self.confidence) and 0.0 <= self.confidence <= 1.0):
            raise ValueError(f"Confidence must be in [0, 1], got {self.confidence}")

    def to_dict(self) -> dict:
        box = self.bounding_box
        return {
            "kind": self.kind.value,
            "bounding_box": {"x": box.x, "y": box.y, "width": box.width, "height": box.height},
            "confidence": self.confidence,
        }
