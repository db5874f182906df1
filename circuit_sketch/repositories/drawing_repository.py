from __future__ import annotations
from pathlib import Path
from typing import Union
import json
import math
import os

import cv2
import numpy as np
from dotenv import load_dotenv

from ..models.drawing import Drawing, Stroke, DEFAULT_PEN_COLOR
from ..models.raster_image import RasterImage

# Load environment variables
load_dotenv()

CANVAS_BACKGROUND = (0, 0, 0, 0)  # transparent, like a PencilKit drawing image
_SHIFT = 4                        # sub-pixel bits for cv2 drawing calls


class DrawingRepository:
    """
    JSON persistence and rasterization for Drawing entities.
    """

    def __init__(self, default_pen_width: float | None = None, max_canvas_side: int | None = None):
        self.default_pen_width = (
            default_pen_width
            if default_pen_width is not None
            else float(os.getenv("DEFAULT_PEN_WIDTH", "10"))
        )
        self.max_canvas_side = (
            max_canvas_side
            if max_canvas_side is not None
            else int(os.getenv("MAX_CANVAS_SIDE", "4096"))
        )

    # ─── JSON ─────────────────────────────────────────────────────────
    def from_dict(self, data: dict) -> Drawing:
        if not isinstance(data, dict) or not isinstance(data.get("strokes"), list):
            raise ValueError("Drawing JSON needs a 'strokes' list")

        strokes = []
        for i, raw in enumerate(data["strokes"]):
            try:
                points = [(float(p[0]), float(p[1])) for p in raw["points"]]
                strokes.append(Stroke(
                    points=points,
                    width=float(raw.get("width", self.default_pen_width)),
                    color=tuple(int(c) for c in raw.get("color", DEFAULT_PEN_COLOR)),
                ))
            except (KeyError, IndexError, TypeError, OverflowError) as err:
                raise ValueError(f"Malformed stroke #{i}: {err}") from err
        return Drawing(strokes=strokes)

    @staticmethod
    def to_dict(drawing: Drawing) -> dict:
        return {
            "strokes": [
                {"points": [list(p) for p in s.points], "width": s.width, "color": list(s.color)}
                for s in drawing.strokes
            ]
        }

    def load(self, path: Union[str, Path]) -> Drawing:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Drawing not found: {path}")
        with path.open("r", encoding="utf-8") as fh:
            return self.from_dict(json.load(fh))

    def save(self, drawing: Drawing, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            json.dump(self.to_dict(drawing), fh)
        return path

    # ─── Rasterization ────────────────────────────────────────────────
    def rasterize(self, drawing: Drawing, scale: float = 1.0) -> RasterImage:
        """
        Render the strokes over the drawing's own bounds onto a transparent canvas.

        Args:
            drawing: Drawing to render
            scale: pixels per canvas unit

        Returns:
            RasterImage: RGBA snapshot, origin at the top-left of the bounds

        Raises:
            ValueError: empty drawing, bad scale, or a canvas side above max_canvas_side
        """
        if not math.isfinite(scale) or scale <= 0:
            raise ValueError(f"Scale must be positive, got {scale}")
        bounds = drawing.bounds
        if bounds is None:
            raise ValueError("Cannot rasterize an empty drawing")

        left, top, right, bottom = bounds
        span_x, span_y = (right - left) * scale, (bottom - top) * scale
        if max(span_x, span_y) > self.max_canvas_side:
            raise ValueError(
                f"Canvas {span_x:.0f}x{span_y:.0f} exceeds the {self.max_canvas_side}px side limit"
            )
        width = max(1, math.ceil(span_x))
        height = max(1, math.ceil(span_y))

        canvas = np.empty((height, width, 4), dtype=np.uint8)
        canvas[:, :] = CANVAS_BACKGROUND

        factor = scale * (1 << _SHIFT)
        for stroke in drawing.strokes:
            if not stroke.points:
                continue
            pts = np.array(
                [[(x - left) * factor, (y - top) * factor] for x, y in stroke.points]
            ).round().astype(np.int32)
            color = tuple(int(c) for c in stroke.color)
            thickness = max(1, int(round(stroke.width * scale)))

            if len(pts) == 1:
                radius = max(1, int(round(stroke.width * scale / 2)))
                cv2.circle(canvas, tuple(int(v) for v in pts[0]), radius << _SHIFT, color,
                           thickness=-1, lineType=cv2.LINE_AA, shift=_SHIFT)
            else:
                cv2.polylines(canvas, [pts.reshape(-1, 1, 2)], False, color,
                              thickness=thickness, lineType=cv2.LINE_AA, shift=_SHIFT)

        return RasterImage(pixels=canvas)
