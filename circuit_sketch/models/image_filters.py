"""
Filters used by the normalization pipeline.

All of them work on float32 RGBA buffers of shape (H, W, 4) in [0, 1]
and return a new buffer; the input is never modified.
Parameters are checked on construction, a rejected parameter raises
FilterConstructionError so the caller can skip the step.
"""
from __future__ import annotations
from dataclasses import dataclass
import math
import numbers

import cv2
import numpy as np
import torch

from ..exceptions import FilterConstructionError


def _require_finite(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise FilterConstructionError(f"{name} must be a finite number, got {value!r}")


@dataclass(frozen=True)
class ColorControls:
    """
    Linear contrast/brightness remap of the color channels.
    Alpha passes through untouched.
    """
    contrast:   float = 1.1
    brightness: float = 0.0

    name = "color_controls"

    def __post_init__(self):
        _require_finite("contrast", self.contrast)
        _require_finite("brightness", self.brightness)
        if self.contrast < 0:
            raise FilterConstructionError(f"contrast must be >= 0, got {self.contrast}")

    # ── Core math ─────────────────────────────────────────────────────
    @staticmethod
    def _apply_raw(x: torch.Tensor, contrast: float, brightness: float) -> torch.Tensor:      # x in [0,1]
        return ((x - 0.5) * contrast + 0.5 + brightness).clamp(0, 1)

    def apply(self, rgba: np.ndarray) -> np.ndarray:
        # HWC → (1,3,H,W)
        rgb = torch.from_numpy(np.ascontiguousarray(rgba[:, :, :3].transpose(2, 0, 1))).unsqueeze(0)
        edited = self._apply_raw(rgb, self.contrast, self.brightness)

        out = rgba.copy()
        out[:, :, :3] = edited.squeeze(0).numpy().transpose(1, 2, 0)
        return out


@dataclass(frozen=True)
class Edges:
    """
    Sobel gradient magnitude per color channel, scaled by intensity.
    Borders are replicated so a flat image has no edges at all.
    The result is opaque.
    """
    intensity: float = 1.0

    name = "edges"

    def __post_init__(self):
        _require_finite("intensity", self.intensity)
        if self.intensity < 0:
            raise FilterConstructionError(f"intensity must be >= 0, got {self.intensity}")

    def apply(self, rgba: np.ndarray) -> np.ndarray:
        rgb = np.ascontiguousarray(rgba[:, :, :3], dtype=np.float32)
        gx = cv2.Sobel(rgb, cv2.CV_32F, 1, 0, ksize=3, borderType=cv2.BORDER_REPLICATE)
        gy = cv2.Sobel(rgb, cv2.CV_32F, 0, 1, ksize=3, borderType=cv2.BORDER_REPLICATE)
        magnitude = np.sqrt(gx * gx + gy * gy) * self.intensity

        out = np.ones_like(rgba, dtype=np.float32)
        out[:, :, :3] = np.clip(magnitude, 0.0, 1.0)
        return out


@dataclass(frozen=True)
class MultiplyBlend:
    """result = top * background per color channel, background alpha kept."""

    name = "multiply_blend"

    def apply(self, top: np.ndarray, background: np.ndarray) -> np.ndarray:
        if top.shape != background.shape:
            raise ValueError(f"Cannot blend {top.shape} over {background.shape}")
        out = background.copy()
        out[:, :, :3] = top[:, :, :3] * background[:, :, :3]
        return out
