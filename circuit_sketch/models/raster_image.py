from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import numpy as np


@dataclass(frozen=True, eq=False)
class RasterImage:
    """
    Immutable data object: RGBA pixels (+ optional source path for bookkeeping).
    The pixel array is made read-only on construction, stages build new images.
    """
    pixels: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order.
    path: Path | None = None  # Source of the image.

    def __post_init__(self):
        px = self.pixels
        if not isinstance(px, np.ndarray):
            raise TypeError(f"pixels must be a numpy array, got {type(px).__name__}")
        if px.ndim != 3 or px.shape[2] != 4:
            raise ValueError(f"pixels must have shape (H, W, 4), got {px.shape}")
        if px.dtype != np.uint8:
            raise ValueError(f"pixels must be uint8, got {px.dtype}")
        if px.shape[0] == 0 or px.shape[1] == 0:
            raise ValueError(f"Empty raster: {px.shape[1]}x{px.shape[0]}")

        frozen = np.ascontiguousarray(px)
        if frozen is px:
            frozen = px.copy()
        frozen.flags.writeable = False
        object.__setattr__(self, "pixels", frozen)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        """(width, height)"""
        return self.width, self.height

    @classmethod
    def from_array(cls, array: np.ndarray, path: Path | str | None = None) -> "RasterImage":
        """
        Build a RasterImage from a gray (H, W), RGB (H, W, 3) or RGBA (H, W, 4) array.

        uint8 arrays are taken as-is, float arrays are read as [0, 1] intensities.
        Missing alpha becomes fully opaque.
        """
        arr = np.asarray(array)
        if arr.dtype != np.uint8:
            if not np.issubdtype(arr.dtype, np.floating):
                raise ValueError(f"Unsupported pixel dtype: {arr.dtype}")
            arr = np.rint(np.clip(arr, 0.0, 1.0) * 255.0).astype(np.uint8)

        if arr.ndim == 2:
            arr = np.repeat(arr[:, :, None], 3, axis=2)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ValueError(f"Unsupported pixel shape: {arr.shape}")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)

        return cls(pixels=arr, path=Path(path) if path is not None else None)

    @classmethod
    def solid(cls, width: int, height: int, rgba=(255, 255, 255, 255)) -> "RasterImage":
        """A single-color image, mostly useful as a blank canvas."""
        px = np.empty((height, width, 4), dtype=np.uint8)
        px[:, :] = np.asarray(rgba, dtype=np.uint8)
        return cls(pixels=px)
