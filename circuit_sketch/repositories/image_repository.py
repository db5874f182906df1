from __future__ import annotations
from pathlib import Path
from typing import Union, Iterable, List, Iterator
import logging
import os

import numpy as np
import cv2
from PIL import Image as PILImage
from dotenv import load_dotenv

from ..models.raster_image import RasterImage

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageRepository:
    """
    Handles file I/O for RasterImage entities.
    """
    def __init__(self):
        exts = os.getenv("VALID_IMAGE_EXTENSIONS", ".png,.jpg,.jpeg,.bmp,.tif,.tiff,.webp")
        self.VALID_EXTS = {ext.strip().lower() for ext in exts.split(",") if ext.strip()}

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None) -> RasterImage:
        return RasterImage.from_array(pixels, path)

    @staticmethod
    def load(path: Union[str, Path]) -> RasterImage:
        path = Path(path)
        arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")

        if arr.dtype == np.uint16:
            arr = (arr // 257).astype(np.uint8)

        # OpenCV hands back BGR(A) or gray
        if arr.ndim == 2:
            rgba = cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        elif arr.shape[2] == 4:
            rgba = cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        else:
            rgba = cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
        return RasterImage(pixels=rgba, path=path)

    @staticmethod
    def save(image: RasterImage, path: Union[str, Path] = None) -> Path:
        target = Path(path) if path is not None else image.path
        if target is None:
            raise ValueError("Image has no path to save to")
        target.parent.mkdir(parents=True, exist_ok=True)
        PILImage.fromarray(np.ascontiguousarray(image.pixels)).save(target)
        return target

    def iter_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[RasterImage]:
        """
        Yield RasterImage objects one at a time.  Nothing accumulates in memory.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        for p in sorted(folder.glob(pattern)):
            if p.suffix.lower() not in allowed:
                logger.debug(f"Skipping due to extension: {p}")
                continue
            if not p.is_file():
                logger.debug(f"Skipping because not file: {p}")
                continue
            try:
                yield self.load(p)
            except (FileNotFoundError, ValueError, cv2.error) as err:
                logger.warning(f"Skipping {p.name}: {err}")

    def load_dir(
        self, folder: Union[str, Path], *, recursive=False, exts=None
    ) -> List[RasterImage]:
        """
        Convenience helper that returns a list, but internally streams.
        """
        return list(self.iter_dir(folder, recursive=recursive, exts=exts))
