from __future__ import annotations
from pathlib import Path
from typing import Iterable, List, Union, Iterator
import base64
from io import BytesIO

import numpy as np
from PIL import Image as PILImage

from ..models.raster_image import RasterImage
from ..repositories.image_repository import ImageRepository


class ImageService:
    """I/O helpers and pixel-format conversions.  No filter logic."""
    def __init__(self):
        self.image_repository = ImageRepository()

    def create_image(self, pixels: np.ndarray, path: Union[str, Path] = None) -> RasterImage:
        return self.image_repository.create_image(pixels, path)

    def load(self, path: str | Path) -> RasterImage:
        """Load a single image from disk into a RasterImage object."""
        return self.image_repository.load(path)

    def stream_gallery(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[RasterImage]:
        """
        Yield images lazily instead of returning a gigantic list.
        """
        return self.image_repository.iter_dir(folder,
                                              recursive=recursive,
                                              exts=exts)

    def save(self, image: RasterImage, path: Union[str, Path] = None) -> Path:
        return self.image_repository.save(image, path)

    def save_gallery(self, gallery: Iterable[RasterImage]) -> List[Path]:
        return [self.save(img) for img in gallery]

    def get_image_dimensions(self, img: RasterImage):
        """(height, width), numpy order."""
        return img.height, img.width

    # ─── Working buffers ──────────────────────────────────────────────
    @staticmethod
    def to_float(img: RasterImage) -> np.ndarray:
        """RasterImage → writable float32 (H, W, 4) buffer in [0, 1]."""
        return img.pixels.astype(np.float32) / 255.0

    def from_float(self, buffer: np.ndarray, path: Union[str, Path] = None) -> RasterImage:
        """float32 (H, W, 4) buffer in [0, 1] → new RasterImage."""
        pixels = np.rint(np.clip(buffer, 0.0, 1.0) * 255.0).astype(np.uint8)
        return self.create_image(pixels, path)

    # ─── Export ───────────────────────────────────────────────────────
    @staticmethod
    def to_pil_image(img: RasterImage) -> PILImage.Image:
        return PILImage.fromarray(np.ascontiguousarray(img.pixels))

    def to_png_bytes(self, img: RasterImage) -> bytes:
        buffer = BytesIO()
        self.to_pil_image(img).save(buffer, format="PNG")
        return buffer.getvalue()

    def to_data_url(self, img: RasterImage) -> str:
        """PNG data URL, keeps the alpha channel."""
        encoded = base64.b64encode(self.to_png_bytes(img)).decode("utf-8")
        return f"data:image/png;base64,{encoded}"

    def from_bytes(self, data: bytes) -> RasterImage:
        """Decode an uploaded image (any format Pillow reads)."""
        with PILImage.open(BytesIO(data)) as pil_obj:
            rgba = np.asarray(pil_obj.convert("RGBA"))
        return self.create_image(rgba)
