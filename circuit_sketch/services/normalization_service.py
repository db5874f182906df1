from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional
import logging

import cv2
import numpy as np

from ..exceptions import NormalizationFailure
from ..models.detected_component import DetectedComponent
from ..models.filter_parameters import FilterParameters
from ..models.raster_image import RasterImage
from ..models.target_dimensions import TargetDimensions
from ..repositories.filter_repository import (
    FilterRepository,
    COLOR_CONTROLS,
    EDGES,
    MULTIPLY_BLEND,
)
from .image_service import ImageService

logger = logging.getLogger(__name__)

ComponentDetector = Callable[[RasterImage], Iterable[DetectedComponent]]


@dataclass(frozen=True)
class _ScaledImage:
    """Scale description, nothing is resampled until it is rendered."""
    buffer: np.ndarray  # float32 (H, W, 4)
    scale_x: float
    scale_y: float


class NormalizationService:
    """
    Turns a drawing snapshot into the fixed-size image a recognition model expects.

    Steps, always in this order:
        1. contrast/brightness   (skipped if the filter can't be built)
        2. edges × image         (skipped if either filter can't be built)
        3. per-axis scale to the target size
        4. render the final pixel buffer  (the only step that can fail)

    Calls share no mutable state, one instance can serve several threads.
    """

    def __init__(self,
                 params: FilterParameters = None,
                 filter_repository: FilterRepository = None,
                 image_service: ImageService = None,
                 detector: Optional[ComponentDetector] = None):
        self.params = params or FilterParameters.from_env()
        self.filters = filter_repository or FilterRepository()
        self.img_svc = image_service or ImageService()
        self.detector = detector

    # ─── Public API ────────────────────────────────────────────────
    def normalize(self, snapshot: RasterImage, target: TargetDimensions = None) -> RasterImage:
        """
        Args:
            snapshot: rasterized drawing
            target: output size, defaults to the configured target

        Returns:
            RasterImage: exactly ``target`` sized

        Raises:
            NormalizationFailure: the final buffer could not be rendered
        """
        target = target or TargetDimensions.from_env()

        buffer = self.img_svc.to_float(snapshot)
        buffer = self._adjust_contrast(buffer)
        buffer = self._emphasize_edges(buffer)
        scaled = self._scale_to(buffer, target)
        result = self._render(scaled, target)

        logger.debug(f"Normalized {snapshot.width}x{snapshot.height} → {result.width}x{result.height}")
        return result

    def detect_components(self, image: RasterImage) -> List[DetectedComponent]:
        """
        Circuit element detection hook.
        Returns an empty list until an external detector is injected.
        """
        if self.detector is None:
            return []
        return list(self.detector(image))

    # ─── Internal helpers ──────────────────────────────────────────
    def _adjust_contrast(self, buffer: np.ndarray) -> np.ndarray:
        controls = self.filters.create(COLOR_CONTROLS,
                                       contrast=self.params.contrast,
                                       brightness=self.params.brightness)
        if controls is None:
            logger.info("Contrast step skipped")
            return buffer
        return controls.apply(buffer)

    def _emphasize_edges(self, buffer: np.ndarray) -> np.ndarray:
        edges = self.filters.create(EDGES, intensity=self.params.edge_intensity)
        blend = self.filters.create(MULTIPLY_BLEND)
        if edges is None or blend is None:
            logger.info("Edge step skipped")
            return buffer
        return blend.apply(edges.apply(buffer), buffer)

    @staticmethod
    def _scale_to(buffer: np.ndarray, target: TargetDimensions) -> _ScaledImage:
        height, width = buffer.shape[:2]
        return _ScaledImage(buffer=buffer,
                            scale_x=target.width / width,
                            scale_y=target.height / height)

    def _render(self, scaled: _ScaledImage, target: TargetDimensions) -> RasterImage:
        height, width = scaled.buffer.shape[:2]
        out_w = int(round(width * scaled.scale_x))
        out_h = int(round(height * scaled.scale_y))
        if out_w <= 0 or out_h <= 0:
            raise NormalizationFailure(f"Cannot render a {out_w}x{out_h} image")

        # INTER_AREA when shrinking both axes, INTER_LINEAR otherwise
        shrinking = scaled.scale_x < 1 and scaled.scale_y < 1
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        try:
            resized = cv2.resize(scaled.buffer, (out_w, out_h), interpolation=interpolation)
            image = self.img_svc.from_float(resized)
        except (cv2.error, MemoryError, ValueError) as err:
            raise NormalizationFailure(f"Rendering {target.width}x{target.height} failed: {err}") from err

        if image.size != (target.width, target.height):
            raise NormalizationFailure(
                f"Rendered {image.width}x{image.height}, expected {target.width}x{target.height}"
            )
        return image
