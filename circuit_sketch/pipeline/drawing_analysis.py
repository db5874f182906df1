"""
Drawing → analysis image.
Rasterizes a stroke drawing at 1.0 scale over its own bounds and normalizes
it for a recognition model.
"""
from __future__ import annotations
import logging
from typing import Optional

from ..exceptions import NormalizationFailure
from ..models.drawing import Drawing
from ..models.raster_image import RasterImage
from ..models.target_dimensions import TargetDimensions
from ..repositories.drawing_repository import DrawingRepository
from ..services.normalization_service import NormalizationService

logger = logging.getLogger(__name__)


def process_for_ai_analysis(
    drawing: Drawing,
    *,
    drawing_repository: DrawingRepository = None,
    normalization_service: NormalizationService = None,
    target: TargetDimensions = None,
) -> Optional[RasterImage]:
    """
    Args:
        drawing: the sketch to analyse
        drawing_repository: rasterizer
        normalization_service: filter pipeline
        target: output size (768x768 unless configured otherwise)

    Returns:
        RasterImage ready for the model, or None if the final render failed.
        An empty drawing raises ValueError.
    """
    drawing_repository = drawing_repository or DrawingRepository()
    normalization_service = normalization_service or NormalizationService()
    target = target or TargetDimensions.from_env()

    snapshot = drawing_repository.rasterize(drawing, scale=1.0)
    try:
        return normalization_service.normalize(snapshot, target)
    except NormalizationFailure as err:
        logger.warning(f"Drawing analysis image not produced: {err}")
        return None
