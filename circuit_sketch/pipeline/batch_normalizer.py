"""
Batch Normalizer Pipeline
Normalizes every sketch image in a folder and writes the results as PNG.
"""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from tqdm import tqdm

from ..exceptions import NormalizationFailure
from ..models.target_dimensions import TargetDimensions
from ..services.image_service import ImageService
from ..services.normalization_service import NormalizationService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

NORMALIZED_DIR = os.getenv("NORMALIZED_DIR_PATH", "data/normalized")
OUTPUT_EXT = os.getenv("OUTPUT_IMG_EXT", ".png")  # keeps alpha


def normalize_folder(
    input_dir: str | Path,
    output_dir: str | Path = NORMALIZED_DIR,
    *,
    target: TargetDimensions = None,
    recursive: bool = False,
    image_service: ImageService = None,
    normalization_service: NormalizationService = None,
    ext: str = OUTPUT_EXT,
) -> List[Path]:
    """
    For every readable image in *input_dir*:
        • normalize it to *target*
        • save it as ``<stem>_normalized<ext>`` under *output_dir*

    Images whose final render fails are logged and skipped.

    Returns:
        List[Path]: written files, in input order
    """
    image_service = image_service or ImageService()
    normalization_service = normalization_service or NormalizationService(image_service=image_service)
    target = target or TargetDimensions.from_env()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written: List[Path] = []
    failed = 0
    for img in tqdm(image_service.stream_gallery(input_dir, recursive=recursive),
                    desc="normalize", ncols=70):
        try:
            normalized = normalization_service.normalize(img, target)
        except NormalizationFailure as err:
            failed += 1
            logger.warning(f"Skipping {img.path}: {err}")
            continue

        stem = img.path.stem if img.path else f"sketch_{len(written) + failed}"
        out_path = output_dir / f"{stem}_normalized{ext}"
        written.append(image_service.save(normalized, out_path))

    logger.info(f"Normalized {len(written)} images into {output_dir} ({failed} failed)")
    return written
