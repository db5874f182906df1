"""Shared fixtures: services with a fixed configuration, independent of any .env."""
import numpy as np
import pytest

from circuit_sketch.models.filter_parameters import FilterParameters
from circuit_sketch.models.raster_image import RasterImage
from circuit_sketch.repositories.filter_repository import FilterRepository
from circuit_sketch.services.image_service import ImageService
from circuit_sketch.services.normalization_service import NormalizationService


@pytest.fixture
def image_service():
    return ImageService()


@pytest.fixture
def make_service(image_service):
    """Factory: NormalizationService with reference parameters and chosen disabled filters."""
    def _make(disabled=(), params=None, detector=None):
        return NormalizationService(
            params=params or FilterParameters(),
            filter_repository=FilterRepository(disabled=list(disabled)),
            image_service=image_service,
            detector=detector,
        )
    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def white_image():
    return RasterImage.solid(400, 400, (255, 255, 255, 255))


@pytest.fixture
def random_image():
    rng = np.random.default_rng(0)
    return RasterImage(pixels=rng.integers(0, 256, size=(24, 32, 4), dtype=np.uint8))
