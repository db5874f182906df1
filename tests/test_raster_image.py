"""Tests for the data objects in circuit_sketch.models.

Test cases:
    - RasterImage validation (shape, dtype, empty rasters)
    - RasterImage immutability (read-only pixels, private copy)
    - from_array conversions (gray, RGB, float)
    - TargetDimensions / FilterParameters defaults and env loading,
      unparseable env values name their key
    - DetectedComponent confidence range

Run: pytest tests/test_raster_image.py -v
"""
import numpy as np
import pytest

from circuit_sketch.models.detected_component import (
    BoundingBox,
    ComponentKind,
    DetectedComponent,
)
from circuit_sketch.models.filter_parameters import FilterParameters
from circuit_sketch.models.raster_image import RasterImage
from circuit_sketch.models.target_dimensions import TargetDimensions


class TestRasterImage:

    def test_dimensions(self):
        img = RasterImage(pixels=np.zeros((600, 300, 4), dtype=np.uint8))
        assert img.width == 300
        assert img.height == 600
        assert img.size == (300, 600)

    @pytest.mark.parametrize("shape", [(0, 10, 4), (10, 0, 4)])
    def test_empty_raster_rejected(self, shape):
        with pytest.raises(ValueError):
            RasterImage(pixels=np.zeros(shape, dtype=np.uint8))

    def test_wrong_channel_count_rejected(self):
        with pytest.raises(ValueError):
            RasterImage(pixels=np.zeros((4, 4, 3), dtype=np.uint8))

    def test_wrong_dtype_rejected(self):
        with pytest.raises(ValueError):
            RasterImage(pixels=np.zeros((4, 4, 4), dtype=np.float32))

    def test_pixels_are_read_only(self):
        img = RasterImage.solid(4, 4)
        with pytest.raises(ValueError):
            img.pixels[0, 0, 0] = 1

    def test_source_array_is_not_shared(self):
        src = np.zeros((4, 4, 4), dtype=np.uint8)
        img = RasterImage(pixels=src)
        src[0, 0, 0] = 99
        assert img.pixels[0, 0, 0] == 0
        assert src.flags.writeable

    def test_from_gray_array(self):
        gray = np.full((3, 5), 7, dtype=np.uint8)
        img = RasterImage.from_array(gray)
        assert img.size == (5, 3)
        assert (img.pixels[..., :3] == 7).all()
        assert (img.pixels[..., 3] == 255).all()

    def test_from_float_rgb_array(self):
        rgb = np.full((2, 2, 3), 0.5, dtype=np.float32)
        img = RasterImage.from_array(rgb)
        assert img.pixels[0, 0].tolist() == [128, 128, 128, 255]

    def test_from_array_rejects_ints_other_than_uint8(self):
        with pytest.raises(ValueError):
            RasterImage.from_array(np.zeros((2, 2, 3), dtype=np.int64))


class TestConfiguration:

    def test_reference_defaults(self):
        assert TargetDimensions() == TargetDimensions(768, 768)
        params = FilterParameters()
        assert params.contrast == pytest.approx(1.1)
        assert params.brightness == 0.0
        assert params.edge_intensity == 1.0

    def test_target_from_env(self, monkeypatch):
        monkeypatch.setenv("TARGET_WIDTH", "512")
        monkeypatch.setenv("TARGET_HEIGHT", "256")
        assert TargetDimensions.from_env() == TargetDimensions(512, 256)

    def test_filter_parameters_from_env(self, monkeypatch):
        monkeypatch.setenv("CONTRAST_FACTOR", "1.5")
        monkeypatch.setenv("BRIGHTNESS_OFFSET", "-0.1")
        monkeypatch.setenv("EDGE_INTENSITY", "2")
        assert FilterParameters.from_env() == FilterParameters(1.5, -0.1, 2.0)

    @pytest.mark.parametrize("key", ["CONTRAST_FACTOR", "BRIGHTNESS_OFFSET", "EDGE_INTENSITY"])
    def test_unparseable_filter_parameter_names_key(self, monkeypatch, key):
        monkeypatch.setenv(key, "strong")
        with pytest.raises(ValueError, match=key):
            FilterParameters.from_env()

    def test_unparseable_target_names_key(self, monkeypatch):
        monkeypatch.setenv("TARGET_HEIGHT", "768px")
        with pytest.raises(ValueError, match="TARGET_HEIGHT"):
            TargetDimensions.from_env()


class TestDetectedComponent:

    def test_confidence_out_of_range(self):
        with pytest.raises(ValueError):
            DetectedComponent(ComponentKind.RESISTOR, BoundingBox(0, 0, 10, 10), 1.5)

    def test_to_dict(self):
        comp = DetectedComponent(ComponentKind.DIODE, BoundingBox(1, 2, 3, 4), 0.75)
        assert comp.to_dict() == {
            "kind": "diode",
            "bounding_box": {"x": 1, "y": 2, "width": 3, "height": 4},
            "confidence": 0.75,
        }

    def test_negative_box_rejected(self):
        with pytest.raises(ValueError):
            BoundingBox(0, 0, -1, 5)
