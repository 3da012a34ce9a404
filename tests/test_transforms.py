from pathlib import Path

import numpy as np
import pytest
from PIL import Image, UnidentifiedImageError

from image_classification.feature_extractor import (
    ImageTransformPipeline,
    extract_pixels,
    load_image,
    resize_image,
)
from image_classification.lib import ImageRecord


def test_extract_pixels_channel_first_with_offset() -> None:
    image = Image.new("RGB", (2, 2), (255, 0, 0))

    pixels = extract_pixels(image, offset=[117.0], scale=[1.0])

    assert pixels.shape == (3, 2, 2)
    assert pixels.dtype == np.float32
    assert np.all(pixels[0] == 138.0)
    assert np.all(pixels[1] == -117.0)


def test_extract_pixels_interleaved() -> None:
    image = Image.new("RGB", (3, 2), (10, 20, 30))

    pixels = extract_pixels(image, interleave_pixel_colors=True)

    assert pixels.shape == (2, 3, 3)
    assert pixels[0, 0].tolist() == [10.0, 20.0, 30.0]


def test_extract_pixels_per_channel_normalisation() -> None:
    image = Image.new("RGB", (1, 1), (100, 100, 100))

    pixels = extract_pixels(image, offset=[0.0, 50.0, 100.0], scale=[1.0, 2.0, 3.0])

    assert pixels[:, 0, 0].tolist() == [100.0, 100.0, 0.0]


def test_resize_image() -> None:
    assert resize_image(Image.new("RGB", (10, 10)), 6, 4).size == (6, 4)


def test_pipeline_output_shape(tmp_path: Path, write_image) -> None:
    path = write_image(tmp_path / "rose.png", size=(12, 9))

    pixels = ImageTransformPipeline(width=6, height=4, scale=[1.0 / 255.0])(path)

    assert tuple(pixels.shape) == (3, 4, 6)
    assert float(pixels[0].mean()) == pytest.approx(1.0)


def test_load_image_converts_to_rgb(tmp_path: Path) -> None:
    path = tmp_path / "gray.png"
    Image.new("L", (4, 4), 128).save(path)

    assert load_image(path).mode == "RGB"


def test_decode_errors_propagate(tmp_path: Path) -> None:
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"not an image")

    with pytest.raises(UnidentifiedImageError):
        ImageTransformPipeline()(path)


def test_preview_and_batch(tmp_path: Path, write_image) -> None:
    records = [
        ImageRecord(image_path=str(write_image(tmp_path / f"{i}.png")), label="rose")
        for i in range(3)
    ]
    pipeline = ImageTransformPipeline(width=4, height=4)

    assert len(pipeline.preview(records, count=2)) == 2
    assert tuple(pipeline.transform_batch(records).shape) == (3, 3, 4, 4)


def test_settings_rebuild_the_pipeline() -> None:
    pipeline = ImageTransformPipeline(width=5, height=7, offset=[1.0, 2.0, 3.0], scale=[0.5])

    assert ImageTransformPipeline(**pipeline.settings()).settings() == pipeline.settings()
