from typing import Any, Dict, Iterable, List, Sequence, Union
from pathlib import Path
import itertools

import numpy as np
import torch
from PIL import Image

from image_classification.lib import ImageRecord, setup_logger

logger = setup_logger(__name__)

DEFAULT_IMAGE_WIDTH = 224
DEFAULT_IMAGE_HEIGHT = 224


def load_image(path: Union[str, Path]) -> Image.Image:
    """Decode an image file as RGB. Decoding errors propagate to the caller."""
    with Image.open(path) as image:
        return image.convert("RGB")


def resize_image(image: Image.Image, width: int, height: int) -> Image.Image:
    return image.resize((width, height), Image.Resampling.BILINEAR)


def extract_pixels(
    image: Image.Image,
    offset: Sequence[float] = (0.0,),
    scale: Sequence[float] = (1.0,),
    interleave_pixel_colors: bool = False,
) -> np.ndarray:
    """
    Turn an RGB image into a float32 array of ``(value - offset) * scale``.

    offset and scale hold either one value for all channels or one per
    channel. The result is channel-first ``(C, H, W)`` unless
    interleave_pixel_colors is set, which keeps ``(H, W, C)``.
    """
    pixels = np.asarray(image, dtype=np.float32)
    pixels = (pixels - np.asarray(offset, dtype=np.float32)) * np.asarray(
        scale, dtype=np.float32
    )

    if not interleave_pixel_colors:
        pixels = pixels.transpose(2, 0, 1)

    return np.ascontiguousarray(pixels)


class ImageTransformPipeline:
    """
    Load, resize and extract pixels for an image on disk.

    The output is a channel-first float32 tensor ready to be batched and fed
    to a pretrained backbone.
    """

    def __init__(
        self,
        width: int = DEFAULT_IMAGE_WIDTH,
        height: int = DEFAULT_IMAGE_HEIGHT,
        offset: Sequence[float] = (0.0,),
        scale: Sequence[float] = (1.0,),
    ):
        self.width = width
        self.height = height
        self.offset = list(offset)
        self.scale = list(scale)

    def __call__(self, image_path: Union[str, Path]) -> torch.Tensor:
        image = load_image(image_path)
        resized = resize_image(image, self.width, self.height)
        pixels = extract_pixels(resized, self.offset, self.scale)
        return torch.from_numpy(pixels)

    def transform_batch(self, records: Sequence[ImageRecord]) -> torch.Tensor:
        return torch.stack([self(record.image_path) for record in records])

    def preview(self, records: Iterable[ImageRecord], count: int = 2) -> List[torch.Tensor]:
        """Transform and log the first few records, to check the pipeline before training."""
        previews: List[torch.Tensor] = []
        for record in itertools.islice(records, count):
            pixels = self(record.image_path)
            logger.info(
                f"Preview | ImagePath: {record.image_path}, Label: {record.label}, "
                f"pixels: {tuple(pixels.shape)}, "
                f"min: {pixels.min().item():.3f}, max: {pixels.max().item():.3f}"
            )
            previews.append(pixels)
        return previews

    def settings(self) -> Dict[str, Any]:
        """Keyword arguments that rebuild this pipeline."""
        return {
            "width": self.width,
            "height": self.height,
            "offset": [float(v) for v in self.offset],
            "scale": [float(v) for v in self.scale],
        }

    def __repr__(self) -> str:
        return (
            f"ImageTransformPipeline(width={self.width}, height={self.height}, "
            f"offset={self.offset}, scale={self.scale})"
        )
