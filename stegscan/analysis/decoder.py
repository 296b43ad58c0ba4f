"""
Image decoding behind a small capability interface.

The analyzer only needs RGBA pixels and dimensions; keeping decoding behind
ImageDecoder lets callers swap Pillow for another backend or a test double.
"""
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np
from PIL import Image

logger = logging.getLogger("stegscan.analysis.decoder")


@dataclass
class DecodedImage:
    """RGBA pixels of shape (height, width, 4) and the image dimensions."""
    pixels: np.ndarray
    width: int
    height: int


class ImageDecoder(ABC):
    """Turns encoded image bytes into pixels."""

    @abstractmethod
    def decode(self, data: bytes) -> DecodedImage:
        """
        Decode an image.

        Args:
            data: Encoded image bytes

        Returns:
            DecodedImage

        Raises:
            Exception: Any decoder failure; callers treat it as a failed step
        """
        pass


class PillowDecoder(ImageDecoder):
    """Decoder backed by Pillow. Only the first frame of animated images is used."""

    def decode(self, data: bytes) -> DecodedImage:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            width, height = img.size
            rgba = img.convert("RGBA")
        pixels = np.asarray(rgba, dtype=np.uint8)
        logger.debug(f"Decoded {width}x{height} image")
        return DecodedImage(pixels=pixels, width=width, height=height)
