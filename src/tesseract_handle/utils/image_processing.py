"""Raster preparation applied before an image is bound to the engine."""

import logging
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np
from PIL import Image, ImageEnhance, ImageOps

logger = logging.getLogger(__name__)

# Modes tesseract consumes directly; anything else is converted to RGB.
ENGINE_MODES = ("1", "L", "RGB")


@dataclass
class ImagePreprocessingConfig:
    """Optional adjustments applied to a raster before recognition."""

    resize_width: Optional[int] = None
    resize_height: Optional[int] = None
    contrast_factor: float = 1.0
    brightness_factor: float = 1.0
    sharpen_factor: float = 1.0
    denoise: bool = False
    deskew: bool = False
    binarize: bool = False

    @property
    def is_noop(self) -> bool:
        return not (
            self.resize_width
            or self.resize_height
            or self.contrast_factor != 1.0
            or self.brightness_factor != 1.0
            or self.sharpen_factor != 1.0
            or self.denoise
            or self.deskew
            or self.binarize
        )


def to_engine_mode(image: Image.Image) -> Image.Image:
    """
    Convert an image into a pixel mode the engine accepts.

    Palette, CMYK and alpha images are flattened to RGB; alpha is composited
    onto white so transparent backgrounds do not read as black.

    Args:
        image: Decoded PIL Image

    Returns:
        PIL Image in mode "1", "L" or "RGB"
    """
    if image.mode in ENGINE_MODES:
        return image
    if image.mode in ("RGBA", "LA") or (
        image.mode == "P" and "transparency" in image.info
    ):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def resize_image(
    image: Image.Image, width: Optional[int] = None, height: Optional[int] = None
) -> Image.Image:
    """
    Resize an image, keeping its aspect ratio when only one side is given.

    Args:
        image: Input PIL Image
        width: Target width in pixels
        height: Target height in pixels

    Returns:
        Resized PIL Image
    """
    if not width and not height:
        return image

    orig_width, orig_height = image.size
    if width and height:
        ratio = min(width / orig_width, height / orig_height)
    elif width:
        ratio = width / orig_width
    else:
        ratio = height / orig_height

    new_size = (max(1, int(orig_width * ratio)), max(1, int(orig_height * ratio)))
    return image.resize(new_size, Image.Resampling.LANCZOS)


def enhance_image(
    image: Image.Image,
    contrast: float = 1.0,
    brightness: float = 1.0,
    sharpness: float = 1.0,
) -> Image.Image:
    """Apply contrast, brightness and sharpness factors in that order."""
    if image.mode == "1" and (contrast, brightness, sharpness) != (1.0, 1.0, 1.0):
        image = image.convert("L")
    if contrast != 1.0:
        image = ImageEnhance.Contrast(image).enhance(contrast)
    if brightness != 1.0:
        image = ImageEnhance.Brightness(image).enhance(brightness)
    if sharpness != 1.0:
        image = ImageEnhance.Sharpness(image).enhance(sharpness)
    return image


def denoise_image(image: Image.Image) -> Image.Image:
    gray = np.array(ImageOps.grayscale(image))
    return Image.fromarray(cv2.fastNlMeansDenoising(gray, None, 10, 7, 21))


def deskew_image(image: Image.Image) -> Image.Image:
    """
    Rotate an image so that its dominant text lines are horizontal.

    Args:
        image: Input PIL Image

    Returns:
        Deskewed PIL Image, or the input if no significant skew was found
    """
    gray = np.array(ImageOps.grayscale(image))
    edges = cv2.Canny(gray, 50, 150, apertureSize=3)
    lines = cv2.HoughLines(edges, 1, np.pi / 180, 100)
    if lines is None:
        return image

    angles = []
    for _, theta in lines[:, 0]:
        angle = np.degrees(theta) - 90
        if abs(angle) < 45:
            angles.append(angle)
    if not angles:
        return image

    median_angle = float(np.median(angles))
    if abs(median_angle) <= 0.5:
        return image

    logger.debug(f"Deskewing raster by {median_angle:.2f} degrees")
    fill = 255 if image.mode in ("1", "L") else (255, 255, 255)
    return image.rotate(median_angle, expand=True, fillcolor=fill)


def binarize_image(image: Image.Image) -> Image.Image:
    """Convert an image to black and white using adaptive Gaussian thresholding."""
    gray = np.array(ImageOps.grayscale(image))
    binary = cv2.adaptiveThreshold(
        gray,
        255,
        cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
        cv2.THRESH_BINARY,
        11,  # Block size
        2,  # Constant subtracted from mean
    )
    return Image.fromarray(binary)


def preprocess_image(
    image: Image.Image, config: Optional[ImagePreprocessingConfig]
) -> Image.Image:
    """
    Prepare a decoded image for recognition.

    The returned image may be a new object; the caller keeps ownership of
    the input image and must still close it.

    Args:
        image: Decoded PIL Image
        config: Preprocessing configuration, or None for mode conversion only

    Returns:
        PIL Image ready to be bound to the engine
    """
    image = to_engine_mode(image)
    if config is None or config.is_noop:
        return image

    if config.resize_width or config.resize_height:
        image = resize_image(image, config.resize_width, config.resize_height)

    image = enhance_image(
        image,
        config.contrast_factor,
        config.brightness_factor,
        config.sharpen_factor,
    )

    if config.denoise:
        image = denoise_image(image)

    if config.deskew:
        image = deskew_image(image)

    if config.binarize:
        image = binarize_image(image)

    return image
