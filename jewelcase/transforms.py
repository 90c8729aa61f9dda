import logging
import math

import numpy as np
from PIL import Image, ImageSequence

from .frames import TARGET_SIZE

logger = logging.getLogger(__name__)

# 16-bit greyscale opens in these modes; Pillow's own conversion clamps them
WIDE_GREY_MODES = ('I', 'I;16', 'I;16B', 'I;16L', 'I;16N')


def _grey_to_8bit(image: Image.Image) -> Image.Image:
    """Keep the top byte of each 16-bit sample"""
    arr = np.array(image).astype(np.int64) >> 8
    return Image.fromarray(np.clip(arr, 0, 255).astype(np.uint8))


def scale_and_crop(image: Image.Image, size: tuple = TARGET_SIZE) -> Image.Image:
    """
    Scale the image so it covers `size` completely, then centre-crop to it.
    Uses bilinear resampling; smaller inputs are upsampled.
    """
    target_w, target_h = size

    if getattr(image, 'n_frames', 1) > 1:
        # Only the first frame of animated inputs
        image = next(ImageSequence.Iterator(image))
    if image.mode in WIDE_GREY_MODES:
        image = _grey_to_8bit(image)
    if image.mode != 'RGBA':
        image = image.convert('RGBA')

    width, height = image.size
    scale = max(target_w / width, target_h / height)

    # Truncate like the crop maths expects, but never below the target
    scaled_w = max(target_w, int(width * scale))
    scaled_h = max(target_h, int(height * scale))

    if (scaled_w, scaled_h) != image.size:
        image = image.resize((scaled_w, scaled_h), resample=Image.Resampling.BILINEAR)

    crop_x = (scaled_w - target_w) // 2
    crop_y = (scaled_h - target_h) // 2
    logger.debug("Scaled %dx%d by %.4f to %dx%d, cropping at (%d, %d)",
                 width, height, scale, scaled_w, scaled_h, crop_x, crop_y)

    return image.crop((crop_x, crop_y, crop_x + target_w, crop_y + target_h))


def sample_rotation_angle(rng: np.random.Generator) -> float:
    """Uniform angle in radians within half a degree either way."""
    return (rng.random() - 0.5) * math.pi / 180


def apply_rotation(image: Image.Image, rng: np.random.Generator = None, angle: float = None) -> Image.Image:
    """
    Rotate the album art by a tiny angle, like an insert sitting slightly
    askew in its tray.

    The art is first shrunk by 1 / (|cos| + |sin|), then every destination
    pixel is mapped back through the inverse rotation and sampled bilinearly.
    Destinations whose source falls within a pixel of the shrunk image's
    border stay transparent, so a thin rim lets the tray show through.
    """
    if angle is None:
        if rng is None:
            rng = np.random.default_rng()
        angle = sample_rotation_angle(rng)

    if image.mode != 'RGBA':
        image = image.convert('RGBA')

    width, height = image.size
    cos_a = abs(math.cos(angle))
    sin_a = abs(math.sin(angle))
    scale = min(1.0 / (cos_a + sin_a), 1.0)

    scaled_size = int(width * scale)
    scaled = image
    if (scaled_size, scaled_size) != image.size:
        scaled = image.resize((scaled_size, scaled_size), resample=Image.Resampling.BILINEAR)
    logger.debug("Rotating by %.5f rad, intermediate size %d", angle, scaled_size)

    # Work premultiplied so transparent texels don't darken their neighbours
    src = np.array(scaled).astype(float)
    src[:, :, :3] *= src[:, :, 3:4] / 255.0

    # Inverse mapping: destination grid -> rotate by -angle about the centre
    X, Y = np.meshgrid(np.arange(width, dtype=float) - width / 2,
                       np.arange(height, dtype=float) - height / 2)
    cos_n = math.cos(-angle)
    sin_n = math.sin(-angle)
    rx = X * cos_n - Y * sin_n + scaled_size / 2
    ry = X * sin_n + Y * cos_n + scaled_size / 2

    valid = (rx >= 1) & (ry >= 1) & (rx < scaled_size - 1) & (ry < scaled_size - 1)

    result = np.zeros((height, width, 4))
    rx = rx[valid]
    ry = ry[valid]
    x0 = rx.astype(int)
    y0 = ry.astype(int)
    fx = (rx - x0)[:, np.newaxis]
    fy = (ry - y0)[:, np.newaxis]

    result[valid] = (src[y0, x0] * (1 - fx) * (1 - fy) +
                     src[y0, x0 + 1] * fx * (1 - fy) +
                     src[y0 + 1, x0] * (1 - fx) * fy +
                     src[y0 + 1, x0 + 1] * fx * fy)

    result = np.floor(np.clip(result, 0, 255))
    alpha = result[:, :, 3:4]
    with np.errstate(divide='ignore', invalid='ignore'):
        straight = np.where(alpha > 0, result[:, :, :3] * 255.0 / alpha, 0)
    result[:, :, :3] = np.clip(straight, 0, 255)

    return Image.fromarray(result.astype(np.uint8), 'RGBA')
