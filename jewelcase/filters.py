import logging

import numpy as np
from PIL import Image

from .frames import TARGET_SIZE

logger = logging.getLogger(__name__)

# Rounded corner radii are drawn from [CORNER_RADIUS_MIN, CORNER_RADIUS_MAX)
CORNER_RADIUS_MIN = 6.0
CORNER_RADIUS_MAX = 12.0

# Width of the feathered rim, in pixels
EDGE_SOFTEN_WIDTH = 2.0


def _to_array(image: Image.Image) -> np.ndarray:
    if image.mode != 'RGBA':
        image = image.convert('RGBA')
    return np.array(image).astype(float)


def _to_image(arr: np.ndarray) -> Image.Image:
    # Clamp then truncate, matching 8-bit quantisation of the float maths
    return Image.fromarray(np.clip(arr, 0, 255).astype(np.uint8), 'RGBA')


def _edge_distances(width: int, height: int):
    """Per-pixel distance to the left, right, top and bottom edges."""
    xs = np.arange(width, dtype=float)[np.newaxis, :]
    ys = np.arange(height, dtype=float)[:, np.newaxis]
    return xs, width - 1 - xs, ys, height - 1 - ys


def apply_colour_correction(image: Image.Image) -> Image.Image:
    """
    Make the art look printed: a little less saturated, a little less
    contrasty and with a faint blue cast. Alpha is untouched.
    """
    img_arr = _to_array(image)
    rgb = img_arr[:, :, :3]

    # 1. Desaturate 10% toward the pixel's grey level
    avg = rgb.mean(axis=2, keepdims=True)
    rgb = rgb * 0.9 + avg * 0.1

    # 2. Pull 5% toward mid-grey
    rgb = rgb * 0.95 + 128 * 0.05

    # 3. Blue tint
    rgb[:, :, 2] = np.minimum(255, rgb[:, :, 2] * 1.02)

    img_arr[:, :, :3] = rgb
    return _to_image(img_arr)


def apply_edge_softening(image: Image.Image) -> Image.Image:
    """
    Feather the outer two pixels: alpha ramps from 0 on the border
    to full strength two pixels in.
    """
    img_arr = _to_array(image)
    height, width = img_arr.shape[:2]

    left, right, top, bottom = _edge_distances(width, height)
    min_dist = np.minimum(np.minimum(left, right), np.minimum(top, bottom))

    factor = np.where(min_dist < EDGE_SOFTEN_WIDTH, min_dist / EDGE_SOFTEN_WIDTH, 1.0)
    img_arr[:, :, 3] *= factor

    return _to_image(img_arr)


def sample_corner_radii(rng: np.random.Generator) -> tuple:
    """Radii for the top-left, top-right, bottom-left and bottom-right corners."""
    return tuple(CORNER_RADIUS_MIN + rng.random() * (CORNER_RADIUS_MAX - CORNER_RADIUS_MIN)
                 for _ in range(4))


def _outside_corner(dist_x: np.ndarray, dist_y: np.ndarray, radius: float) -> np.ndarray:
    """True where a pixel is in the corner's radius box but past its quarter circle."""
    in_box = (dist_x < radius) & (dist_y < radius)
    corner_dist = np.sqrt((radius - dist_x) ** 2 + (radius - dist_y) ** 2) - radius
    return in_box & (corner_dist > 0)


def apply_rounded_corners(image: Image.Image, rng: np.random.Generator = None, radii: tuple = None) -> Image.Image:
    """
    Clip each corner to a quarter circle of its own random radius.
    Clipped pixels become fully transparent.
    """
    if radii is None:
        if rng is None:
            rng = np.random.default_rng()
        radii = sample_corner_radii(rng)
    top_left, top_right, bottom_left, bottom_right = radii
    logger.debug("Corner radii: %.2f, %.2f, %.2f, %.2f", *radii)

    img_arr = np.array(image.convert('RGBA') if image.mode != 'RGBA' else image)
    height, width = img_arr.shape[:2]
    left, right, top, bottom = _edge_distances(width, height)

    mask = (_outside_corner(left, top, top_left) |
            _outside_corner(right, top, top_right) |
            _outside_corner(left, bottom, bottom_left) |
            _outside_corner(right, bottom, bottom_right))

    img_arr[mask] = 0
    return Image.fromarray(img_arr, 'RGBA')


def apply_reflection(image: Image.Image, size: tuple = TARGET_SIZE) -> Image.Image:
    """
    Add a soft white glare from the top-left corner, fading out along the
    diagonal. Position is normalised against the insert `size`.
    """
    img_arr = _to_array(image)
    height, width = img_arr.shape[:2]
    target_w, target_h = size

    fx = np.arange(width, dtype=float)[np.newaxis, :] / target_w
    fy = np.arange(height, dtype=float)[:, np.newaxis] / target_h
    intensity = np.maximum(0, 0.3 * (1 - (fx + fy) / 2))

    img_arr[:, :, :3] = np.minimum(255, img_arr[:, :, :3] + (intensity * 40)[:, :, np.newaxis])
    return _to_image(img_arr)
