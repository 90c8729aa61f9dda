import functools
import logging

import numpy as np
from PIL import Image, ImageDraw, ImageFilter

logger = logging.getLogger(__name__)

# Fixed jewel case geometry, in pixels
FRAME_SPEC = {
    # Whole case, front view
    'total_size': (884, 777),
    # Square album art insert
    'image_size': (750, 750),
    # Top-left of the insert inside the case, right of the hinge
    'image_pos': (98, 13),
}

FRAME_SIZE = FRAME_SPEC['total_size']
TARGET_SIZE = FRAME_SPEC['image_size']
FRAME_OFFSET = FRAME_SPEC['image_pos']

# Random placement jitter: x in [-8, +8], y in [-5, +5]
OFFSET_RANGE_X = 17
OFFSET_RANGE_Y = 11


def _render_frame() -> Image.Image:
    """
    Paint the empty jewel case: dark translucent plastic, a ridged hinge
    spine on the left, a recessed tray around the insert window and a soft
    gloss on the cover.
    """
    total_w, total_h = FRAME_SPEC['total_size']
    target_w, target_h = FRAME_SPEC['image_size']
    pos_x, pos_y = FRAME_SPEC['image_pos']

    # 1. Plastic body: vertical gradient, lighter at the top
    y = np.linspace(0, 1, total_h)[:, np.newaxis]
    x = np.linspace(0, 1, total_w)[np.newaxis, :]
    shade = 46 - 18 * y - 6 * x
    body = np.stack([shade, shade + 1, shade + 4], axis=-1)
    frame = Image.fromarray(np.clip(body, 0, 255).astype(np.uint8), 'RGB')

    draw = ImageDraw.Draw(frame)

    # 2. Hinge spine with horizontal ridges
    spine_w = pos_x - 22
    draw.rectangle([0, 0, spine_w, total_h], fill=(24, 24, 27))
    for ridge_y in range(4, total_h, 6):
        draw.line([(6, ridge_y), (spine_w - 6, ridge_y)], fill=(38, 38, 42), width=2)
    draw.line([(spine_w, 0), (spine_w, total_h)], fill=(70, 70, 76), width=2)
    draw.line([(spine_w + 3, 0), (spine_w + 3, total_h)], fill=(12, 12, 14), width=1)

    # 3. Tray recess around the insert window
    tray = [pos_x - 8, pos_y - 7, pos_x + target_w + 8, pos_y + target_h + 7]
    draw.rounded_rectangle(tray, radius=10, fill=(18, 18, 20), outline=(58, 58, 64), width=2)
    draw.rectangle([pos_x, pos_y, pos_x + target_w - 1, pos_y + target_h - 1], fill=(226, 226, 224))

    # 4. Gloss on the cover: a blurred diagonal band of light
    gloss = Image.new('L', (total_w, total_h), 0)
    ImageDraw.Draw(gloss).polygon(
        [(spine_w, 0), (spine_w + 220, 0), (total_w, total_h * 0.55), (total_w, total_h * 0.8)],
        fill=28,
    )
    gloss = gloss.filter(ImageFilter.GaussianBlur(radius=40))
    frame = Image.composite(Image.new('RGB', frame.size, (255, 255, 255)), frame, gloss)

    # Slight softness so the drawn edges don't look digital
    return frame.filter(ImageFilter.GaussianBlur(radius=0.6))


@functools.lru_cache(maxsize=None)
def get_frame() -> Image.Image:
    """
    Return the process-wide frame image, built on first use.
    Shared by every caller: treat it as read-only and copy before drawing.
    """
    frame = _render_frame()
    logger.debug("Rendered jewel case frame %dx%d", *frame.size)
    return frame


def compute_offset(random_offset: bool = False, rng: np.random.Generator = None) -> tuple:
    """Where the top-left of the album art lands inside the frame."""
    offset_x, offset_y = FRAME_OFFSET
    if random_offset:
        if rng is None:
            rng = np.random.default_rng()
        offset_x += int(rng.random() * OFFSET_RANGE_X) - OFFSET_RANGE_X // 2
        offset_y += int(rng.random() * OFFSET_RANGE_Y) - OFFSET_RANGE_Y // 2
    return offset_x, offset_y


def add_jewel_case_frame(image: Image.Image, offset: tuple = FRAME_OFFSET) -> Image.Image:
    """
    Composite the processed album art over a fresh copy of the frame,
    source-over, with its top-left at `offset`.
    """
    canvas = get_frame().copy().convert('RGBA')
    if image.mode != 'RGBA':
        image = image.convert('RGBA')

    canvas.alpha_composite(image, dest=(int(offset[0]), int(offset[1])))

    # The frame is opaque so nothing is lost dropping alpha
    return canvas.convert('RGB')
