from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image, ImageDraw


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


def make_art(size: tuple[int, int] = (1000, 500), mode: str = 'RGB') -> Image.Image:
    """Colourful test picture, like an album cover with a sky and a sun."""
    width, height = size
    img = Image.new('RGB', size, color='skyblue')
    d = ImageDraw.Draw(img)
    d.rectangle([0, height * 2 // 3, width, height], fill='lightgreen')
    d.ellipse([width * 3 // 4, height // 10, width * 7 // 8, height // 4], fill='yellow')
    return img.convert(mode)


def solid(colour: tuple, size: tuple[int, int] = (750, 750)) -> Image.Image:
    mode = 'RGBA' if len(colour) == 4 else 'RGB'
    return Image.new(mode, size, colour)


def write_image(path: Path, image: Image.Image | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    (image or make_art()).save(path)
    return path


@pytest.fixture
def art() -> Image.Image:
    return make_art()
