from __future__ import annotations

import os
import stat

import numpy as np
import pytest
from PIL import Image

from jewelcase.errors import DecodeFailure, EncodeFailure, UnsupportedFormat
from jewelcase.formats import image_format, is_supported, load_image, save_image

from conftest import make_art, write_image


@pytest.mark.parametrize('name, fmt', [('a.jpg', 'JPEG'), ('b.JPEG', 'JPEG'), ('c.png', 'PNG'), ('d.PnG', 'PNG')])
def test_image_format_by_extension(name, fmt) -> None:
    assert image_format(name) == fmt
    assert is_supported(name)


@pytest.mark.parametrize('name', ['cover.bmp', 'cover.gif', 'cover', 'cover.jpg.txt'])
def test_unsupported_extensions(name) -> None:
    assert not is_supported(name)
    with pytest.raises(UnsupportedFormat) as excinfo:
        image_format(name, 'output')
    assert excinfo.value.direction == 'output'
    assert isinstance(excinfo.value, ValueError)


def test_load_png_and_jpeg(tmp_path) -> None:
    png = load_image(write_image(tmp_path / 'art.png', make_art((64, 32), 'RGBA')))
    jpg = load_image(write_image(tmp_path / 'art.jpg', make_art((64, 32))))
    assert png.size == jpg.size == (64, 32)
    assert png.mode == 'RGBA'
    assert jpg.mode == 'RGB'


def test_load_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_image(tmp_path / 'nope.jpg')


def test_load_garbage_is_decode_failure(tmp_path) -> None:
    bad = tmp_path / 'bad.jpg'
    bad.write_bytes(b'definitely not a jpeg')
    with pytest.raises(DecodeFailure):
        load_image(bad)


def test_load_png_named_as_jpeg_is_decode_failure(tmp_path) -> None:
    path = tmp_path / 'liar.jpg'
    make_art((16, 16)).save(path, format='PNG')
    with pytest.raises(DecodeFailure):
        load_image(path)


def test_save_jpeg_from_rgba(tmp_path) -> None:
    out = save_image(make_art((40, 40), 'RGBA'), tmp_path / 'out.jpg')
    with Image.open(out) as img:
        assert img.format == 'JPEG'
        assert img.size == (40, 40)


def test_save_replaces_existing_file(tmp_path) -> None:
    path = write_image(tmp_path / 'out.png', make_art((10, 10)))
    save_image(make_art((20, 20)), path)
    with Image.open(path) as img:
        assert img.size == (20, 20)
    assert sorted(p.name for p in tmp_path.iterdir()) == ['out.png']


def test_failed_encode_leaves_destination_alone(tmp_path) -> None:
    path = write_image(tmp_path / 'keep.png', make_art((10, 10)))
    before = path.read_bytes()

    with pytest.raises(EncodeFailure):
        save_image(Image.new('CMYK', (10, 10)), path)

    assert path.read_bytes() == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ['keep.png']


def test_save_unsupported_extension_writes_nothing(tmp_path) -> None:
    with pytest.raises(UnsupportedFormat):
        save_image(make_art((10, 10)), tmp_path / 'out.bmp')
    assert list(tmp_path.iterdir()) == []


def test_oversized_image_is_decode_failure(tmp_path, monkeypatch) -> None:
    path = write_image(tmp_path / 'huge.png', make_art((400, 400)))
    monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 10000)
    with pytest.raises(DecodeFailure) as excinfo:
        load_image(path)
    assert isinstance(excinfo.value.__cause__, Image.DecompressionBombError)


def test_load_sixteen_bit_grey(tmp_path) -> None:
    path = tmp_path / 'deep.png'
    Image.fromarray(np.full((20, 30), 1000, dtype=np.uint16)).save(path)
    img = load_image(path)
    assert img.size == (30, 20)
    assert img.mode.startswith('I')


def test_save_keeps_permissions_of_replaced_file(tmp_path) -> None:
    path = write_image(tmp_path / 'private.png', make_art((10, 10)))
    os.chmod(path, 0o600)
    save_image(make_art((20, 20)), path)
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_new_file_follows_umask(tmp_path) -> None:
    mask = os.umask(0o027)
    try:
        path = save_image(make_art((10, 10)), tmp_path / 'new.png')
    finally:
        os.umask(mask)
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o640
