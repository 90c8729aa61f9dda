import logging
import os
import shutil
import tempfile
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import DecodeFailure, EncodeFailure, UnsupportedFormat

logger = logging.getLogger(__name__)

# Extension -> Pillow format name
SUPPORTED_FORMATS = {
    '.jpg': 'JPEG',
    '.jpeg': 'JPEG',
    '.png': 'PNG',
}
SUPPORTED_EXTENSIONS = frozenset(SUPPORTED_FORMATS)

JPEG_QUALITY = 95


def _umask() -> int:
    # os.umask can only be read by setting it
    mask = os.umask(0o022)
    os.umask(mask)
    return mask


def image_format(path, direction: str = 'input') -> str:
    """Pillow format for `path`, or UnsupportedFormat."""
    ext = Path(path).suffix.lower()
    if ext not in SUPPORTED_FORMATS:
        raise UnsupportedFormat(path, ext, direction)
    return SUPPORTED_FORMATS[ext]


def is_supported(path) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def load_image(path) -> Image.Image:
    """Load and fully decode an image from disk"""
    path = Path(path)
    fmt = image_format(path, 'input')
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    try:
        with Image.open(path, formats=[fmt]) as img:
            img.load()
            return img.copy()
    except (UnidentifiedImageError, Image.DecompressionBombError, SyntaxError, ValueError) as e:
        raise DecodeFailure(f"Cannot decode {path}: {e}") from e
    except OSError as e:
        # Filesystem errors carry an errno and surface unchanged
        if e.errno is not None:
            raise
        raise DecodeFailure(f"Cannot decode {path}: {e}") from e


def save_image(image: Image.Image, path, quality: int = JPEG_QUALITY):
    """
    Encode `image` to `path`, choosing the codec from the extension.

    Writes to a temporary file next to the destination and renames it into
    place, so a failed encode never leaves a truncated or clobbered file.
    """
    path = Path(path)
    fmt = image_format(path, 'output')

    if fmt == 'JPEG' and image.mode not in ('RGB', 'L'):
        image = image.convert('RGB')

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=path.suffix, dir=path.parent)
    try:
        with os.fdopen(fd, 'wb') as fh:
            if fmt == 'JPEG':
                image.save(fh, format=fmt, quality=quality)
            else:
                image.save(fh, format=fmt)
        if path.exists():
            # Keep the permissions of the file being replaced
            shutil.copymode(path, tmp_name)
        else:
            os.chmod(tmp_name, 0o666 & ~_umask())
        os.replace(tmp_name, path)
    except (OSError, ValueError) as e:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise EncodeFailure(f"Cannot write {path}: {e}") from e

    logger.debug("Wrote %s (%s)", path, fmt)
    return path
