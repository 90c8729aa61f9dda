import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
from PIL import Image

from .errors import AlreadyProcessed
from .filters import apply_colour_correction, apply_edge_softening, apply_reflection, apply_rounded_corners
from .formats import image_format, is_supported, load_image, save_image
from .frames import FRAME_SIZE, add_jewel_case_frame, compute_offset
from .transforms import apply_rotation, scale_and_crop

logger = logging.getLogger(__name__)

STATUS_PROCESSED = 'processed'
STATUS_SKIPPED = 'skipped'
STATUS_FAILED = 'failed'


@dataclass(frozen=True)
class EffectOptions:
    """Which effects to apply. Stage order is fixed by the pipeline, not here."""
    colour_correction: bool = True
    rounded_corners: bool = True
    edge_softening: bool = True
    random_offset: bool = True
    random_rotation: bool = True
    reflection: bool = True
    # Process images even if they look like previous output
    force: bool = False


class ImagePipeline:
    def __init__(self, image: Image.Image, rng: np.random.Generator = None):
        self.image = image
        # One generator per pipeline so concurrent runs never share state
        self.rng = rng if rng is not None else np.random.default_rng()

    def check(self, force: bool = False):
        """Refuse images that already have the framed output's exact size"""
        if not force and tuple(self.image.size) == tuple(FRAME_SIZE):
            raise AlreadyProcessed(self.image.size)
        return self

    def prepare(self):
        """Scale and centre-crop to the insert size before any effect runs"""
        self.image = scale_and_crop(self.image)
        return self

    def apply_effects(self, options: EffectOptions):
        """Run the enabled effects in their fixed order"""
        stages = [
            (options.colour_correction, 'colour correction', apply_colour_correction),
            (options.edge_softening, 'edge softening', apply_edge_softening),
            (options.rounded_corners, 'rounded corners', lambda img: apply_rounded_corners(img, rng=self.rng)),
            (options.reflection, 'reflection', apply_reflection),
            (options.random_rotation, 'rotation', lambda img: apply_rotation(img, rng=self.rng)),
        ]
        for enabled, name, stage in stages:
            if not enabled:
                continue
            started = time.perf_counter()
            self.image = stage(self.image)
            logger.debug("Applied %s in %.1f ms", name, (time.perf_counter() - started) * 1000)
        return self

    def add_frame(self, random_offset: bool = False):
        """Composite onto the jewel case"""
        offset = compute_offset(random_offset, self.rng)
        logger.debug("Placing album art at %s", offset)
        self.image = add_jewel_case_frame(self.image, offset)
        return self


def process(image: Image.Image, options: EffectOptions = None, rng: np.random.Generator = None) -> Image.Image:
    """
    Turn album art into a photo of it sitting in a jewel case.

    Raises AlreadyProcessed when the input already has the frame's size,
    unless `options.force` is set.
    """
    if options is None:
        options = EffectOptions()

    return (ImagePipeline(image, rng)
            .check(force=options.force)
            .prepare()
            .apply_effects(options)
            .add_frame(random_offset=options.random_offset)
            .image)


def process_file(input_path, output_path, options: EffectOptions = None, rng: np.random.Generator = None) -> Path:
    """
    Read `input_path`, process it and write the result to `output_path`.
    Input and output may be the same file. Nothing is written on failure.
    """
    # Fail on unknown extensions before touching any pixels
    image_format(input_path, 'input')
    image_format(output_path, 'output')

    image = load_image(input_path)
    result = process(image, options, rng)
    return save_image(result, output_path)


@dataclass
class FileResult:
    path: Path
    status: str
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status != STATUS_FAILED


def _report_walk_error(error: OSError):
    logger.warning("Skipping unreadable directory %s: %s", error.filename, error.strerror or error)


def find_images(root, recursive: bool = True) -> List[Path]:
    """Supported image files under `root`, in a stable order."""
    root = Path(root)
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    found = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_report_walk_error):
        dirnames.sort()
        found.extend(Path(dirpath) / name for name in sorted(filenames) if is_supported(name))
        if not recursive:
            break
    return found


def _process_in_place(path: Path, options: EffectOptions, rng: np.random.Generator) -> FileResult:
    try:
        process_file(path, path, options, rng)
    except AlreadyProcessed:
        return FileResult(path, STATUS_SKIPPED)
    except Exception as e:
        logger.debug("Failed on %s", path, exc_info=True)
        return FileResult(path, STATUS_FAILED, e)
    return FileResult(path, STATUS_PROCESSED)


def process_directory(root, options: EffectOptions = None, *, recursive: bool = True,
                      workers: int = 1, seed: int = None) -> List[FileResult]:
    """
    Process every supported image under `root` in place.

    One file failing never stops the rest; each gets a FileResult, in walk
    order. With `workers` > 1 files are processed on a thread pool.
    """
    if options is None:
        options = EffectOptions()

    paths = find_images(root, recursive=recursive)
    logger.info("Found %d image(s) under %s", len(paths), root)

    # Independent generator per file, reproducible when seeded
    rngs = [np.random.default_rng(child) for child in np.random.SeedSequence(seed).spawn(len(paths))]

    if workers <= 1:
        return [_process_in_place(path, options, rng) for path, rng in zip(paths, rngs)]

    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(lambda job: _process_in_place(job[0], options, job[1]), zip(paths, rngs)))
