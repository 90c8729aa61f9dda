import argparse
import logging
import sys

import numpy as np

from .errors import AlreadyProcessed, JewelCaseError
from .pipeline import STATUS_FAILED, STATUS_SKIPPED, EffectOptions, process_directory, process_file

logger = logging.getLogger(__name__)

USAGE = """%(prog)s [options] --recursive <directory>
       %(prog)s [options] --inplace <image>
       %(prog)s [options] <input-image> <output-image>"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='jewelcase',
        usage=USAGE,
        description="Put album art into a CD jewel case",
    )
    parser.add_argument('paths', nargs='+', help="Input and output image, or a single image/directory")

    effects = parser.add_argument_group('effects')
    effects.add_argument('--colour', action=argparse.BooleanOptionalAction, default=True,
                         help="Apply colour correction effect")
    effects.add_argument('--corners', action=argparse.BooleanOptionalAction, default=True,
                         help="Apply rounded corners effect")
    effects.add_argument('--edges', action=argparse.BooleanOptionalAction, default=True,
                         help="Apply edge softening effect")
    effects.add_argument('--offset', action=argparse.BooleanOptionalAction, default=True,
                         help="Apply random position offset")
    effects.add_argument('--rotation', action=argparse.BooleanOptionalAction, default=True,
                         help="Apply random rotation")
    effects.add_argument('--reflection', action=argparse.BooleanOptionalAction, default=True,
                         help="Apply reflection effect")

    parser.add_argument('--inplace', action='store_true', help="Modify file in-place")
    parser.add_argument('--recursive', '-r', action='store_true', help="Process directory recursively")
    parser.add_argument('--force', '-f', action='store_true',
                        help="Process images even if they appear to be already processed")
    parser.add_argument('--seed', type=int, default=None, help="Seed for the random effects")
    parser.add_argument('--jobs', '-j', type=int, default=1, help="Files to process in parallel (directory mode)")
    parser.add_argument('--verbose', '-v', action='store_true', help="Debug logging")
    return parser


def options_from_args(args) -> EffectOptions:
    return EffectOptions(
        colour_correction=args.colour,
        rounded_corners=args.corners,
        edge_softening=args.edges,
        random_offset=args.offset,
        random_rotation=args.rotation,
        reflection=args.reflection,
        force=args.force,
    )


def _run_directory(directory: str, opts: EffectOptions, args) -> int:
    try:
        results = process_directory(directory, opts, recursive=True, workers=max(1, args.jobs), seed=args.seed)
    except OSError as e:
        print(f"Error walking directory: {e}", file=sys.stderr)
        return 1

    processed = skipped = failed = 0
    for result in results:
        if result.status == STATUS_SKIPPED:
            skipped += 1
            print(f"Skipped: {result.path} (already processed)")
        elif result.status == STATUS_FAILED:
            failed += 1
            print(f"Error processing {result.path}: {result.error}", file=sys.stderr)
        else:
            processed += 1
            print(f"Processed: {result.path}")

    logger.info("%d processed, %d skipped, %d failed", processed, skipped, failed)
    return 1 if failed else 0


def _run_file(input_path: str, output_path: str, opts: EffectOptions, args) -> int:
    rng = np.random.default_rng(args.seed)
    try:
        process_file(input_path, output_path, opts, rng)
    except AlreadyProcessed:
        print(f"Skipped: {input_path} (already processed)")
        return 0
    except (JewelCaseError, OSError) as e:
        print(f"Error applying jewel case: {e}", file=sys.stderr)
        return 1

    print(f"Processed: {input_path} -> {output_path}")
    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-20s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S',
    )

    opts = options_from_args(args)

    if args.recursive:
        if len(args.paths) != 1:
            parser.error("--recursive takes exactly one directory")
        code = _run_directory(args.paths[0], opts, args)
    elif args.inplace:
        if len(args.paths) != 1:
            parser.error("--inplace takes exactly one image")
        code = _run_file(args.paths[0], args.paths[0], opts, args)
    else:
        if len(args.paths) != 2:
            parser.error("expected an input image and an output image")
        code = _run_file(args.paths[0], args.paths[1], opts, args)

    sys.exit(code)


if __name__ == "__main__":
    main()
