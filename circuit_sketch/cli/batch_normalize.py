import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..models.target_dimensions import TargetDimensions
from ..pipeline.batch_normalizer import normalize_folder, NORMALIZED_DIR


def _configure_logging() -> None:
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )


def build_parser() -> argparse.ArgumentParser:
    defaults = TargetDimensions.from_env()
    parser = argparse.ArgumentParser(
        description="Normalize circuit sketch images for a recognition model."
    )
    parser.add_argument("input_dir", type=Path, help="Folder with sketch images")
    parser.add_argument("-o", "--output-dir", type=Path, default=Path(NORMALIZED_DIR),
                        help=f"Where normalized PNGs go (default: {NORMALIZED_DIR})")
    parser.add_argument("--width", type=int, default=defaults.width)
    parser.add_argument("--height", type=int, default=defaults.height)
    parser.add_argument("-r", "--recursive", action="store_true", help="Descend into subfolders")
    return parser


def main(argv=None) -> int:
    _configure_logging()
    args = build_parser().parse_args(argv)

    if not args.input_dir.is_dir():
        print(f"Not a directory: {args.input_dir}", file=sys.stderr)
        return 2

    written = normalize_folder(
        args.input_dir,
        args.output_dir,
        target=TargetDimensions(args.width, args.height),
        recursive=args.recursive,
    )
    print(f"\nNormalized {len(written)} images → {args.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
