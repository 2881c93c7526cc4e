"""
Cascade Detect CLI Entrypoint.

Responsibility:
    Parse command-line arguments, check platform compatibility,
    configure the application, wire together the pipeline and I/O
    handlers, and run detection over the input images.

Usage:
    python main.py --source lena.jpg               # Single image
    python main.py --source images/                # Directory of images
    python main.py --source lena.jpg --backend cpu --output-mode save_image,save_json
    python main.py --config my_config.yaml

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import logging
import sys

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

from cascade_detect.config import AppConfig, load_config, validate_config
from cascade_detect.errors import CascadeDetectError
from cascade_detect.input_handler import InputHandler
from cascade_detect.output_handler import OutputHandler
from cascade_detect.pipeline import FaceEyePipeline
from cascade_detect.platform_check import is_platform_compatible


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Cascade face and eye detection",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--source",
        type=str,
        help="Input source: path to an image file or a directory of images.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["auto", "cpu", "cuda"],
        help="Compute backend preference. Overrides config.",
    )
    parser.add_argument(
        "--no-equalize",
        action="store_true",
        help="Disable histogram equalization of the intensity image.",
    )
    parser.add_argument(
        "--output-mode",
        type=str,
        help="Output mode(s). Use comma-separated values for multiple outputs: "
             "display, save_image, save_json, save_csv. "
             "Example: 'save_image,save_json'. Overrides config.",
    )
    parser.add_argument(
        "--output-path",
        type=str,
        help="Path/directory for output artifacts. Overrides config.",
    )

    return parser.parse_args()


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> None:
    """Apply CLI arguments on top of the loaded config, then re-validate."""
    # We must use object.__setattr__ because the dataclass is frozen
    if args.source is not None:
        object.__setattr__(config.input, "source", args.source)

    if args.backend is not None:
        object.__setattr__(config.model, "backend", args.backend)

    if args.no_equalize:
        object.__setattr__(config.preprocess, "equalize_hist", False)

    if args.output_mode is not None:
        object.__setattr__(config.output, "mode", args.output_mode)

    if args.output_path is not None:
        object.__setattr__(config.output, "save_path", args.output_path)

    validate_config(config)


def main() -> int:
    """Main execution."""
    args = parse_args()

    # 0. Platform pre-flight
    if not is_platform_compatible():
        return 1

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = load_config(args.config)
        apply_cli_overrides(config, args)
        logger.info("Configuration active for this run.")

    except Exception as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Initialize Components
    try:
        pipeline = FaceEyePipeline(config)
        input_handler = InputHandler(config.input.source)
        output_handler = OutputHandler(config)

    except (FileNotFoundError, ValueError) as e:
        logger.error("Initialization failed: %s", e)
        return 1

    # 3. Processing
    processed = 0
    try:
        for path, image in input_handler:
            result = pipeline.run(image)
            processed += 1

            if not output_handler.process_result(path.name, image, result):
                logger.info("Stopping per user request.")
                break

    except CascadeDetectError as e:
        logger.error("Detection failed: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    finally:
        # 4. Cleanup
        output_handler.finalize()
        logger.info("Processing finished. Images processed: %d.", processed)

    return 0


if __name__ == "__main__":
    sys.exit(main())
