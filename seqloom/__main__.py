import argparse
import logging
import sys

from .core.config import get_settings
from .core.diagrams import PlantUmlRenderer, generate_diagrams, write_diagrams
from .core.source_model import load_program


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seqloom",
        description="SeqLoom - PlantUML sequence diagrams from C# sources"
    )
    parser.add_argument(
        "path",
        help="Solution (.sln), project (.csproj) or directory of .cs files"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory receiving the diagrams"
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        type=str,
        default=None,
        choices=["puml", "svg"],
        help="Output format (svg also writes the .puml source)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Compilation units walked concurrently"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML settings file (default: config/seqloom.yaml)"
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Print diagram titles instead of writing files"
    )
    return parser


def main(argv=None) -> int:
    """Main entry point for SeqLoom."""
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings(args.config)
    except (OSError, ValueError) as e:
        setup_logging(args.log_level or "INFO")
        logger.error(f"Invalid configuration: {e}")
        return 1

    setup_logging(args.log_level or settings.log_level)

    output_dir = args.output_dir or settings.output_dir
    output_format = args.output_format or settings.output_format
    workers = args.workers if args.workers is not None else settings.max_workers

    logger.info(f"Loading {args.path}")
    try:
        program = load_program(args.path)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load {args.path}: {e}")
        return 1

    diagrams = generate_diagrams(program, max_workers=workers)

    if args.list:
        for title in diagrams:
            print(title)
        return 0

    renderer = None
    if output_format == "svg":
        renderer = PlantUmlRenderer(
            jar_path=settings.plantuml_jar_path,
            server_url=settings.plantuml_server_url,
            timeout=settings.render_timeout,
        )

    written = write_diagrams(diagrams, output_dir, output_format=output_format, renderer=renderer)
    logger.info(f"{len(diagrams)} diagrams, {len(written)} files in {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
