"""Main entry point for the XMP repair tool."""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.utils.config_loader import load_config
from src.utils.logger import setup_logger

logger = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='xmp-repair',
        description="Repair JPEG files whose embedded XMP metadata is not well-formed XML"
    )
    parser.add_argument(
        'path',
        help='JPEG file or directory to process (directories are searched recursively)'
    )
    parser.add_argument(
        '--overwrite',
        action='store_true',
        default=None,
        help='Replace original files with their repaired copies'
    )
    parser.add_argument(
        '--check-only',
        action='store_true',
        help='Report which files need repair without writing anything'
    )
    parser.add_argument(
        '--workers',
        type=int,
        help='Number of files to process in parallel'
    )
    parser.add_argument(
        '--report',
        help='Write a JSON report of the batch to this file'
    )
    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable the progress bar'
    )
    parser.add_argument(
        '--config',
        default='config/config.yaml',
        help='Path to configuration file'
    )
    return parser


def apply_overrides(config, args):
    """Apply command line flags on top of the loaded configuration."""
    if args.overwrite is not None:
        config['repair']['overwrite_originals'] = args.overwrite
    if args.workers is not None:
        if args.workers < 1:
            raise ValueError("--workers must be at least 1")
        config['workflow']['parallel_workers'] = args.workers
    if args.report:
        config['workflow']['report_file'] = args.report
    if args.no_progress:
        config['workflow']['show_progress'] = False
    return config


def main(argv=None):
    """Main entry point."""
    global logger

    parser = build_parser()
    args = parser.parse_args(argv)

    root = Path(args.path)
    if not root.exists():
        parser.print_usage(sys.stderr)
        print(f"Error: path does not exist: {root}", file=sys.stderr)
        return 2

    try:
        # Load configuration
        config = apply_overrides(load_config(args.config), args)

        # Setup logging
        logger = setup_logger(config)

        return cmd_repair(config, root, check_only=args.check_only)

    except KeyboardInterrupt:
        if logger:
            logger.info("Operation cancelled by user")
        print("\nOperation cancelled.")
        return 130
    except Exception as e:
        if logger:
            logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"Error: {e}")
        return 1


def cmd_repair(config, root, check_only=False):
    """Repair every JPEG under ``root``."""
    from src.workflow import RepairOrchestrator, BatchRepairer

    logger.info(f"Starting XMP repair of {root} (check_only={check_only})")

    orchestrator = RepairOrchestrator.from_config(config, dry_run=check_only)
    repairer = BatchRepairer.from_config(config, orchestrator)

    report_file = config['workflow'].get('report_file')
    summary = repairer.run(root, report_file=Path(report_file) if report_file else None)

    # Print summary
    print(f"\nProcessing complete: {summary['total']} files")
    if check_only:
        print(f"  Repairable: {summary['repairable']}")
    else:
        print(f"  Repaired: {summary['repaired']}")
    print(f"  Already valid: {summary['already_valid']}")
    print(f"  No XMP: {summary['no_xmp']}")
    print(f"  Not an image: {summary['not_an_image']}")
    print(f"  Unrepairable: {summary['unrepairable']}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
