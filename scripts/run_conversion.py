# WORKFLOW: Command-line runner for the complete GAR feed refresh.
# Used by: Cron jobs, manual runs, local development
# Steps:
# 1. download (optional) - Download and extract the configured archive
# 2. resolve schemas - Build the XSD schema table
# 3. convert - Convert the extracted XML directory into CSV files
# 4. report - Print the batch summary, exit non-zero if any file failed
#
# Run flow: [Download -> Extract] -> Resolve XSD -> Convert directory -> Summary

"""
Command-line runner for GAR feed download and XML to CSV conversion.
"""

import argparse
import logging
import sys
import threading
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.config import settings  # noqa: E402
from core.logging_config import configure_logging  # noqa: E402
from etl.convert_directory import convert_directory  # noqa: E402
from etl.errors import ConversionCancelled, SchemaLoadError, SourceDirectoryNotFoundError  # noqa: E402
from etl.ingest_zip import download_save_and_extract  # noqa: E402
from etl.schema_resolver import SchemaTable, resolve  # noqa: E402

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Download the GAR feed and convert its XML files to CSV')
    parser.add_argument('--download', action='store_true', help='Download and extract the archive first')
    parser.add_argument('--url', default=settings.fias_url, help='Archive URL')
    parser.add_argument('--xml-dir', default=settings.extract_path, help='Directory with extracted XML files')
    parser.add_argument('--csv-dir', default=settings.csv_path, help='Output directory for CSV files')
    parser.add_argument('--schema-dir', default=settings.schema_path, help='Directory with XSD schemas')
    parser.add_argument('--workers', type=int, default=settings.max_workers, help='Files converted concurrently')
    parser.add_argument('--log-level', default=settings.log_level, help='Logging level')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.download:
        zip_path = Path(settings.download_path) / settings.archive_name
        result = download_save_and_extract(args.url, zip_path, args.xml_dir)
        if not result.success:
            logger.error(f"Download failed: {result.error_message}")
            return 1

    try:
        schema_table = resolve(args.schema_dir)
    except SchemaLoadError as e:
        logger.warning(f"{e}; columns will be sampled from the data")
        schema_table = SchemaTable()

    cancel_event = threading.Event()
    try:
        summary = convert_directory(
            args.xml_dir, args.csv_dir, schema_table,
            cancel_event=cancel_event, max_workers=args.workers,
        )
    except SourceDirectoryNotFoundError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        cancel_event.set()
        logger.warning("Conversion interrupted")
        return 130
    except ConversionCancelled:
        logger.warning("Conversion cancelled")
        return 130

    print(f"Converted: {summary.succeeded}, failed: {summary.failed}")
    for name in summary.failed_files:
        print(f"  FAILED {name}")
    return 1 if summary.failed else 0


if __name__ == '__main__':
    sys.exit(main())
