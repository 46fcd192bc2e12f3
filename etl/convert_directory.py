# WORKFLOW: Recursive batch conversion of an extracted feed directory.
# Used by: Conversion API endpoints, CLI, complete feed refresh
# Functions:
# 1. find_xml_files() - Recursively list XML files in a stable order
# 2. convert_directory() - Convert every XML file, mirroring the subdirectory layout
#
# Batch flow: XML directory -> Find files -> Convert each (isolated) -> Collect outcomes -> BatchSummary
# A failing file never stops the batch; only cancellation does.

"""
Recursive batch conversion of XML directories into CSV directories.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, computed_field

from core.config import settings
from etl.errors import ConversionCancelled, SourceDirectoryNotFoundError
from etl.schema_resolver import SchemaTable
from etl.xml_to_csv import convert_file

logger = logging.getLogger(__name__)


class ConversionOutcome(BaseModel):
    """Result of converting a single file."""
    model_config = ConfigDict(frozen=True)

    input_path: str
    output_path: Optional[str] = None
    success: bool
    record_count: Optional[int] = None
    error: Optional[str] = None


class BatchSummary(BaseModel):
    """Success/failure tally for a directory conversion."""
    model_config = ConfigDict(frozen=True)

    outcomes: List[ConversionOutcome] = []

    @computed_field
    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @computed_field
    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.success)

    @computed_field
    @property
    def failed_files(self) -> List[str]:
        return [Path(outcome.input_path).name for outcome in self.outcomes if not outcome.success]


def find_xml_files(xml_directory: Path) -> List[Path]:
    return sorted(
        path for path in xml_directory.rglob("*")
        if path.is_file() and path.suffix.lower() == ".xml"
    )


def _convert_one(
    xml_file: Path,
    xml_directory: Path,
    csv_directory: Path,
    schema_table: Optional[SchemaTable],
    cancel_event: Optional[threading.Event],
) -> ConversionOutcome:
    if cancel_event is not None and cancel_event.is_set():
        raise ConversionCancelled(f"Conversion of {xml_directory} cancelled")

    csv_file = csv_directory / xml_file.relative_to(xml_directory).with_suffix(".csv")

    try:
        record_count = convert_file(xml_file, csv_file, schema_table, cancel_event)
    except ConversionCancelled:
        raise
    except Exception as e:
        logger.error(f"Failed to convert {xml_file}: {e}")
        return ConversionOutcome(input_path=str(xml_file), success=False, error=str(e))

    return ConversionOutcome(
        input_path=str(xml_file),
        output_path=str(csv_file) if record_count else None,
        success=True,
        record_count=record_count,
    )


def convert_directory(
    xml_directory: Union[str, Path],
    csv_directory: Union[str, Path],
    schema_table: Optional[SchemaTable] = None,
    cancel_event: Optional[threading.Event] = None,
    max_workers: Optional[int] = None,
) -> BatchSummary:
    """
    Convert every XML file under a directory into CSV files.

    Args:
        xml_directory: Directory searched recursively for ``*.xml`` files
        csv_directory: Output root; subdirectories mirror the input layout
        schema_table: Resolved record layouts shared by all files
        cancel_event: Set to stop the batch, also checked inside each file
        max_workers: Concurrent conversions, defaults to ``settings.max_workers``

    Returns:
        BatchSummary with one outcome per file, in file order

    Raises:
        SourceDirectoryNotFoundError: If ``xml_directory`` does not exist
        ConversionCancelled: If ``cancel_event`` is set
    """
    xml_root = Path(xml_directory)
    csv_root = Path(csv_directory)
    if not xml_root.is_dir():
        raise SourceDirectoryNotFoundError(
            f"XML directory not found: {xml_root}",
            details={"xml_directory": str(xml_root)},
        )

    csv_root.mkdir(parents=True, exist_ok=True)
    xml_files = find_xml_files(xml_root)
    logger.info(f"Found {len(xml_files)} XML files to convert (recursive search)")

    workers = max(1, max_workers or settings.max_workers)
    if workers == 1:
        outcomes = [
            _convert_one(xml_file, xml_root, csv_root, schema_table, cancel_event)
            for xml_file in xml_files
        ]
    else:
        if cancel_event is None:
            cancel_event = threading.Event()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(_convert_one, xml_file, xml_root, csv_root, schema_table, cancel_event)
                for xml_file in xml_files
            ]
            try:
                outcomes = [future.result() for future in futures]
            except BaseException:
                # Stop the files still running before the executor joins them
                cancel_event.set()
                for future in futures:
                    future.cancel()
                raise

    summary = BatchSummary(outcomes=outcomes)
    logger.info(f"Conversion complete: {summary.succeeded} succeeded, {summary.failed} failed")
    if summary.failed:
        logger.warning(f"Failed files: {', '.join(summary.failed_files)}")
    return summary
