# WORKFLOW: Streaming conversion of one registry XML file into a delimited CSV file.
# Used by: Directory conversion, conversion API endpoints, CLI
# Functions:
# 1. convert_file() - Convert one XML file, return the number of records written
# 2. sample_columns() - Infer a column set from a single record element
# 3. extract_row() - Pull one row of field values out of a record element
#
# Conversion flow: XML file -> iterparse -> Detect record type -> Resolve columns (schema or sample) -> Stream rows -> CSV
# Only one record element is held in memory at a time, regardless of file size.

"""
Streaming conversion of registry XML files into delimited CSV files.
"""

import codecs
import csv
import logging
import re
import threading
import time
from pathlib import Path
from typing import List, Optional, Union

from lxml import etree

from core.config import settings
from etl.errors import (
    ConversionCancelled,
    ConversionError,
    NoDataElementError,
    SourceNotFoundError,
)
from etl.schema_resolver import SchemaTable

logger = logging.getLogger(__name__)

_PROLOG_MARKUP = re.compile(rb"<\?.*?\?>|<!--.*?-->|<!(?!--)[^>]*>|<(?=[^?!])", re.DOTALL)
_CHUNK_SIZE = 64 * 1024


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _text_content(element: etree._Element) -> str:
    return "".join(element.itertext())


def _child_elements(element: etree._Element):
    return [child for child in element if isinstance(child.tag, str)]


def sample_columns(element: etree._Element) -> List[str]:
    """
    Infer a column set from one record element.

    Attributes come first in document order, followed by direct child elements
    that carry non-blank text.

    Args:
        element: A fully parsed record element

    Returns:
        Ordered list of column names
    """
    columns = [_local_name(name) for name in element.attrib]
    for child in _child_elements(element):
        if _text_content(child).strip():
            columns.append(_local_name(child.tag))
    return columns


def extract_row(element: etree._Element, columns: List[str]) -> List[str]:
    """
    Extract field values for ``columns`` from a record element.

    An attribute wins over a child element of the same name; a field with
    neither yields an empty string. Values are returned verbatim.
    """
    attributes = {_local_name(name): value for name, value in element.attrib.items()}
    children = {}
    for child in _child_elements(element):
        children.setdefault(_local_name(child.tag), child)

    row = []
    for column in columns:
        if column in attributes:
            row.append(attributes[column])
        elif column in children:
            row.append(_text_content(children[column]))
        else:
            row.append("")
    return row


def _has_content(path: Path) -> bool:
    """
    Whether the file holds anything besides whitespace, a leading BOM, the XML
    declaration, processing instructions, comments and a doctype.

    Stops at the first start tag, so only the prolog is read for normal files.
    """
    pending = b""
    with open(path, "rb") as f:
        if f.read(len(codecs.BOM_UTF8)) != codecs.BOM_UTF8:
            f.seek(0)
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            pending += chunk
            position = 0
            while True:
                start = pending.find(b"<", position)
                text = pending[position:] if start < 0 else pending[position:start]
                if text.strip():
                    return True
                if start < 0:
                    pending = b""
                    break
                match = _PROLOG_MARKUP.match(pending, start)
                if match is None:
                    # Unfinished construct, wait for the next chunk
                    pending = pending[start:]
                    break
                if match.group() == b"<":
                    return True
                position = match.end()
    # A construct still open at end of file is malformed content
    return bool(pending)


class _CsvSink:
    """CSV output opened lazily, once the header is known."""

    def __init__(self, path: Path):
        self.path = path
        self._handle = None
        self._writer = None

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    def open(self, header: List[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = open(self.path, "w", encoding=settings.csv_encoding, newline="")
        self._writer = csv.writer(
            self._handle,
            delimiter=settings.csv_delimiter,
            quotechar=settings.csv_quotechar,
            quoting=csv.QUOTE_MINIMAL,
            lineterminator=settings.csv_line_terminator,
        )
        self._writer.writerow(header)

    def write(self, row: List[str]) -> None:
        self._writer.writerow(row)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()


def _stream_records(
    source: Path,
    sink: _CsvSink,
    schema_table: Optional[SchemaTable],
    cancel_event: Optional[threading.Event],
) -> int:
    if not _has_content(source):
        raise NoDataElementError(f"No data elements found in {source}")

    context = etree.iterparse(
        str(source),
        events=("start", "end"),
        remove_blank_text=True,
        remove_comments=True,
        remove_pis=True,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
    )

    depth = -1
    record_type = None
    columns = None
    record_count = 0

    for event, element in context:
        if event == "start":
            depth += 1
            if cancel_event is not None and cancel_event.is_set():
                raise ConversionCancelled(f"Conversion of {source} cancelled")

            if depth == 1 and record_type is None:
                record_type = _local_name(element.tag)
                if schema_table is not None and record_type in schema_table:
                    columns = schema_table[record_type].column_names
                    logger.info(f"Using XSD schema for '{record_type}' with {len(columns)} columns")
                else:
                    logger.warning(f"Schema not found for '{record_type}', using dynamic detection")
            continue

        if depth == 1:
            if _local_name(element.tag) == record_type:
                if columns is None:
                    columns = sample_columns(element)
                    logger.info(f"Detected {len(columns)} columns dynamically")
                if not sink.is_open:
                    logger.debug(f"Columns: {', '.join(columns)}")
                    sink.open(columns)

                sink.write(extract_row(element, columns))
                record_count += 1

                if record_count % settings.progress_log_interval == 0:
                    logger.debug(f"Processed {record_count} records...")
            else:
                logger.debug(f"Skipping <{_local_name(element.tag)}> in {source.name}, expected <{record_type}>")

            # Drop the finished record and everything before it
            element.clear()
            while element.getprevious() is not None:
                del element.getparent()[0]

        depth -= 1

    if record_type is None:
        raise NoDataElementError(f"Could not determine record element for {source}")
    return record_count


def convert_file(
    xml_path: Union[str, Path],
    output_path: Union[str, Path],
    schema_table: Optional[SchemaTable] = None,
    cancel_event: Optional[threading.Event] = None,
) -> int:
    """
    Convert one XML file into a delimited CSV file.

    Args:
        xml_path: Source XML file
        output_path: Destination CSV file, parent directories are created
        schema_table: Resolved record layouts; sampling is used when absent
        cancel_event: Checked at every element, set it to abort the conversion

    Returns:
        Number of records written; 0 when the file holds no record element,
        in which case no output file is created

    Raises:
        SourceNotFoundError: If ``xml_path`` does not exist
        ConversionError: If parsing or writing fails mid-stream
        ConversionCancelled: If ``cancel_event`` is set
    """
    source = Path(xml_path)
    if not source.is_file():
        raise SourceNotFoundError(f"XML file not found: {source}", details={"xml_path": str(source)})

    logger.info(f"Converting {source} to {output_path}")
    start_time = time.monotonic()
    sink = _CsvSink(Path(output_path))

    try:
        record_count = _stream_records(source, sink, schema_table, cancel_event)
    except NoDataElementError as e:
        logger.warning(str(e))
        return 0
    except (etree.XMLSyntaxError, OSError) as e:
        logger.error(f"Error converting {source} to CSV: {e}")
        raise ConversionError(
            f"Failed to convert {source}: {e}",
            details={"xml_path": str(source), "csv_path": str(output_path)},
        ) from e
    finally:
        sink.close()

    duration = time.monotonic() - start_time
    logger.info(f"Converted {record_count} records from {source.name} in {duration:.2f}s")
    return record_count
