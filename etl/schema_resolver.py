# WORKFLOW: XSD schema resolution for record-type column layouts.
# Used by: XML to CSV converter, directory conversion, API startup and reload
# Functions:
# 1. resolve() - Build an immutable SchemaTable from a directory of XSD files
# 2. map_declared_type() - Map an XSD primitive type name to a DeclaredType
#
# Resolution flow: XSD directory -> Parse every *.xsd -> Merge definitions -> Extract columns -> SchemaTable
# The resulting table is built once per session and shared read-only by every conversion.

"""
XSD schema resolution for record-type column layouts.
"""

import logging
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from lxml import etree
from pydantic import BaseModel, ConfigDict

from etl.errors import SchemaFileWarning, SchemaLoadError

logger = logging.getLogger(__name__)

XS_NAMESPACE = "http://www.w3.org/2001/XMLSchema"

_INT_TYPES = {
    "int", "integer", "long", "short", "byte",
    "unsignedint", "unsignedlong", "unsignedshort", "unsignedbyte",
    "nonnegativeinteger", "nonpositiveinteger", "positiveinteger", "negativeinteger",
}
_DECIMAL_TYPES = {"decimal", "double", "float"}
_BOOL_TYPES = {"boolean", "bool"}
_DATETIME_TYPES = {"date", "datetime"}
_TIME_TYPES = {"time"}


class DeclaredType(str, Enum):
    STRING = "string"
    INT = "int"
    DECIMAL = "decimal"
    BOOL = "bool"
    DATETIME = "datetime"
    TIME = "time"


class ColumnDefinition(BaseModel):
    """One output column of a record type. ``declared_type`` is advisory only."""
    model_config = ConfigDict(frozen=True)

    name: str
    declared_type: DeclaredType = DeclaredType.STRING
    is_required: bool = False
    is_attribute: bool = False


class RecordTypeSchema(BaseModel):
    """Ordered column layout for one record-type name."""
    model_config = ConfigDict(frozen=True)

    name: str
    columns: Tuple[ColumnDefinition, ...]

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]


class SchemaTable(Mapping):
    """
    Read-only mapping from record-type name to RecordTypeSchema.

    Keys are exact, case-sensitive element names. Warnings for schema files that
    were skipped while the table was built are kept in ``warnings``.
    """

    def __init__(
        self,
        record_types: Optional[Mapping] = None,
        warnings: Iterable[SchemaFileWarning] = (),
    ):
        self._record_types = MappingProxyType(dict(record_types or {}))
        self._warnings = tuple(warnings)

    @classmethod
    def from_columns(cls, layouts: Dict[str, List[Union[str, ColumnDefinition]]]) -> "SchemaTable":
        """Build a table from plain column lists, e.g. ``{"HOUSE": ["HOUSEID", "HOUSENUM"]}``."""
        record_types = {}
        for name, columns in layouts.items():
            definitions = tuple(
                column if isinstance(column, ColumnDefinition) else ColumnDefinition(name=column)
                for column in columns
            )
            record_types[name] = RecordTypeSchema(name=name, columns=definitions)
        return cls(record_types)

    @property
    def warnings(self) -> Tuple[SchemaFileWarning, ...]:
        return self._warnings

    def __getitem__(self, name: str) -> RecordTypeSchema:
        return self._record_types[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._record_types)

    def __len__(self) -> int:
        return len(self._record_types)

    def __repr__(self) -> str:
        return f"SchemaTable({sorted(self._record_types)!r})"


def _xs(tag: str) -> str:
    return f"{{{XS_NAMESPACE}}}{tag}"


def _local_name(qualified: Optional[str]) -> str:
    """Strip a namespace prefix: ``xs:long`` -> ``long``."""
    if not qualified:
        return ""
    return qualified.rsplit(":", 1)[-1]


def map_declared_type(type_name: Optional[str]) -> DeclaredType:
    """
    Map an XSD type name to the advisory DeclaredType.

    Args:
        type_name: Local or prefixed type name, compared case-insensitively

    Returns:
        Matching DeclaredType, STRING for anything unrecognised
    """
    name = _local_name(type_name).lower()
    if name in _INT_TYPES:
        return DeclaredType.INT
    if name in _DECIMAL_TYPES:
        return DeclaredType.DECIMAL
    if name in _BOOL_TYPES:
        return DeclaredType.BOOL
    if name in _DATETIME_TYPES:
        return DeclaredType.DATETIME
    if name in _TIME_TYPES:
        return DeclaredType.TIME
    return DeclaredType.STRING


class _DefinitionSet:
    """Named definitions merged from every loaded schema document."""

    def __init__(self):
        self.elements: Dict[str, etree._Element] = {}
        self.complex_types: Dict[str, etree._Element] = {}
        self.simple_types: Dict[str, etree._Element] = {}

    def add(self, schema_root: etree._Element) -> None:
        for child in schema_root:
            name = child.get("name")
            if not name:
                continue
            if child.tag == _xs("element"):
                self.elements[name] = child
            elif child.tag == _xs("complexType"):
                self.complex_types[name] = child
            elif child.tag == _xs("simpleType"):
                self.simple_types[name] = child

    def complex_type_of(self, element: etree._Element) -> Optional[etree._Element]:
        inline = element.find(_xs("complexType"))
        if inline is not None:
            return inline
        return self.complex_types.get(_local_name(element.get("type")))

    def primitive_type_of(self, node: etree._Element) -> Optional[str]:
        """Resolve the type name of an attribute or simple element down to its base."""
        type_name = node.get("type")
        if type_name is None:
            restriction = node.find(f"{_xs('simpleType')}/{_xs('restriction')}")
            if restriction is None:
                return None
            type_name = restriction.get("base")

        seen = set()
        while _local_name(type_name) in self.simple_types and type_name not in seen:
            seen.add(type_name)
            restriction = self.simple_types[_local_name(type_name)].find(_xs("restriction"))
            if restriction is None or restriction.get("base") is None:
                break
            type_name = restriction.get("base")
        return type_name


def _extract_columns(complex_type: etree._Element, definitions: _DefinitionSet) -> List[ColumnDefinition]:
    columns = []

    for attribute in complex_type.findall(_xs("attribute")):
        name = attribute.get("name") or _local_name(attribute.get("ref"))
        if not name:
            continue
        columns.append(ColumnDefinition(
            name=name,
            declared_type=map_declared_type(definitions.primitive_type_of(attribute)),
            is_required=attribute.get("use") == "required",
            is_attribute=True,
        ))

    sequence = complex_type.find(_xs("sequence"))
    if sequence is not None:
        for child in sequence.findall(_xs("element")):
            name = child.get("name")
            type_source = child
            if not name:
                name = _local_name(child.get("ref"))
                type_source = definitions.elements.get(name, child)
            if not name:
                continue
            columns.append(ColumnDefinition(
                name=name,
                declared_type=map_declared_type(definitions.primitive_type_of(type_source)),
                is_required=int(child.get("minOccurs", "1").strip()) >= 1,
                is_attribute=False,
            ))

    return columns


def _nested_record_elements(complex_type: etree._Element) -> Iterator[etree._Element]:
    # Repeating record elements are declared inside the root element's sequence
    for element in complex_type.iter(_xs("element")):
        if element.get("name"):
            yield element


def _load_schema_file(path: Path) -> etree._Element:
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
    root = etree.parse(str(path), parser).getroot()
    if root.tag != _xs("schema"):
        raise ValueError(f"root element is {root.tag!r}, not an XML Schema")
    for element in root.iter(_xs("element")):
        min_occurs = element.get("minOccurs", "1").strip()
        if not (min_occurs.isascii() and min_occurs.isdigit()):
            name = element.get("name") or element.get("ref")
            raise ValueError(f"invalid minOccurs {min_occurs!r} on element {name!r}")
    return root


def _find_schema_files(directory: Path) -> List[Path]:
    return sorted(
        path for path in directory.rglob("*")
        if path.is_file() and path.suffix.lower() == ".xsd"
    )


def resolve(schema_directory: Union[str, Path]) -> SchemaTable:
    """
    Build the record-type schema table from every XSD file under a directory.

    Args:
        schema_directory: Directory searched recursively for ``*.xsd`` files

    Returns:
        Immutable SchemaTable; files that could not be loaded are skipped and
        reported in ``SchemaTable.warnings``

    Raises:
        SchemaLoadError: If the directory is missing or cannot be listed
    """
    directory = Path(schema_directory)
    if not directory.is_dir():
        raise SchemaLoadError(
            f"Schema directory not found: {directory}",
            details={"schema_directory": str(directory)},
        )

    try:
        schema_files = _find_schema_files(directory)
    except OSError as e:
        raise SchemaLoadError(f"Cannot read schema directory {directory}: {e}") from e

    logger.info(f"Loading {len(schema_files)} XSD schemas from {directory}")

    definitions = _DefinitionSet()
    skipped = []
    for path in schema_files:
        try:
            definitions.add(_load_schema_file(path))
        except (etree.XMLSyntaxError, OSError, ValueError) as e:
            warning = SchemaFileWarning(str(path), str(e))
            logger.warning(str(warning))
            skipped.append(warning)

    record_types: Dict[str, RecordTypeSchema] = {}
    nested: Dict[str, RecordTypeSchema] = {}

    for name, element in definitions.elements.items():
        complex_type = definitions.complex_type_of(element)
        if complex_type is None:
            continue

        columns = _extract_columns(complex_type, definitions)
        if columns:
            record_types[name] = RecordTypeSchema(name=name, columns=tuple(columns))
            logger.debug(f"Parsed schema for {name}: {len(columns)} columns")

        for child in _nested_record_elements(complex_type):
            child_type = definitions.complex_type_of(child)
            if child_type is None:
                continue
            child_columns = _extract_columns(child_type, definitions)
            if child_columns:
                child_name = child.get("name")
                nested[child_name] = RecordTypeSchema(name=child_name, columns=tuple(child_columns))
                logger.debug(f"Parsed nested schema for {child_name}: {len(child_columns)} columns")

    for name, record_type in nested.items():
        record_types.setdefault(name, record_type)

    logger.info(f"Resolved {len(record_types)} record types from {directory}")
    return SchemaTable(record_types, warnings=skipped)
