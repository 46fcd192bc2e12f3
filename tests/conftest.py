# WORKFLOW: Shared fixtures for the GAR feed ETL test suite.
# Used by: All test modules
# Fixtures:
# 1. houses_xsd / houses_xml - A registry-shaped schema and data file
# 2. write_file - Write text files under tmp_path, creating parent directories

from pathlib import Path

import pytest

HOUSES_XSD = """<?xml version="1.0" encoding="utf-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema" elementFormDefault="qualified">
  <xs:element name="HOUSES">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="HOUSE" maxOccurs="unbounded">
          <xs:complexType>
            <xs:sequence>
              <xs:element name="REGIONCODE" type="xs:string" minOccurs="0"/>
            </xs:sequence>
            <xs:attribute name="HOUSEID" use="required">
              <xs:simpleType>
                <xs:restriction base="xs:long"/>
              </xs:simpleType>
            </xs:attribute>
            <xs:attribute name="HOUSENUM" type="xs:string" use="optional"/>
          </xs:complexType>
        </xs:element>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""

HOUSES_XML = """<?xml version="1.0" encoding="utf-8"?>
<HOUSES>
  <HOUSE HOUSEID="1" HOUSENUM="5"><REGIONCODE>77</REGIONCODE></HOUSE>
  <HOUSE HOUSEID="2" HOUSENUM="6A" />
</HOUSES>
"""

HOUSES_CSV = "HOUSEID;HOUSENUM;REGIONCODE\r\n1;5;77\r\n2;6A;\r\n"


@pytest.fixture
def houses_xsd() -> str:
    return HOUSES_XSD


@pytest.fixture
def houses_xml() -> str:
    return HOUSES_XML


@pytest.fixture
def houses_csv() -> str:
    return HOUSES_CSV


@pytest.fixture
def write_file(tmp_path):
    """Return a helper that writes ``content`` to ``tmp_path / relative``."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
