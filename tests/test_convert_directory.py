# WORKFLOW: Tests for recursive directory conversion.
# Test scenarios:
# 1. Mirrored output layout and per-file outcomes
# 2. Failure isolation (one malformed file never stops the batch)
# 3. Empty files counted as zero-record successes
# 4. Concurrent conversion gives the same results as sequential
# 5. Missing directory and cancellation

import codecs
import threading

import pytest

from etl.convert_directory import BatchSummary, ConversionOutcome, convert_directory
from etl.errors import ConversionCancelled, SourceDirectoryNotFoundError
from etl.schema_resolver import SchemaTable

HOUSE_TABLE = SchemaTable.from_columns({"HOUSE": ["HOUSEID", "HOUSENUM", "REGIONCODE"]})


class TestConvertDirectory:
    """Batch conversion of an extracted feed directory."""

    def test_one_good_one_malformed(self, tmp_path, write_file, houses_xml, houses_csv):
        write_file("xml/AS_HOUSES.xml", houses_xml)
        write_file("xml/AS_BROKEN.xml", "<HOUSES><HOUSE HOUSEID='1'></HOUSES>")

        summary = convert_directory(tmp_path / "xml", tmp_path / "csv", HOUSE_TABLE)

        assert summary.succeeded == 1
        assert summary.failed == 1
        assert summary.failed_files == ["AS_BROKEN.xml"]
        assert (tmp_path / "csv" / "AS_HOUSES.csv").read_bytes() == codecs.BOM_UTF8 + houses_csv.encode("utf-8")

    def test_subdirectories_are_mirrored(self, tmp_path, write_file, houses_xml, houses_csv):
        write_file("xml/77/AS_HOUSES.xml", houses_xml)
        write_file("xml/50/AS_HOUSES.xml", houses_xml)
        write_file("xml/readme.txt", "not converted")

        summary = convert_directory(tmp_path / "xml", tmp_path / "csv", HOUSE_TABLE)

        assert [outcome.record_count for outcome in summary.outcomes] == [2, 2]
        assert summary.outcomes[0].input_path.endswith("50/AS_HOUSES.xml")
        for region in ("50", "77"):
            output = tmp_path / "csv" / region / "AS_HOUSES.csv"
            assert output.read_bytes() == codecs.BOM_UTF8 + houses_csv.encode("utf-8")

    def test_empty_file_is_zero_record_success(self, tmp_path, write_file):
        write_file("xml/AS_EMPTY.xml", "")

        summary = convert_directory(tmp_path / "xml", tmp_path / "csv")

        outcome = summary.outcomes[0]
        assert outcome.success is True
        assert outcome.record_count == 0
        assert outcome.output_path is None
        assert summary.failed == 0

    def test_stale_output_is_not_reported(self, tmp_path, write_file):
        write_file("xml/AS_EMPTY.xml", '<?xml version="1.0"?><HOUSES/>')
        write_file("csv/AS_EMPTY.csv", "HOUSEID\r\n1\r\n")

        summary = convert_directory(tmp_path / "xml", tmp_path / "csv")

        outcome = summary.outcomes[0]
        assert outcome.success is True
        assert outcome.record_count == 0
        assert outcome.output_path is None

    def test_failed_outcome_carries_error(self, tmp_path, write_file):
        write_file("xml/bad.xml", "<ROOT><R></ROOT>")

        summary = convert_directory(tmp_path / "xml", tmp_path / "csv")

        outcome = summary.outcomes[0]
        assert outcome.success is False
        assert outcome.output_path is None
        assert outcome.error

    def test_concurrent_matches_sequential(self, tmp_path, write_file, houses_xml):
        for i in range(6):
            write_file(f"xml/part{i}/AS_HOUSES.xml", houses_xml)
        write_file("xml/part9/broken.xml", "<HOUSES><HOUSE>")

        sequential = convert_directory(tmp_path / "xml", tmp_path / "seq", HOUSE_TABLE, max_workers=1)
        concurrent = convert_directory(tmp_path / "xml", tmp_path / "par", HOUSE_TABLE, max_workers=3)

        assert [o.input_path for o in sequential.outcomes] == [o.input_path for o in concurrent.outcomes]
        assert sequential.succeeded == concurrent.succeeded == 6
        assert concurrent.failed_files == ["broken.xml"]
        for i in range(6):
            relative = f"part{i}/AS_HOUSES.csv"
            assert (tmp_path / "seq" / relative).read_bytes() == (tmp_path / "par" / relative).read_bytes()

    def test_empty_directory(self, tmp_path):
        (tmp_path / "xml").mkdir()

        summary = convert_directory(tmp_path / "xml", tmp_path / "csv")

        assert summary.outcomes == []
        assert (tmp_path / "csv").is_dir()

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(SourceDirectoryNotFoundError):
            convert_directory(tmp_path / "missing", tmp_path / "csv")

    def test_cancellation_is_not_recorded_as_failure(self, tmp_path, write_file, houses_xml):
        write_file("xml/AS_HOUSES.xml", houses_xml)
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(ConversionCancelled):
            convert_directory(tmp_path / "xml", tmp_path / "csv", HOUSE_TABLE, cancel_event=cancel_event)

    def test_cancellation_with_workers(self, tmp_path, write_file, houses_xml):
        for i in range(4):
            write_file(f"xml/{i}.xml", houses_xml)
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(ConversionCancelled):
            convert_directory(
                tmp_path / "xml", tmp_path / "csv", HOUSE_TABLE,
                cancel_event=cancel_event, max_workers=2,
            )


def test_batch_summary_tally():
    summary = BatchSummary(outcomes=[
        ConversionOutcome(input_path="/data/a.xml", output_path="/csv/a.csv", success=True, record_count=3),
        ConversionOutcome(input_path="/data/sub/b.xml", success=False, error="boom"),
    ])

    assert summary.succeeded == 1
    assert summary.failed == 1
    assert summary.failed_files == ["b.xml"]
    assert summary.model_dump()["failed_files"] == ["b.xml"]
