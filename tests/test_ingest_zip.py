# WORKFLOW: Tests for feed download and archive extraction.
# Test scenarios:
# 1. Extraction into a clean directory, missing archive
# 2. Download through a mocked transport, retry on 5xx, no retry on 4xx
# 3. Download-save-extract workflow success and failure results

import io
import zipfile

import httpx
import pytest

from etl.download import download_file
from etl.errors import DownloadError, SourceNotFoundError
from etl.ingest_zip import download_save_and_extract, extract_zip_file

FEED_URL = "https://feed.example/gar_delta_xml.zip"


def build_zip(members: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in members.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def mock_client(responses: list, calls: list) -> httpx.Client:
    """Client whose n-th request gets ``responses[n]`` (status, body)."""

    def handler(request: httpx.Request) -> httpx.Response:
        status_code, body = responses[min(len(calls), len(responses) - 1)]
        calls.append(request.url)
        return httpx.Response(status_code, content=body)

    return httpx.Client(transport=httpx.MockTransport(handler))


class TestExtractZipFile:
    """Archive extraction."""

    def test_extracts_xml_files(self, tmp_path, houses_xml):
        archive = tmp_path / "gar.zip"
        archive.write_bytes(build_zip({
            "AS_HOUSES.XML": houses_xml,
            "77/AS_HOUSES.XML": houses_xml,
            "version.txt": "2025.01.10",
        }))

        files = extract_zip_file(archive, tmp_path / "extract")

        assert [f.replace(str(tmp_path / "extract"), "") for f in files] == [
            "/77/AS_HOUSES.XML",
            "/AS_HOUSES.XML",
        ]
        assert (tmp_path / "extract" / "version.txt").exists()

    def test_destination_is_cleaned(self, tmp_path):
        archive = tmp_path / "gar.zip"
        archive.write_bytes(build_zip({"new.xml": "<R/>"}))
        stale = tmp_path / "extract" / "stale.xml"
        stale.parent.mkdir()
        stale.write_text("<OLD/>")

        extract_zip_file(archive, tmp_path / "extract")

        assert not stale.exists()
        assert (tmp_path / "extract" / "new.xml").exists()

    def test_missing_archive(self, tmp_path):
        with pytest.raises(SourceNotFoundError):
            extract_zip_file(tmp_path / "missing.zip", tmp_path / "extract")

    def test_corrupt_archive(self, tmp_path):
        archive = tmp_path / "gar.zip"
        archive.write_bytes(b"not a zip")

        with pytest.raises(zipfile.BadZipFile):
            extract_zip_file(archive, tmp_path / "extract")


class TestDownloadFile:
    """HTTP download with retries."""

    def test_writes_body(self, tmp_path):
        calls = []
        client = mock_client([(200, b"payload")], calls)

        written = download_file(FEED_URL, tmp_path / "dl" / "gar.zip", client=client, max_retries=0)

        assert written == 7
        assert (tmp_path / "dl" / "gar.zip").read_bytes() == b"payload"
        assert len(calls) == 1

    def test_retries_server_errors(self, tmp_path):
        calls = []
        client = mock_client([(503, b""), (502, b""), (200, b"ok")], calls)

        written = download_file(FEED_URL, tmp_path / "gar.zip", client=client, max_retries=3, retry_delay_ms=0)

        assert written == 2
        assert len(calls) == 3

    def test_gives_up_after_max_retries(self, tmp_path):
        calls = []
        client = mock_client([(500, b"")], calls)

        with pytest.raises(DownloadError):
            download_file(FEED_URL, tmp_path / "gar.zip", client=client, max_retries=2, retry_delay_ms=0)

        assert len(calls) == 3

    def test_client_errors_are_not_retried(self, tmp_path):
        calls = []
        client = mock_client([(404, b"")], calls)

        with pytest.raises(DownloadError):
            download_file(FEED_URL, tmp_path / "gar.zip", client=client, max_retries=5, retry_delay_ms=0)

        assert len(calls) == 1


class TestDownloadSaveAndExtract:
    """Complete download workflow."""

    def test_success(self, tmp_path, houses_xml):
        calls = []
        client = mock_client([(200, build_zip({"AS_HOUSES.XML": houses_xml}))], calls)

        result = download_save_and_extract(
            FEED_URL, tmp_path / "gar.zip", tmp_path / "extract", client=client
        )

        assert result.success is True
        assert result.file_size_bytes == (tmp_path / "gar.zip").stat().st_size
        assert (tmp_path / "extract" / "AS_HOUSES.XML").read_text(encoding="utf-8") == houses_xml

    def test_failure_is_reported(self, tmp_path):
        calls = []
        client = mock_client([(404, b"")], calls)

        result = download_save_and_extract(
            FEED_URL, tmp_path / "gar.zip", tmp_path / "extract", client=client
        )

        assert result.success is False
        assert "404" in result.error_message
        assert result.zip_path is None
