"""
Extension tests: zip code download, COPY and function creation.
"""
import sys
import os
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from scripts.form5500 import extensions
from scripts.form5500.extensions import call_extension, download_zip_code_csv, read_sql

ZIP_CSV = "zip,city,state,latitude,longitude,timezone,dst\n00501,Holtsville,NY,40.81,-73.04,-5,1\n"
URL = "https://example.com/data/zipcode.csv"


class FakeStream:
    def __init__(self, body):
        self.body = body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        pass

    def iter_content(self, chunk_size):
        yield self.body


@pytest.fixture
def downloads(monkeypatch):
    calls = []

    def fake_get(url, **kwargs):
        calls.append(url)
        return FakeStream(ZIP_CSV.encode())

    monkeypatch.setattr(extensions.requests, "get", fake_get)
    monkeypatch.setattr(extensions.config, "ZIP_CODES_URL", URL)
    return calls


class TestSqlFiles:

    def test_create_table(self):
        assert "CREATE TABLE zip_codes" in read_sql("zip_codes/create_table.sql")

    def test_search_function(self):
        assert "FUNCTION zip_codes_within_radius" in read_sql("zip_codes/create_search_function.sql")


class TestDownload:

    def test_downloads_to_dir(self, downloads, tmp_path):
        path = download_zip_code_csv(str(tmp_path))
        assert path == (tmp_path / "zipcode.csv").resolve()
        assert path.read_text() == ZIP_CSV
        assert downloads == [URL]

    def test_reuses_existing_file(self, downloads, tmp_path):
        (tmp_path / "zipcode.csv").write_text("cached")
        path = download_zip_code_csv(str(tmp_path))
        assert path.read_text() == "cached"
        assert downloads == []

    def test_force_download(self, downloads, tmp_path):
        (tmp_path / "zipcode.csv").write_text("cached")
        download_zip_code_csv(str(tmp_path), force=True)
        assert downloads == [URL]


class TestCallExtension:

    def test_zip_codes(self, downloads, fake_conn, tmp_path):
        call_extension(fake_conn, "zip_codes", download_dir=str(tmp_path))
        assert "CREATE TABLE zip_codes" in fake_conn.statements[0]
        assert "zip_codes_within_radius" in fake_conn.statements[1]
        copy_sql, data = fake_conn.copied[0]
        assert copy_sql.startswith("COPY zip_codes FROM STDIN")
        assert data == ZIP_CSV
        assert fake_conn.commits == 1
        assert fake_conn.rollbacks == 0

    def test_invalid_extension(self, fake_conn):
        with pytest.raises(ValueError, match="Invalid extension"):
            call_extension(fake_conn, "area_codes")
        assert fake_conn.executed == []

    def test_failed_copy_rolls_back_whole_reload(self, downloads, make_conn, tmp_path):
        conn = make_conn(fail_on="COPY zip_codes")
        with pytest.raises(RuntimeError):
            call_extension(conn, "zip_codes", download_dir=str(tmp_path))
        # drop/create ran on the same transaction, then everything was undone
        assert "CREATE TABLE zip_codes" in conn.statements[0]
        assert not any("zip_codes_within_radius" in s for s in conn.statements)
        assert conn.commits == 0
        assert conn.rollbacks == 1
        assert conn.cursors[0].closed


class BrokenStream(FakeStream):
    def iter_content(self, chunk_size):
        yield self.body[:10]
        raise extensions.requests.ConnectionError("connection reset")


class TestInterruptedDownload:

    def test_partial_file_removed(self, monkeypatch, tmp_path):
        monkeypatch.setattr(extensions.requests, "get",
                            lambda url, **kwargs: BrokenStream(ZIP_CSV.encode()))
        monkeypatch.setattr(extensions.config, "ZIP_CODES_URL", URL)
        with pytest.raises(extensions.requests.ConnectionError):
            download_zip_code_csv(str(tmp_path))
        assert not (tmp_path / "zipcode.csv.part").exists()
        assert not (tmp_path / "zipcode.csv").exists()
