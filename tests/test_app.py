"""Tests for the HTTP endpoints."""
from __future__ import annotations

import io
import tempfile
from pathlib import Path

import pikepdf
import pytest
from conftest import make_pdf

from courtbundler.app import create_app, get_output_filename, strtobool

CSV = b"""filename,title,date,section,prefix,start_page,divider,pages
SECTION,Statements,,1,S,1,0,
first.pdf,First Statement,2024-01-02,0,,,,
second.pdf,Second Statement,,0,,,,
"""


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


def _upload(**fields):
    data = {
        "files": [(io.BytesIO(make_pdf(2, "first")), "first.pdf"), (io.BytesIO(make_pdf(1, "second")), "second.pdf")],
        "case_name": "Smith v Jones",
        "case_number": "AB12C345",
    }
    data.update(fields)
    return data


def test_strtobool() -> None:
    assert strtobool("Yes") and strtobool("1") and strtobool("true")
    assert not strtobool("no") and not strtobool("")


def test_output_filename_is_bounded() -> None:
    assert get_output_filename("case_bundle.pdf", "20240101_120000") == "case_bundle_20240101_120000.pdf"
    assert len(get_output_filename("x" * 200 + ".pdf", "20240101_120000")) <= 100


def test_create_and_download(client) -> None:
    response = client.post("/create_bundle", data=_upload(csv_index=(io.BytesIO(CSV), "index.csv")), content_type="multipart/form-data")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "success"
    assert body["total_pages"] == 4
    assert not body["is_split"]

    download = client.get("/download/bundle", query_string={"path": body["bundle_path"]})
    assert download.status_code == 200
    with pikepdf.Pdf.open(io.BytesIO(download.data)) as pdf:
        assert len(pdf.pages) == 4


def test_create_without_index_uses_upload_order(client) -> None:
    response = client.post("/create_bundle", data=_upload(), content_type="multipart/form-data")
    assert response.status_code == 200
    assert response.get_json()["total_pages"] == 4


def test_volume_cap_splits(client) -> None:
    response = client.post("/create_bundle", data=_upload(volume_cap="2"), content_type="multipart/form-data")
    body = response.get_json()
    assert body["is_split"]
    assert body["volumes"] == 2
    assert body["bundle_path"].endswith(".zip")


def test_missing_files(client) -> None:
    response = client.post("/create_bundle", data={"case_name": "X"}, content_type="multipart/form-data")
    assert response.status_code == 400


def test_bad_page_number_position(client) -> None:
    response = client.post("/create_bundle", data=_upload(page_num_position="middle"), content_type="multipart/form-data")
    assert response.status_code == 400


def test_unreadable_upload(client) -> None:
    data = _upload()
    data["files"] = [(io.BytesIO(b"this is not a pdf"), "broken.pdf")]
    response = client.post("/create_bundle", data=data, content_type="multipart/form-data")
    assert response.status_code == 422
    assert response.get_json()["status"] == "error"


def test_download_outside_bundle_dir(client, tmp_path: Path) -> None:
    stray = tmp_path / "stray.pdf"
    stray.write_bytes(make_pdf(1))
    assert client.get("/download/bundle", query_string={"path": str(stray)}).status_code == 404
    assert client.get("/download/bundle").status_code == 400


def test_index_matches_filenames_with_spaces(client) -> None:
    csv = b"filename,title,date\nWitness Statement.pdf,Statement of J Smith,\n"
    data = {
        "files": [(io.BytesIO(make_pdf(2, "witness")), "Witness Statement.pdf")],
        "csv_index": (io.BytesIO(csv), "index.csv"),
        "case_name": "Smith v Jones",
    }
    response = client.post("/create_bundle", data=data, content_type="multipart/form-data")
    assert response.status_code == 200
    assert response.get_json()["total_pages"] == 3


def test_negative_start_page_is_rejected(client) -> None:
    csv = b"""filename,title,date,section,prefix,start_page,divider,pages
SECTION,Statements,,1,S,-3,0,
first.pdf,First Statement,,0,,,,
"""
    response = client.post("/create_bundle", data=_upload(csv_index=(io.BytesIO(csv), "index.csv")), content_type="multipart/form-data")
    assert response.status_code == 422
    assert "cannot be negative" in response.get_json()["message"]
