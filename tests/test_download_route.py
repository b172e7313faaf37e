"""
Tests for api/routes/download.py

Verifies the CSV and Excel exports of the movement list: attribution rows,
column header, filter handling, ordering and the X-Total-Count header.
"""
import csv
import io
import sys
from pathlib import Path

import openpyxl
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi.testclient import TestClient

from api.app import create_app
from api.routes.download import _DOWNLOAD_COLUMNS, _export_sql


@pytest.fixture()
def client(db_path):
    return TestClient(create_app(db_path=db_path), raise_server_exceptions=False)


def _csv_parts(text):
    lines = text.splitlines()
    meta = [ln for ln in lines if ln.startswith("# ")]
    data = list(csv.DictReader(ln for ln in lines if not ln.startswith("# ")))
    return meta, data


class TestCsv:
    def test_headers(self, client):
        resp = client.get("/api/v1/download", params={"fmt": "csv"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert "movimentos.csv" in resp.headers["content-disposition"]
        assert resp.headers["x-total-count"] == "7"

    def test_metadata_rows(self, client):
        meta, _ = _csv_parts(client.get("/api/v1/download").text)
        assert meta[0] == "# Source: RKC Financeiro"
        assert meta[1].startswith("# Export Date: ")
        assert meta[2] == "# Filters: none"
        assert meta[4] == "# Total Records: 7"

    def test_rows_newest_first(self, client):
        _, data = _csv_parts(client.get("/api/v1/download").text)
        assert list(data[0]) == _DOWNLOAD_COLUMNS
        assert [r["id"] for r in data] == ["m-4", "m-3", "m-5", "m-2", "m-1", "m-6", "m-7"]
        assert data[0]["projeto_nome"] == "Orquestra"

    def test_filters_applied(self, client):
        resp = client.get("/api/v1/download",
                          params={"projeto": "p-orq", "mes": "2025-02", "q": " cachê "})
        meta, data = _csv_parts(resp.text)
        assert [r["id"] for r in data] == ["m-3"]
        assert meta[2] == "# Filters: projeto=p-orq; mes=2025-02; q=cachê"
        assert resp.headers["x-total-count"] == "1"

    def test_invalid_month(self, client):
        assert client.get("/api/v1/download", params={"mes": "fev"}).status_code == 400

    def test_bad_format(self, client):
        assert client.get("/api/v1/download", params={"fmt": "pdf"}).status_code == 422


class TestXlsx:
    def test_workbook_sheets(self, client):
        resp = client.get("/api/v1/download", params={"fmt": "xlsx", "tipo": "ENTRADA"})
        assert resp.status_code == 200
        assert "movimentos.xlsx" in resp.headers["content-disposition"]
        assert resp.headers["x-total-count"] == "2"
        wb = openpyxl.load_workbook(io.BytesIO(resp.content))
        assert wb.sheetnames == ["Metadata", "Movimentos"]
        meta = {row[0]: row[1] for row in wb["Metadata"].iter_rows(values_only=True)}
        assert meta["Source"] == "RKC Financeiro"
        assert meta["Filters"] == "tipo=ENTRADA"
        assert meta["Total Records"] == 2
        rows = list(wb["Movimentos"].iter_rows(values_only=True))
        assert list(rows[0]) == _DOWNLOAD_COLUMNS
        assert [r[0] for r in rows[1:]] == ["m-1", "m-7"]


def test_export_sql_wraps_list_query():
    sql, params = _export_sql("p-orq", None, None, None, 10)
    assert sql.startswith("SELECT id, data_movimento, tipo")
    assert "ORDER BY data_movimento DESC, created_at DESC" in sql
    assert "p-orq" in params
    assert sql.count("LIMIT 10") == 1


def test_missing_database_is_service_unavailable(tmp_path):
    c = TestClient(create_app(db_path=tmp_path / "absent.sqlite"),
                   raise_server_exceptions=False)
    resp = c.get("/api/v1/download")
    assert resp.status_code == 503
    assert resp.json()["status_code"] == 503
