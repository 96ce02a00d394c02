"""
Unit tests for extract-stage readers.
"""

import asyncio
import json

import httpx
import openpyxl
import pytest

from etlflow.core.exceptions import ExtractError
from etlflow.pipeline.readers import (
    APIReader,
    CSVReader,
    ExcelReader,
    FixtureGenerator,
    JSONReader,
)


def source(type_, location, **extra):
    return {"type": type_, "location": str(location), "mapping": {"id": {"sourceField": "ID"}}, **extra}


class TestJSONReader:
    def test_reads_array(self, definition_factory, write_json):
        path = write_json([{"ID": 1}, {"ID": 2}])
        records = asyncio.run(JSONReader().read(definition_factory(source=source("json", path))))
        assert records == [{"ID": 1}, {"ID": 2}]

    def test_singleton_object_becomes_list(self, definition_factory, write_json):
        path = write_json({"ID": 1})
        records = asyncio.run(JSONReader().read(definition_factory(source=source("json", path))))
        assert records == [{"ID": 1}]

    def test_non_object_items_rejected(self, definition_factory, write_json):
        path = write_json([{"ID": 1}, 5])
        with pytest.raises(ExtractError, match="expected an object"):
            asyncio.run(JSONReader().read(definition_factory(source=source("json", path))))

    def test_invalid_json(self, definition_factory, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ExtractError, match="Failed to read JSON file"):
            asyncio.run(JSONReader().read(definition_factory(source=source("json", path))))


class TestCSVReader:
    def test_reads_rows_in_order(self, definition_factory, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("ID,Amt\nA1,10\nA2,20\n", encoding="utf-8")

        records = asyncio.run(CSVReader().read(definition_factory(source=source("csv", path))))
        assert records == [{"ID": "A1", "Amt": "10"}, {"ID": "A2", "Amt": "20"}]

    def test_custom_delimiter_and_bom(self, definition_factory, tmp_path):
        path = tmp_path / "data.csv"
        path.write_bytes("﻿ID;Amt\nA1;10\n".encode("utf-8"))

        definition = definition_factory(source=source("csv", path, options={"delimiter": ";"}))
        records = asyncio.run(CSVReader().read(definition))
        assert records == [{"ID": "A1", "Amt": "10"}]


class TestExcelReader:
    @pytest.fixture
    def workbook_path(self, tmp_path):
        path = tmp_path / "budget.xlsx"
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.title = "Summary"
        sheet.append(["SVP ID", "Allocated Budget", "Notes"])
        sheet.append(["SVP001", 5000000, None])
        sheet.append(["SVP002", 3000000, "review"])
        detail = workbook.create_sheet("Detail")
        detail.append(["Line"])
        detail.append(["L1"])
        workbook.save(path)
        return path

    def test_reads_first_sheet(self, definition_factory, workbook_path):
        records = asyncio.run(ExcelReader().read(definition_factory(source=source("excel", workbook_path))))
        assert records == [
            {"SVP ID": "SVP001", "Allocated Budget": 5000000},
            {"SVP ID": "SVP002", "Allocated Budget": 3000000, "Notes": "review"},
        ]

    def test_reads_named_sheet(self, definition_factory, workbook_path):
        definition = definition_factory(source=source("excel", workbook_path, options={"sheet": "Detail"}))
        assert asyncio.run(ExcelReader().read(definition)) == [{"Line": "L1"}]

    def test_unknown_sheet(self, definition_factory, workbook_path):
        definition = definition_factory(source=source("excel", workbook_path, options={"sheet": "Nope"}))
        with pytest.raises(ExtractError, match="Sheet 'Nope' not found"):
            asyncio.run(ExcelReader().read(definition))

    def test_corrupt_file(self, definition_factory, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"not a zip archive")
        with pytest.raises(ExtractError):
            asyncio.run(ExcelReader().read(definition_factory(source=source("excel", path))))


class TestFixtureFallback:
    def test_missing_file_uses_fixtures(self, definition_factory, tmp_path):
        definition = definition_factory(name="budget_test", source=source("excel", tmp_path / "missing.xlsx"))
        records = asyncio.run(ExcelReader().read(definition))

        assert len(records) == 3
        assert records[0]["SVP ID"] == "SVP001"

    def test_unknown_pipeline_gets_no_fixtures(self, definition_factory, tmp_path):
        definition = definition_factory(name="other", source=source("csv", tmp_path / "missing.csv"))
        assert asyncio.run(CSVReader().read(definition)) == []

    def test_custom_fixtures(self):
        generator = FixtureGenerator({"orders": lambda: [{"ID": "O1"}]})
        assert generator.for_pipeline("daily_orders") == [{"ID": "O1"}]
        assert generator.for_pipeline("budget_etl") == []

    @pytest.mark.parametrize("name,key", [
        ("project_etl", "Project ID"),
        ("compliance_etl", "Regulation ID"),
    ])
    def test_default_fixture_sets(self, name, key):
        records = FixtureGenerator().for_pipeline(name)
        assert records
        assert all(key in record for record in records)


class TestAPIReader:
    URL = "https://api.example.com/records"

    def read(self, definition, handler):
        async def _read():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await APIReader(client=client).read(definition)
        return asyncio.run(_read())

    def test_fetches_array_with_headers(self, definition_factory):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return httpx.Response(200, json=[{"ID": 1}, {"ID": 2}])

        definition = definition_factory(source=source(
            "api", self.URL, headers={"Accept": "application/json"}, credentials={"Authorization": "Bearer t"},
        ))
        assert self.read(definition, handler) == [{"ID": 1}, {"ID": 2}]
        assert seen["headers"]["authorization"] == "Bearer t"
        assert seen["headers"]["accept"] == "application/json"

    def test_singleton_response(self, definition_factory):
        definition = definition_factory(source=source("api", self.URL))
        assert self.read(definition, lambda r: httpx.Response(200, json={"ID": 1})) == [{"ID": 1}]

    def test_error_status_is_fatal(self, definition_factory):
        definition = definition_factory(source=source("api", self.URL))
        with pytest.raises(ExtractError, match="Failed to fetch"):
            self.read(definition, lambda r: httpx.Response(503))

    def test_non_json_response(self, definition_factory):
        definition = definition_factory(source=source("api", self.URL))
        with pytest.raises(ExtractError, match="not valid JSON"):
            self.read(definition, lambda r: httpx.Response(200, text="<html>"))

    def test_transport_error(self, definition_factory):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        definition = definition_factory(source=source("api", self.URL))
        with pytest.raises(ExtractError):
            self.read(definition, handler)
