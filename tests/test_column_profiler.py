"""Tests for column profiling from rows and Excel worksheets."""

from datetime import date, datetime

import openpyxl
import pytest

from schemamapper.core.column_profiler import (
    infer_storage_type,
    profile_column,
    profile_rows,
    profile_workbook,
)


class TestInferStorageType:
    """Test storage type inference."""

    @pytest.mark.parametrize("values,expected", [
        ([1, 2, 3], "INTEGER"),
        ([1.5, 2], "DOUBLE"),
        ([3.0, 4.0], "INTEGER"),
        (["10", "20"], "INTEGER"),
        (["1.5", "2"], "DOUBLE"),
        ([True, False], "BOOLEAN"),
        (["yes", "No"], "BOOLEAN"),
        ([date(2024, 1, 1)], "DATE"),
        ([datetime(2024, 1, 1)], "DATE"),
        ([datetime(2024, 1, 1, 12, 30)], "TIMESTAMP"),
        ([datetime(2024, 1, 1), datetime(2024, 1, 2, 8)], "TIMESTAMP"),
        (["Alice", "Bob"], "VARCHAR"),
        (["Alice", 3], "VARCHAR"),
        ([], "VARCHAR"),
        ([None, "  "], "VARCHAR"),
        (["NaN"], "VARCHAR"),
        (["Infinity", "-inf"], "VARCHAR"),
        (["1_000"], "VARCHAR"),
        (["1e400"], "VARCHAR"),
        (["1e3"], "DOUBLE"),
    ])
    def test_inference(self, values, expected):
        assert infer_storage_type(values) == expected

    def test_blank_values_ignored(self):
        assert infer_storage_type([1, None, "", 2]) == "INTEGER"


class TestProfileColumn:
    """Test single column snapshots."""

    def test_nullable_and_samples(self):
        column = profile_column("city", ["Paris", None, "Lyon", "Paris"])
        assert column.storage_type == "VARCHAR"
        assert column.nullable is True
        assert column.sample_values == ("Paris", "Lyon")
        assert column.unique_count == 2

    def test_sample_size_bound(self):
        column = profile_column("n", list(range(50)), sample_size=5)
        assert column.sample_values == ("0", "1", "2", "3", "4")
        assert column.unique_count == 50
        assert column.nullable is False

    def test_dates_sampled_as_iso(self):
        column = profile_column("born", [date(1990, 5, 17)])
        assert column.sample_values == ("1990-05-17",)


class TestProfileRows:
    """Test header + rows profiling."""

    def test_profile_rows(self):
        columns = profile_rows(
            ["name", "population", None, " founded "],
            [
                ["Paris", 2100000, "x", date(1200, 1, 1)],
                ["Lyon", 520000],
            ],
        )
        assert [c.name for c in columns] == ["name", "population", "founded"]
        assert columns[1].storage_type == "INTEGER"
        assert columns[2].nullable is True


class TestProfileWorkbook:
    """Test openpyxl worksheet profiling."""

    def _write_workbook(self, path):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Cities"
        ws.append(["name", "population", "founded"])
        ws.append(["Paris", 2100000, datetime(1998, 7, 12)])
        ws.append(["Lyon", 520000, None])
        ws.append([None, None, None])
        other = wb.create_sheet("Notes")
        other.append(["note"])
        other.append(["hello"])
        wb.save(path)

    def test_active_sheet(self, tmp_path):
        path = tmp_path / "cities.xlsx"
        self._write_workbook(path)
        columns = {c.name: c for c in profile_workbook(path)}
        assert columns["name"].storage_type == "VARCHAR"
        assert columns["name"].nullable is False
        assert columns["population"].storage_type == "INTEGER"
        assert columns["founded"].storage_type == "DATE"
        assert columns["founded"].nullable is True

    def test_named_sheet(self, tmp_path):
        path = tmp_path / "cities.xlsx"
        self._write_workbook(path)
        columns = profile_workbook(path, sheet_name="Notes")
        assert [c.name for c in columns] == ["note"]

    def test_missing_sheet(self, tmp_path):
        path = tmp_path / "cities.xlsx"
        self._write_workbook(path)
        with pytest.raises(ValueError, match="not found"):
            profile_workbook(path, sheet_name="Missing")
