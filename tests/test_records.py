"""Tests for reading incident records from CSV."""

import pytest

from registrar.models.errors import ConfigurationError
from registrar.records import CsvRecordSource, deduplicate_records, merge_columns, unique_headers

pytestmark = pytest.mark.unit


def test_unique_headers_numbers_repeats() -> None:
    assert unique_headers([" Titulo", "Evidencias", "Evidencias ", "Evidencias"]) == [
        "Titulo",
        "Evidencias",
        "Evidencias 2",
        "Evidencias 3",
    ]


def test_merge_columns_joins_non_blank_values() -> None:
    record = {"Evidencias": "a.png", "Evidencias 2": " ", "Evidencias 3": "c.png", "Titulo": "x"}

    merge_columns(record, "Evidencias")

    assert record == {"Evidencias": "a.png\nc.png", "Titulo": "x"}


def test_deduplicate_keeps_first_occurrence() -> None:
    records = [
        {"Titulo": "Disk full", "n": "1"},
        {"Titulo": " DISK FULL", "n": "2"},
        {"Titulo": "CPU alta", "n": "3"},
    ]

    unique = deduplicate_records(records, "Titulo")

    assert [record["n"] for record in unique] == ["1", "3"]


def test_read_csv(csv_file) -> None:
    path = csv_file(
        "\ufeffTitulo,Prioridad,Evidencias,Evidencias\n"
        "Disk full, Alta ,a.png,b.png\n"
        ",,,\n"
        "CPU alta,Baja\n",
    )

    records = CsvRecordSource(path, evidence_columns=["Evidencias"]).read()

    assert records == [
        {"Titulo": "Disk full", "Prioridad": "Alta", "Evidencias": "a.png\nb.png"},
        {"Titulo": "CPU alta", "Prioridad": "Baja", "Evidencias": ""},
    ]


def test_source_is_iterable(csv_file) -> None:
    path = csv_file("Titulo\nUno\nDos\n")
    assert [record["Titulo"] for record in CsvRecordSource(path)] == ["Uno", "Dos"]


def test_quoted_multiline_values(csv_file) -> None:
    path = csv_file('Titulo,Descripción\nDisk full,"línea 1\nlínea 2"\n')
    assert CsvRecordSource(path).read()[0]["Descripción"] == "línea 1\nlínea 2"


def test_missing_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        CsvRecordSource(tmp_path / "nope.csv").read()


def test_empty_file(csv_file) -> None:
    with pytest.raises(ConfigurationError, match="no header row"):
        CsvRecordSource(csv_file("")).read()
