"""
Tests for the CSV export formatter
"""

import csv
import io

import pytest

from conftest import TZ, local
from visitlog.models.visit import GeneralVisit, TransporterVisit, VisitRecord, VisitStatus
from visitlog.utils.csv_exporter import (
    BOM,
    CSV_HEADERS,
    CSVExport,
    EmptyExportSet,
    VisitCSVExporter,
    derive_status,
)


def record(**overrides) -> VisitRecord:
    data = dict(
        _id="r1",
        visitor_id="12345678A",
        name="Jane Doe",
        company="Acme",
        person_to_visit="Marta Puig",
        department="Quality",
        visit_kind=GeneralVisit(),
        privacy_policy_accepted=True,
        entry_time=local(2024, 3, 15, 9, 5, 7),
        exit_time=None,
        auto_exit=False,
    )
    data.update(overrides)
    return VisitRecord(**data)


def parse(content: str):
    assert content.startswith(BOM)
    return list(csv.reader(io.StringIO(content[len(BOM):])))


@pytest.fixture
def exporter():
    return VisitCSVExporter(TZ)


def test_empty_export_signals_no_data(exporter):
    """Nothing to export is reported instead of an empty file"""
    assert isinstance(exporter.to_csv([]), EmptyExportSet)
    assert isinstance(exporter.build_export([], "registros.csv", ["a@b.com"]), EmptyExportSet)


def test_header_order_and_bom(exporter):
    content = exporter.to_csv([record()])

    assert content.startswith("\ufeffDNI,NOMBRE Y APELLIDOS,EMPRESA,")
    assert parse(content)[0] == CSV_HEADERS


def test_general_visit_has_empty_transporter_columns(exporter):
    rows = parse(exporter.to_csv([record()]))

    assert rows[1] == [
        "12345678A",
        "Jane Doe",
        "Acme",
        "Marta Puig",
        "",
        "",
        "",
        "15/03/2024, 09:05:07",
        "",
        "active",
    ]


def test_transporter_visit_fills_vehicle_columns(exporter):
    kind = TransporterVisit(
        haulier_company="Trans Ebre", license_plate="1234ABC", trailer_license_plate="R9876BCD"
    )
    rows = parse(exporter.to_csv([record(visit_kind=kind)]))

    assert rows[1][4:7] == ["1234ABC", "R9876BCD", "Trans Ebre"]


def test_transporter_without_trailer(exporter):
    kind = TransporterVisit(haulier_company="Trans Ebre", license_plate="1234ABC")
    rows = parse(exporter.to_csv([record(visit_kind=kind)]))

    assert rows[1][4:7] == ["1234ABC", "", "Trans Ebre"]


def test_every_data_field_is_quoted_and_quotes_doubled(exporter):
    content = exporter.to_csv([record(name='Jane "JJ" Doe', company="Acme, S.L.")])
    data_line = content.split("\n")[1]

    assert data_line.startswith('"12345678A","Jane ""JJ"" Doe","Acme, S.L.",')
    assert data_line.endswith('"active"')
    assert parse(content)[1][1:3] == ['Jane "JJ" Doe', "Acme, S.L."]


def test_rows_keep_given_order_without_trailing_newline(exporter):
    records = [record(_id="a", visitor_id="1A"), record(_id="b", visitor_id="2B")]
    content = exporter.to_csv(records)

    assert not content.endswith("\n")
    assert [row[0] for row in parse(content)[1:]] == ["1A", "2B"]


def test_times_are_rendered_in_export_time_zone(exporter):
    from datetime import timezone

    utc_entry = local(2024, 7, 1, 10, 0).astimezone(timezone.utc)
    rows = parse(exporter.to_csv([record(entry_time=utc_entry, exit_time=local(2024, 7, 1, 12, 30))]))

    assert rows[1][7] == "01/07/2024, 10:00:00"
    assert rows[1][8] == "01/07/2024, 12:30:00"
    assert rows[1][9] == "finished"


def test_custom_datetime_format():
    exporter = VisitCSVExporter(TZ, datetime_format="%Y-%m-%d %H:%M")
    rows = parse(exporter.to_csv([record()]))

    assert rows[1][7] == "2024-03-15 09:05"


@pytest.mark.parametrize(
    "exit_time, auto_exit, expected",
    [
        (None, False, VisitStatus.ACTIVE),
        (local(2024, 3, 15, 12, 0), False, VisitStatus.FINISHED),
        (local(2024, 3, 15, 23, 59), True, VisitStatus.AUTO_EXIT),
        (None, True, VisitStatus.AUTO_EXIT),
    ],
)
def test_status_derivation(exit_time, auto_exit, expected):
    assert derive_status(record(exit_time=exit_time, auto_exit=auto_exit)) == expected


def test_auto_exit_status_in_csv(exporter):
    rows = parse(exporter.to_csv([record(exit_time=local(2024, 3, 15, 23, 59), auto_exit=True)]))

    assert rows[1][9] == "auto-exit"


def test_build_export_passes_recipients_through(exporter):
    export = exporter.build_export([record()], "registros.csv", ["boss@example.com"])

    assert isinstance(export, CSVExport)
    assert export.filename == "registros.csv"
    assert export.recipients == ["boss@example.com"]
    assert export.row_count == 1
    assert export.content == exporter.to_csv([record()])
