"""
Visit CSV Exporter - spreadsheet export of visit records

The column order, header labels and quoting are relied on by existing
spreadsheets and must stay stable across versions.
"""

import csv
import io
import logging
from datetime import datetime, tzinfo
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from visitlog.models.visit import TransporterVisit, VisitRecord, VisitStatus
from visitlog.utils.timeutils import to_local

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "DNI",
    "NOMBRE Y APELLIDOS",
    "EMPRESA",
    "PERSONA A VISITAR",
    "MATRICULA",
    "REMOLQUE",
    "EMPRESA DE TRANSPORTE",
    "HORA ENTRADA",
    "HORA SALIDA",
    "ESTADO",
]

BOM = "\ufeff"

RANGE_EXPORT_FILENAME = "registros.csv"
ACTIVE_EXPORT_FILENAME = "registros_visitas_activas.csv"


class EmptyExportSet(BaseModel):
    """Nothing to export; callers must tell the user instead of writing a file"""
    message: str = "No data to export."


class CSVExport(BaseModel):
    """CSV payload ready for download or dispatch"""
    filename: str
    content: str
    recipients: List[str] = Field(default_factory=list)
    row_count: int = 0


def derive_status(record: VisitRecord) -> VisitStatus:
    """
    Status shown for a visit

    auto_exit wins over everything, then a set exit time means finished,
    otherwise the visit is active.
    """
    if record.auto_exit:
        return VisitStatus.AUTO_EXIT
    if record.exit_time is not None:
        return VisitStatus.FINISHED
    return VisitStatus.ACTIVE


class VisitCSVExporter:
    """Serializes visit records into the export CSV"""

    def __init__(self, tz: tzinfo, datetime_format: str = "%d/%m/%Y, %H:%M:%S"):
        """
        Initialize exporter

        Args:
            tz: Time zone used to render entry/exit times
            datetime_format: strftime format for entry/exit times
        """
        self.tz = tz
        self.datetime_format = datetime_format

    def _format_time(self, value: Optional[datetime]) -> str:
        if value is None:
            return ""
        return to_local(value, self.tz).strftime(self.datetime_format)

    def _row(self, record: VisitRecord) -> List[str]:
        kind = record.visit_kind
        if isinstance(kind, TransporterVisit):
            plate = kind.license_plate
            trailer = kind.trailer_license_plate or ""
            haulier = kind.haulier_company
        else:
            plate = trailer = haulier = ""

        return [
            record.visitor_id,
            record.name,
            record.company,
            record.person_to_visit,
            plate,
            trailer,
            haulier,
            self._format_time(record.entry_time),
            self._format_time(record.exit_time),
            derive_status(record).value,
        ]

    def to_csv(self, records: Sequence[VisitRecord]) -> Union[str, EmptyExportSet]:
        """
        Render records as CSV text

        Args:
            records: Visits in the order they should appear

        Returns:
            BOM-prefixed CSV text, or EmptyExportSet when records is empty
        """
        if not records:
            return EmptyExportSet()

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for record in records:
            writer.writerow(self._row(record))

        body = buffer.getvalue()[:-1]  # drop the final line terminator
        return BOM + ",".join(CSV_HEADERS) + "\n" + body

    def build_export(
        self,
        records: Sequence[VisitRecord],
        filename: str = RANGE_EXPORT_FILENAME,
        recipients: Optional[List[str]] = None,
    ) -> Union[CSVExport, EmptyExportSet]:
        """
        Render records and attach download/routing metadata

        Args:
            records: Visits to export
            filename: Download file name
            recipients: Passed through untouched for the report dispatcher

        Returns:
            CSVExport, or EmptyExportSet when records is empty
        """
        content = self.to_csv(records)
        if isinstance(content, EmptyExportSet):
            logger.info(f"Export {filename} skipped: no data")
            return content

        logger.info(f"Exported {len(records)} visit(s) to {filename}")
        return CSVExport(
            filename=filename,
            content=content,
            recipients=list(recipients or []),
            row_count=len(records),
        )
