from __future__ import annotations

import csv
import io
from datetime import datetime
from decimal import Decimal
from typing import Any, Sequence

import pandas as pd

from ..core.enums import ExportFormat
from .model import MonthlyReport, PayrollExport, PayrollRow, RenderedDocument, SessionSheet

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MIMETYPE = "text/csv"

COLUMNS = [
    "Matricule",
    "Nom",
    "Prénom",
    "Grade",
    "Centre",
    "Code Centre",
    "Date formation",
    "Type formation",
    "Heures",
    "Taux horaire",
    "Montant",
    "Formateur",
    "Code TTA",
]


def _cells(row: PayrollRow) -> list:
    return [
        row.registration_number,
        row.last_name,
        row.first_name,
        row.grade,
        row.center_name,
        row.center_code,
        row.session_date.strftime("%d/%m/%Y"),
        row.training_label,
        float(row.hours),
        float(row.hourly_rate),
        float(row.amount),
        row.instructor_name,
        row.payroll_code,
    ]


class PayrollRenderer:
    """Turns payroll exports and FMPA reports into downloadable sheets."""

    def render(self, export: PayrollExport, fmt: ExportFormat = ExportFormat.XLSX) -> RenderedDocument:
        filename = f"export_tta_{export.start.strftime('%Y%m%d')}_{export.end.strftime('%Y%m%d')}.{fmt.value}"
        if fmt == ExportFormat.CSV:
            return RenderedDocument(filename=filename, mimetype=CSV_MIMETYPE, content=self._csv(export))
        return RenderedDocument(filename=filename, mimetype=XLSX_MIMETYPE, content=self._xlsx(export))

    def _xlsx(self, export: PayrollExport) -> bytes:
        df = pd.DataFrame([_cells(r) for r in export.rows], columns=COLUMNS)
        total = {c: "" for c in COLUMNS}
        total["Taux horaire"] = "TOTAL"
        total["Montant"] = float(export.total_amount)
        df = pd.concat([df, pd.DataFrame([total])], ignore_index=True)

        # In-memory workbook, nothing written to disk.
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Export TTA")
        return output.getvalue()

    def _csv(self, export: PayrollExport) -> bytes:
        out = io.StringIO()
        writer = csv.writer(out, delimiter=";")
        writer.writerow(COLUMNS)
        for r in export.rows:
            writer.writerow(
                [
                    r.registration_number,
                    r.last_name,
                    r.first_name,
                    r.grade,
                    r.center_name,
                    r.center_code,
                    r.session_date.strftime("%d/%m/%Y"),
                    r.training_label,
                    str(r.hours),
                    str(r.hourly_rate),
                    str(r.amount),
                    r.instructor_name,
                    r.payroll_code,
                ]
            )
        writer.writerow(["", "", "", "", "", "", "", "", "", "TOTAL", str(export.total_amount), "", ""])
        return out.getvalue().encode("utf-8-sig")

    # -- session sheet and monthly report --

    def render_session_sheet(self, sheet: SessionSheet, fmt: ExportFormat = ExportFormat.XLSX) -> RenderedDocument:
        s = sheet.session
        sections = [
            (
                "Session",
                ["Code TTA", "Type formation", "Date début", "Date fin", "Durée (heures)", "Lieu", "Centre organisateur", "Statut"],
                [
                    [
                        s.payroll_code or f"FMPA_{s.session_id}",
                        sheet.training_label,
                        _when(s.start_at),
                        _when(s.end_at),
                        s.length_hours,
                        s.location,
                        sheet.center_name,
                        s.status.value,
                    ]
                ],
            ),
            (
                "Formateur",
                ["Matricule", "Grade", "Nom", "Prénom", "Taux horaire"],
                [
                    [i.registration_number, i.grade or "", i.last_name, i.first_name, sheet.hourly_rate]
                    for i in ([sheet.instructor] if sheet.instructor else [])
                ],
            ),
            (
                "Participants",
                ["Matricule", "Nom", "Prénom", "Centre", "Statut", "Présent", "Signature", "Heures"],
                [
                    [
                        p.registration_number,
                        p.last_name,
                        p.first_name,
                        p.center_name,
                        p.status.value,
                        _yes_no(p.present),
                        _yes_no(p.signed),
                        p.validated_hours,
                    ]
                    for p in sheet.participants
                ],
            ),
            (
                "Statistiques",
                ["Indicateur", "Valeur"],
                [
                    ["Inscrits", sheet.registered],
                    ["Présents", sheet.present],
                    ["Absents", sheet.absent],
                    ["Signatures", sheet.signatures],
                    ["Date export", _when(sheet.generated_at)],
                ],
            ),
        ]
        return self._document(f"tta_session_{s.session_id}", sections, fmt)

    def render_monthly_report(self, report: MonthlyReport, fmt: ExportFormat = ExportFormat.XLSX) -> RenderedDocument:
        rows: list[list[Any]] = [
            [
                r.session_date.strftime("%d/%m/%Y"),
                r.payroll_code,
                r.training_label,
                r.center_name,
                r.instructor_name,
                r.participants,
                r.present,
                r.hours,
            ]
            for r in report.rows
        ]
        rows.append(
            ["TOTAL", "", f"{len(report.rows)} sessions", "", "", report.total_participants, report.total_present, report.total_hours]
        )
        sections = [
            (
                "Rapport mensuel",
                ["Date", "Code TTA", "Type formation", "Centre", "Formateur", "Participants", "Présents", "Heures"],
                rows,
            ),
            (
                "Statistiques",
                ["Indicateur", "Valeur"],
                [
                    ["Nombre de sessions", len(report.rows)],
                    ["Total participants", report.total_participants],
                    ["Total présents", report.total_present],
                    ["Taux de présence moyen", f"{report.attendance_rate}%"],
                    ["Total heures formation", report.total_hours],
                ],
            ),
        ]
        return self._document(f"rapport_mensuel_fmpa_{report.month.replace('-', '')}", sections, fmt)

    def _document(self, stem: str, sections: Sequence[tuple], fmt: ExportFormat) -> RenderedDocument:
        filename = f"{stem}.{fmt.value}"
        if fmt == ExportFormat.CSV:
            return RenderedDocument(filename=filename, mimetype=CSV_MIMETYPE, content=_sections_csv(sections))
        return RenderedDocument(filename=filename, mimetype=XLSX_MIMETYPE, content=_sections_xlsx(sections))


def _when(value: datetime) -> str:
    return value.strftime("%d/%m/%Y %H:%M")


def _yes_no(flag: bool) -> str:
    return "OUI" if flag else "NON"


def _sections_xlsx(sections: Sequence[tuple]) -> bytes:
    """One worksheet per section."""
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        for title, columns, rows in sections:
            cells = [[float(v) if isinstance(v, Decimal) else v for v in row] for row in rows]
            pd.DataFrame(cells, columns=columns).to_excel(writer, index=False, sheet_name=title)
    return output.getvalue()


def _sections_csv(sections: Sequence[tuple]) -> bytes:
    """Sections one after another: title line, header, rows, blank line."""
    out = io.StringIO()
    writer = csv.writer(out, delimiter=";")
    for title, columns, rows in sections:
        writer.writerow([title.upper()])
        writer.writerow(columns)
        for row in rows:
            writer.writerow(["" if v is None else str(v) for v in row])
        writer.writerow([])
    return out.getvalue().encode("utf-8-sig")
