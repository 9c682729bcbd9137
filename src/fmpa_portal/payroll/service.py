from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..common.datetime_utils import add_months, end_of_day, now_local, parse_iso_date, parse_month
from ..core.constants import EXPORT_API_MAX_MONTHS, EXPORT_SHEET_MAX_MONTHS
from ..core.enums import ExportFormat, Reason, RegistrationStatus, SessionStatus
from ..core.result import Result, invalid, not_found
from ..database.unit_of_work import UnitOfWork
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import (
    MonthlyReport,
    MonthlyReportRow,
    PayrollExport,
    PayrollRow,
    PayrollSourceRow,
    RenderedDocument,
    SessionSheet,
    SheetParticipant,
)
from .renderer import PayrollRenderer

logger = logging.getLogger(__name__)


def surname_key(name: str) -> str:
    """Accent- and case-insensitive sort key, close to MySQL's utf8mb4_unicode_ci."""
    decomposed = unicodedata.normalize("NFKD", name or "")
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


@dataclass(frozen=True)
class ExportPeriod:
    start: date
    end: date


def validate_period(start: str, end: str, *, max_months: int) -> Result[ExportPeriod]:
    """Check an export window before anything touches the database.

    The ceiling is counted in calendar months from ``start``: with
    ``max_months=3``, 2024-01-01 may run up to 2024-04-01 inclusive.
    """
    try:
        start_d = parse_iso_date(str(start))
        end_d = parse_iso_date(str(end))
    except (TypeError, ValueError):
        return Result.fail(
            invalid(Reason.INVALID_DATE, "start and end must be YYYY-MM-DD dates", start=start, end=end)
        )

    if start_d > end_d:
        return Result.fail(
            invalid(
                Reason.INVALID_DATE_RANGE,
                "start must be on or before end",
                start=start_d.isoformat(),
                end=end_d.isoformat(),
            )
        )

    limit = add_months(start_d, max_months)
    if end_d > limit:
        return Result.fail(
            invalid(
                Reason.DATE_RANGE_TOO_LARGE,
                f"An export cannot span more than {max_months} months",
                max_months=max_months,
                max_days=(limit - start_d).days,
                requested_days=(end_d - start_d).days,
            )
        )
    return Result.success(ExportPeriod(start=start_d, end=end_d))


class PayrollExportService:
    """TTA payroll export and FMPA attendance reports."""

    def __init__(
        self,
        uow: UnitOfWork,
        *,
        calculator: Optional[PayrollCalculator] = None,
        renderer: Optional[PayrollRenderer] = None,
    ):
        self._uow = uow
        self._calculator = calculator or StandardPayrollCalculator()
        self._renderer = renderer or PayrollRenderer()

    def export_payroll(self, start: str, end: str, center_id: Optional[int] = None) -> Result[PayrollExport]:
        return self._export(start, end, center_id, max_months=EXPORT_API_MAX_MONTHS)

    def export_payroll_sheet(
        self,
        start: str,
        end: str,
        center_id: Optional[int] = None,
        fmt: ExportFormat = ExportFormat.XLSX,
    ) -> Result[RenderedDocument]:
        return self._export(start, end, center_id, max_months=EXPORT_SHEET_MAX_MONTHS).map(
            lambda export: self._renderer.render(export, fmt)
        )

    def _export(self, start: str, end: str, center_id: Optional[int], *, max_months: int) -> Result[PayrollExport]:
        period = validate_period(start, end, max_months=max_months)
        if not period.ok:
            logger.warning("Payroll export rejected: %s", period.error.reason.value)
            return Result.fail(period.error)
        p = period.value

        with self._uow.transaction() as tx:
            sources = tx.registrations.list_payroll_sources(
                start=datetime.combine(p.start, datetime.min.time()),
                end=end_of_day(p.end),
                center_id=center_id,
            )

        if not sources:
            return Result.fail(
                not_found(
                    Reason.NO_DATA_FOUND,
                    "No attended registration in a completed session over this period",
                    start=p.start.isoformat(),
                    end=p.end.isoformat(),
                    center_id=center_id,
                )
            )

        rows = sorted((self._to_row(s) for s in sources), key=lambda r: (r.session_date, surname_key(r.last_name)))
        total = sum((r.amount for r in rows), Decimal("0"))
        logger.info("Payroll export %s..%s: %s rows, total %s", p.start, p.end, len(rows), total)
        return Result.success(PayrollExport(start=p.start, end=p.end, center_id=center_id, rows=rows, total_amount=total))

    # -- per-session sheet and monthly report --

    def session_sheet(self, session_id: int, *, now: datetime | None = None) -> Result[SessionSheet]:
        """TTA sheet of one session: header, instructor and live participants."""
        with self._uow.transaction() as tx:
            session = tx.sessions.get_by_id(session_id)
            if not session:
                return Result.fail(not_found(Reason.SESSION_NOT_FOUND, "Session not found", session_id=session_id))
            training_type = tx.catalog.get_training_type(session.training_type_id)
            center = tx.catalog.get_center(session.center_id)
            instructor = tx.personnel.get_by_id(session.instructor_id)

            participants: list[SheetParticipant] = []
            for r in tx.registrations.list_for_session(session_id):
                if not r.is_live:
                    continue
                person = tx.personnel.get_by_id(r.person_id)
                home = tx.catalog.get_center(person.center_id) if person.center_id else None
                participants.append(
                    SheetParticipant(
                        registration_number=person.registration_number,
                        last_name=person.last_name,
                        first_name=person.first_name,
                        center_name=home.name if home else "",
                        status=r.status,
                        signed=bool(r.signature),
                        validated_hours=r.validated_hours,
                    )
                )

        participants.sort(key=lambda p: (surname_key(p.last_name), surname_key(p.first_name)))
        return Result.success(
            SessionSheet(
                session=session,
                training_label=training_type.label if training_type else "",
                center_name=center.name if center else "",
                instructor=instructor,
                hourly_rate=session.hourly_rate or (training_type.hourly_rate if training_type else Decimal("0")),
                participants=participants,
                generated_at=now_local(now),
            )
        )

    def monthly_report(self, month: str, center_id: Optional[int] = None) -> Result[MonthlyReport]:
        """Sessions held in ``month`` (YYYY-MM) with participant and presence counts.

        Cancelled sessions are left out. An empty month gives an empty report.
        """
        try:
            first, last = parse_month(str(month))
        except ValueError:
            return Result.fail(invalid(Reason.INVALID_DATE, "month must be YYYY-MM", field="month", value=month))

        rows: list[MonthlyReportRow] = []
        with self._uow.transaction() as tx:
            sessions = tx.sessions.list_between(
                datetime.combine(first, datetime.min.time()), end_of_day(last), center_id=center_id
            )
            for s in sessions:
                if s.status == SessionStatus.CANCELLED:
                    continue
                live = [r for r in tx.registrations.list_for_session(s.session_id) if r.is_live]
                training_type = tx.catalog.get_training_type(s.training_type_id)
                center = tx.catalog.get_center(s.center_id)
                instructor = tx.personnel.get_by_id(s.instructor_id)
                rows.append(
                    MonthlyReportRow(
                        session_id=s.session_id,
                        session_date=s.start_at.date(),
                        payroll_code=s.payroll_code or "",
                        training_label=training_type.label if training_type else "",
                        center_name=center.name if center else "",
                        instructor_name=f"{instructor.last_name} {instructor.first_name}" if instructor else "",
                        participants=len(live),
                        present=sum(1 for r in live if r.status == RegistrationStatus.PRESENT),
                        hours=s.length_hours,
                    )
                )

        report = MonthlyReport(month=first.strftime("%Y-%m"), center_id=center_id, rows=rows)
        logger.info("Monthly report %s: %s sessions, %s%% attendance", report.month, len(rows), report.attendance_rate)
        return Result.success(report)

    def session_sheet_document(
        self, session_id: int, fmt: ExportFormat = ExportFormat.XLSX, *, now: datetime | None = None
    ) -> Result[RenderedDocument]:
        return self.session_sheet(session_id, now=now).map(lambda sheet: self._renderer.render_session_sheet(sheet, fmt))

    def monthly_report_document(
        self, month: str, center_id: Optional[int] = None, fmt: ExportFormat = ExportFormat.XLSX
    ) -> Result[RenderedDocument]:
        return self.monthly_report(month, center_id).map(lambda report: self._renderer.render_monthly_report(report, fmt))

    def _to_row(self, s: PayrollSourceRow) -> PayrollRow:
        return PayrollRow(
            registration_number=s.registration_number,
            last_name=s.last_name,
            first_name=s.first_name,
            grade=s.grade or "",
            center_name=s.center_name or "",
            center_code=s.center_code or "",
            session_date=s.session_start.date(),
            training_label=s.training_label,
            hours=s.validated_hours,
            hourly_rate=s.hourly_rate,
            amount=self._calculator.amount(s.validated_hours, s.hourly_rate),
            instructor_name=f"{s.instructor_first_name} {s.instructor_last_name}".strip(),
            payroll_code=s.payroll_code or "",
        )
