from __future__ import annotations

import io
from datetime import datetime
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from conftest import NOW

from fmpa_portal.core.enums import ExportFormat, Reason, RegistrationStatus, SessionStatus
from fmpa_portal.registrations.model import Registration


def enrol(db, session, person_id, status, hours=None, signature=None):
    return db.add_registration(
        Registration(
            registration_id=db.next_id("registration"),
            session_id=session.session_id,
            person_id=person_id,
            status=status,
            registered_at=NOW,
            signature=signature,
            validated_hours=Decimal(str(hours)) if hours is not None else None,
        )
    )


@pytest.fixture()
def service(container):
    return container.payroll_export_service


@pytest.fixture()
def month(db, make_session):
    early = make_session(start_at=datetime(2025, 1, 10, 9), status=SessionStatus.COMPLETED, payroll_code="TTA-SAP")
    late = make_session(start_at=datetime(2025, 1, 20, 9), status=SessionStatus.COMPLETED, center_id=2)
    cancelled = make_session(start_at=datetime(2025, 1, 25, 9), status=SessionStatus.CANCELLED)
    make_session(start_at=datetime(2025, 2, 3, 9), status=SessionStatus.COMPLETED)

    enrol(db, early, 3, RegistrationStatus.PRESENT, hours=3, signature="sig")
    enrol(db, early, 1, RegistrationStatus.ABSENT)
    enrol(db, early, 2, RegistrationStatus.CANCELLED)
    enrol(db, early, 5, RegistrationStatus.PRESENT, hours=2)
    enrol(db, late, 4, RegistrationStatus.ABSENT)
    enrol(db, cancelled, 1, RegistrationStatus.REGISTERED)
    return early, late


def test_session_sheet_lists_live_participants_with_counts(service, month):
    early, _ = month

    sheet = service.session_sheet(early.session_id, now=NOW).value

    assert [p.last_name for p in sheet.participants] == ["Durand", "Fournier", "Moreau"]
    assert (sheet.registered, sheet.present, sheet.absent, sheet.signatures) == (3, 2, 1, 1)
    assert sheet.training_label == "Secours a personnes"
    assert sheet.center_name == "Centre Nord"
    assert sheet.instructor.last_name == "Martin"
    assert sheet.hourly_rate == Decimal("12.50")
    assert sheet.generated_at == NOW


def test_session_sheet_for_unknown_session(service):
    assert service.session_sheet(404).error.reason == Reason.SESSION_NOT_FOUND


def test_monthly_report_counts_presence_and_skips_cancelled_sessions(service, month):
    early, late = month

    report = service.monthly_report("2025-01").value

    assert [r.session_id for r in report.rows] == [early.session_id, late.session_id]
    first = report.rows[0]
    assert (first.participants, first.present, first.hours) == (3, 2, Decimal("3.00"))
    assert first.instructor_name == "Martin Paul"
    assert first.payroll_code == "TTA-SAP"
    assert (report.total_participants, report.total_present) == (4, 2)
    assert report.total_hours == Decimal("6")
    assert report.attendance_rate == 50


def test_monthly_report_center_filter(service, month):
    _, late = month

    report = service.monthly_report("2025-01", center_id=2).value

    assert [r.session_id for r in report.rows] == [late.session_id]
    assert report.attendance_rate == 0


def test_monthly_report_of_an_empty_month(service, month):
    report = service.monthly_report("2024-07").value

    assert report.rows == []
    assert report.attendance_rate == 0
    assert report.total_hours == 0


def test_monthly_report_rejects_bad_month(service):
    result = service.monthly_report("2025-13")
    assert result.error.reason == Reason.INVALID_DATE
    assert result.error.details["field"] == "month"


def test_session_sheet_csv_has_every_section(service, month):
    early, _ = month

    doc = service.session_sheet_document(early.session_id, ExportFormat.CSV, now=NOW).value

    assert doc.filename == f"tta_session_{early.session_id}.csv"
    lines = doc.content.decode("utf-8-sig").splitlines()
    for title in ("SESSION", "FORMATEUR", "PARTICIPANTS", "STATISTIQUES"):
        assert title in lines
    assert "M00003;Moreau;P3;Centre Nord;PRESENT;OUI;OUI;3" in lines
    assert "Inscrits;3" in lines


def test_monthly_report_workbook(service, month):
    doc = service.monthly_report_document("2025-01").value

    assert doc.filename == "rapport_mensuel_fmpa_202501.xlsx"
    workbook = load_workbook(io.BytesIO(doc.content))
    assert workbook.sheetnames == ["Rapport mensuel", "Statistiques"]

    rows = list(workbook["Rapport mensuel"].iter_rows(values_only=True))
    assert rows[0][:3] == ("Date", "Code TTA", "Type formation")
    assert rows[-1][0] == "TOTAL"
    assert rows[-1][2] == "2 sessions"
    assert rows[-1][5:7] == (4, 2)

    stats = dict(workbook["Statistiques"].iter_rows(min_row=2, values_only=True))
    assert stats["Taux de présence moyen"] == "50%"
