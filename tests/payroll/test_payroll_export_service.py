from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from conftest import NOW

from fmpa_portal.core.enums import ErrorKind, ExportFormat, Reason, RegistrationStatus, SessionStatus
from fmpa_portal.payroll.service import PayrollExportService, surname_key, validate_period
from fmpa_portal.registrations.model import Registration


def attend(db, session, person_id, hours, status=RegistrationStatus.PRESENT):
    return db.add_registration(
        Registration(
            registration_id=db.next_id("registration"),
            session_id=session.session_id,
            person_id=person_id,
            status=status,
            registered_at=NOW,
            validated_hours=Decimal(str(hours)) if hours is not None else None,
        )
    )


class ExplodingUnitOfWork:
    def transaction(self):
        raise AssertionError("the period must be validated before any query")


@pytest.fixture()
def service(container):
    return container.payroll_export_service


@pytest.fixture()
def january(db, make_session):
    early = make_session(start_at=datetime(2025, 1, 10, 9), status=SessionStatus.COMPLETED, payroll_code="TTA-SAP")
    late = make_session(
        start_at=datetime(2025, 1, 20, 9),
        status=SessionStatus.COMPLETED,
        training_type_id=2,
        center_id=2,
        hourly_rate=Decimal("20"),
    )
    attend(db, late, 1, 2)
    attend(db, early, 3, "3.5")
    attend(db, early, 2, 3)
    attend(db, early, 4, 3, status=RegistrationStatus.ABSENT)
    attend(db, early, 5, None)
    return early, late


def test_rows_are_ordered_by_date_then_surname(service, january):
    export = service.export_payroll("2025-01-01", "2025-01-31").value

    assert [(r.session_date, r.last_name) for r in export.rows] == [
        (date(2025, 1, 10), "Lefevre"),
        (date(2025, 1, 10), "Moreau"),
        (date(2025, 1, 20), "Durand"),
    ]


def test_amounts_use_effective_rate_and_total_is_their_sum(service, january):
    export = service.export_payroll("2025-01-01", "2025-01-31").value

    by_name = {r.last_name: r for r in export.rows}
    assert by_name["Moreau"].hourly_rate == Decimal("12.50")
    assert by_name["Moreau"].amount == Decimal("43.75")
    assert by_name["Durand"].hourly_rate == Decimal("20")
    assert by_name["Durand"].amount == Decimal("40")
    for row in export.rows:
        assert row.amount == row.hours * row.hourly_rate
    assert export.total_amount == sum(r.amount for r in export.rows) == Decimal("121.25")


def test_row_carries_person_center_and_instructor(service, january):
    row = service.export_payroll("2025-01-01", "2025-01-31").value.rows[1]

    assert row.as_dict() == {
        "registration_number": "M00003",
        "last_name": "Moreau",
        "first_name": "P3",
        "grade": "SAP1",
        "center_name": "Centre Nord",
        "center_code": "C01",
        "session_date": "2025-01-10",
        "training_label": "Secours a personnes",
        "hours": "3.5",
        "hourly_rate": "12.50",
        "amount": "43.750",
        "instructor_name": "Paul Martin",
        "payroll_code": "TTA-SAP",
    }


def test_surnames_sort_ignoring_case_and_accents(service, db, make_session):
    session = make_session(start_at=datetime(2025, 1, 15, 9), status=SessionStatus.COMPLETED)
    for pid, last_name in ((200, "Zola"), (201, "Émile"), (202, "de Gaulle")):
        db.add_person(person_id=pid, last_name=last_name, first_name="X")
        attend(db, session, pid, 2)

    export = service.export_payroll("2025-01-01", "2025-01-31").value

    assert [r.last_name for r in export.rows] == ["de Gaulle", "Émile", "Zola"]


def test_surname_key_folds_accents_and_case():
    assert surname_key("Émile") == surname_key("emile") == "emile"
    assert surname_key("de Gaulle") < surname_key("Durand")


def test_center_filter_applies_to_the_session(service, january):
    export = service.export_payroll("2025-01-01", "2025-01-31", center_id=2).value
    assert [r.last_name for r in export.rows] == ["Durand"]


def test_end_date_is_inclusive_to_end_of_day(service, db, make_session):
    session = make_session(start_at=datetime(2025, 1, 31, 23, 30), status=SessionStatus.COMPLETED)
    attend(db, session, 1, 1)

    assert service.export_payroll("2025-01-31", "2025-01-31").ok


def test_only_uncompleted_sessions_give_no_data(service, db, make_session):
    session = make_session(start_at=datetime(2025, 1, 10, 9), status=SessionStatus.IN_PROGRESS)
    attend(db, session, 1, 3)

    result = service.export_payroll("2025-01-01", "2025-01-31")

    assert result.error.kind == ErrorKind.NOT_FOUND
    assert result.error.reason == Reason.NO_DATA_FOUND


def test_present_without_hours_gives_no_data(service, db, make_session):
    session = make_session(start_at=datetime(2025, 1, 10, 9), status=SessionStatus.COMPLETED)
    attend(db, session, 1, None)

    assert service.export_payroll("2025-01-01", "2025-01-31").error.reason == Reason.NO_DATA_FOUND


@pytest.mark.parametrize(
    "start,end,reason",
    [
        ("2025-13-01", "2025-12-31", Reason.INVALID_DATE),
        ("yesterday", "2025-01-31", Reason.INVALID_DATE),
        ("2025-02-01", "2025-01-01", Reason.INVALID_DATE_RANGE),
    ],
)
def test_bad_periods_are_validation_failures(service, start, end, reason):
    result = service.export_payroll(start, end)

    assert result.error.kind == ErrorKind.VALIDATION
    assert result.error.reason == reason


def test_sheet_ceiling_is_three_months_and_checked_before_querying():
    service = PayrollExportService(ExplodingUnitOfWork())

    result = service.export_payroll_sheet("2024-01-01", "2024-04-02")

    assert result.error.reason == Reason.DATE_RANGE_TOO_LARGE
    assert result.error.details["max_months"] == 3
    assert result.error.details["max_days"] == 91


def test_api_ceiling_is_one_year():
    service = PayrollExportService(ExplodingUnitOfWork())

    result = service.export_payroll("2024-01-01", "2025-01-02")

    assert result.error.reason == Reason.DATE_RANGE_TOO_LARGE
    assert result.error.details["max_months"] == 12
    assert result.error.details["max_days"] == 366


def test_each_entry_point_keeps_its_own_ceiling(service, db, make_session):
    session = make_session(start_at=datetime(2024, 2, 10, 9), status=SessionStatus.COMPLETED)
    attend(db, session, 1, 2)

    assert service.export_payroll("2024-01-01", "2024-06-30").ok
    assert service.export_payroll_sheet("2024-01-01", "2024-06-30").error.reason == Reason.DATE_RANGE_TOO_LARGE
    assert service.export_payroll_sheet("2024-01-01", "2024-04-01").ok


def test_validate_period_boundary():
    assert validate_period("2024-01-31", "2024-04-30", max_months=3).ok
    assert not validate_period("2024-01-31", "2024-05-01", max_months=3).ok


def test_sheet_export_renders_requested_format(service, january):
    doc = service.export_payroll_sheet("2025-01-01", "2025-01-31", fmt=ExportFormat.CSV).value

    assert doc.filename == "export_tta_20250101_20250131.csv"
    assert doc.mimetype == "text/csv"
