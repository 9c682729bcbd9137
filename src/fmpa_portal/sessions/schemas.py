"""Input parsing for session commands.

Turns loosely typed payloads (JSON bodies, query strings) into the typed
commands the services accept. Every problem comes back as a VALIDATION
failure naming the offending field.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, TypeVar

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime, parse_month
from ..common.validators import decimal_places, require_non_empty, to_decimal
from ..core.constants import DECIMAL_PLACES, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, SESSION_SORT_FIELDS
from ..core.enums import Reason, RegistrationStatus, SessionStatus
from ..core.result import Failure, Result, invalid
from .model import NewSession, PageRequest, SessionChanges, SessionFilters

E = TypeVar("E", bound=Enum)


class _Invalid(Exception):
    def __init__(self, failure: Failure):
        self.failure = failure


def _int(payload: Mapping[str, Any], name: str, *, required: bool) -> Optional[int]:
    raw = payload.get(name)
    if raw is None or raw == "":
        if required:
            raise _Invalid(invalid(Reason.MISSING_FIELD, f"{name} is required", field=name))
        return None
    if isinstance(raw, float) and not raw.is_integer():
        raise _Invalid(invalid(Reason.INVALID_VALUE, f"{name} must be an integer", field=name))
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise _Invalid(invalid(Reason.INVALID_VALUE, f"{name} must be an integer", field=name))
    if isinstance(raw, bool) or value <= 0:
        raise _Invalid(invalid(Reason.INVALID_VALUE, f"{name} must be a positive integer", field=name))
    return value


def _datetime(payload: Mapping[str, Any], name: str, *, required: bool) -> Optional[datetime]:
    raw = payload.get(name)
    if raw is None or raw == "":
        if required:
            raise _Invalid(invalid(Reason.MISSING_FIELD, f"{name} is required", field=name))
        return None
    if isinstance(raw, datetime):
        return raw
    try:
        return parse_iso_datetime(str(raw))
    except ValueError:
        raise _Invalid(invalid(Reason.INVALID_DATE, f"{name} must be an ISO-8601 datetime", field=name, value=str(raw)))


def _text(payload: Mapping[str, Any], name: str, *, required: bool) -> Optional[str]:
    raw = payload.get(name)
    if required:
        missing = require_non_empty(raw, name)
        if missing:
            raise _Invalid(missing)
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


def _rate(payload: Mapping[str, Any], name: str) -> Optional[Decimal]:
    raw = payload.get(name)
    if raw is None or raw == "":
        return None
    value = to_decimal(raw)
    if value is None or value <= 0:
        raise _Invalid(invalid(Reason.INVALID_VALUE, f"{name} must be a positive number", field=name))
    if decimal_places(value) > DECIMAL_PLACES:
        raise _Invalid(
            invalid(
                Reason.INVALID_VALUE,
                f"{name} cannot have more than {DECIMAL_PLACES} decimals",
                field=name,
                max_decimals=DECIMAL_PLACES,
            )
        )
    return value


def _choice(raw: Any, choices: type[E], name: str) -> Optional[E]:
    if raw is None or raw == "":
        return None
    try:
        return choices(str(raw).upper())
    except ValueError:
        raise _Invalid(
            invalid(
                Reason.INVALID_VALUE,
                f"{name} must be one of {', '.join(c.value for c in choices)}",
                field=name,
            )
        )


def _status(raw: Any, name: str = "status") -> Optional[SessionStatus]:
    return _choice(raw, SessionStatus, name)


def parse_new_session(payload: Mapping[str, Any]) -> Result[NewSession]:
    try:
        return Result.success(
            NewSession(
                training_type_id=_int(payload, "training_type_id", required=True),
                center_id=_int(payload, "center_id", required=True),
                instructor_id=_int(payload, "instructor_id", required=True),
                start_at=_datetime(payload, "start_at", required=True),
                end_at=_datetime(payload, "end_at", required=True),
                location=_text(payload, "location", required=True),
                max_seats=_int(payload, "max_seats", required=True),
                payroll_code=_text(payload, "payroll_code", required=False),
                hourly_rate=_rate(payload, "hourly_rate"),
                observations=_text(payload, "observations", required=False),
            )
        )
    except _Invalid as e:
        return Result.fail(e.failure)


def parse_session_changes(payload: Mapping[str, Any]) -> Result[SessionChanges]:
    try:
        location = payload.get("location")
        if location is not None and not str(location).strip():
            raise _Invalid(invalid(Reason.MISSING_FIELD, "location cannot be blank", field="location"))
        return Result.success(
            SessionChanges(
                training_type_id=_int(payload, "training_type_id", required=False),
                center_id=_int(payload, "center_id", required=False),
                instructor_id=_int(payload, "instructor_id", required=False),
                start_at=_datetime(payload, "start_at", required=False),
                end_at=_datetime(payload, "end_at", required=False),
                location=_text(payload, "location", required=False),
                max_seats=_int(payload, "max_seats", required=False),
                payroll_code=_text(payload, "payroll_code", required=False),
                hourly_rate=_rate(payload, "hourly_rate"),
                observations=_text(payload, "observations", required=False),
                status=_status(payload.get("status")),
            )
        )
    except _Invalid as e:
        return Result.fail(e.failure)


def parse_session_query(args: Mapping[str, Any]) -> Result[tuple[SessionFilters, PageRequest]]:
    try:
        month = _text(args, "month", required=False)
        if month:
            try:
                parse_month(month)
            except ValueError:
                raise _Invalid(invalid(Reason.INVALID_DATE, "month must be YYYY-MM", field="month", value=month))

        date_from = date_to = None
        raw_from, raw_to = args.get("date_from"), args.get("date_to")
        if bool(raw_from) != bool(raw_to):
            missing = "date_to" if raw_from else "date_from"
            raise _Invalid(
                invalid(Reason.MISSING_FIELD, "date_from and date_to must be given together", field=missing)
            )
        if raw_from and raw_to:
            try:
                date_from = parse_iso_date(str(raw_from))
                date_to = parse_iso_date(str(raw_to))
            except ValueError:
                raise _Invalid(invalid(Reason.INVALID_DATE, "date_from/date_to must be YYYY-MM-DD"))
            if date_from > date_to:
                raise _Invalid(invalid(Reason.INVALID_DATE_RANGE, "date_from must be on or before date_to"))

        filters = SessionFilters(
            month=month,
            date_from=date_from,
            date_to=date_to,
            center_id=_int(args, "center_id", required=False),
            status=_status(args.get("status")),
            instructor_id=_int(args, "instructor_id", required=False),
            training_type_id=_int(args, "training_type_id", required=False),
            registration_status=_choice(args.get("registration_status"), RegistrationStatus, "registration_status"),
        )

        page = _int(args, "page", required=False) or 1
        page_size = _int(args, "page_size", required=False) or DEFAULT_PAGE_SIZE
        if page_size > MAX_PAGE_SIZE:
            raise _Invalid(
                invalid(
                    Reason.PAGE_SIZE_TOO_LARGE,
                    f"page_size cannot exceed {MAX_PAGE_SIZE}",
                    field="page_size",
                    max_page_size=MAX_PAGE_SIZE,
                )
            )

        sort_by = _text(args, "sort_by", required=False) or "start_at"
        if sort_by not in SESSION_SORT_FIELDS:
            raise _Invalid(
                invalid(
                    Reason.INVALID_VALUE,
                    f"sort_by must be one of {', '.join(SESSION_SORT_FIELDS)}",
                    field="sort_by",
                    allowed=list(SESSION_SORT_FIELDS),
                )
            )
        sort_order = (_text(args, "sort_order", required=False) or "desc").lower()
        if sort_order not in ("asc", "desc"):
            raise _Invalid(invalid(Reason.INVALID_VALUE, "sort_order must be asc or desc", field="sort_order"))

        return Result.success(
            (filters, PageRequest(page=page, page_size=page_size, sort_by=sort_by, descending=sort_order == "desc"))
        )
    except _Invalid as e:
        return Result.fail(e.failure)
