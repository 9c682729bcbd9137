from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller role, resolved into capabilities at authorization time."""

    USER = "USER"
    INSTRUCTOR = "INSTRUCTOR"
    CENTER_CHIEF = "CENTER_CHIEF"
    ADMIN = "ADMIN"


class Permission(str, Enum):
    SESSION_READ = "session:read"
    SESSION_WRITE = "session:write"
    SESSION_DELETE = "session:delete"
    REGISTRATION_SELF = "registration:self"
    REGISTRATION_MANAGE = "registration:manage"
    ATTENDANCE_MARK = "attendance:mark"
    PAYROLL_EXPORT = "payroll:export"


class SessionStatus(str, Enum):
    """Lifecycle of a training session."""

    PLANNED = "PLANNED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)

    @property
    def is_open(self) -> bool:
        return self in (SessionStatus.PLANNED, SessionStatus.CONFIRMED)


class RegistrationStatus(str, Enum):
    REGISTERED = "REGISTERED"
    CONFIRMED = "CONFIRMED"
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    CANCELLED = "CANCELLED"

    @property
    def is_live(self) -> bool:
        return self != RegistrationStatus.CANCELLED


class PersonStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class MedicalStatus(str, Enum):
    FIT = "FIT"
    FIT_WITH_RESTRICTIONS = "FIT_WITH_RESTRICTIONS"
    UNFIT = "UNFIT"
    PENDING = "PENDING"


class ErrorKind(str, Enum):
    """How a failure should be surfaced to the caller."""

    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    BUSINESS_RULE = "BUSINESS_RULE"
    CONFLICT = "CONFLICT"


class Reason(str, Enum):
    """Machine-readable reason codes carried by every failure."""

    # validation
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_VALUE = "INVALID_VALUE"
    INVALID_DATE = "INVALID_DATE"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    DATE_RANGE_TOO_LARGE = "DATE_RANGE_TOO_LARGE"
    INVALID_SCHEDULE = "INVALID_SCHEDULE"
    START_IN_PAST = "START_IN_PAST"
    OUT_OF_BAND = "OUT_OF_BAND"
    INVALID_HOURS = "INVALID_HOURS"
    PAGE_SIZE_TOO_LARGE = "PAGE_SIZE_TOO_LARGE"

    # not found
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    PERSON_NOT_FOUND = "PERSON_NOT_FOUND"
    TRAINING_TYPE_NOT_FOUND = "TRAINING_TYPE_NOT_FOUND"
    CENTER_NOT_FOUND = "CENTER_NOT_FOUND"
    INSTRUCTOR_NOT_FOUND = "INSTRUCTOR_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    NO_DATA_FOUND = "NO_DATA_FOUND"

    # business rules
    SESSION_NOT_OPEN = "SESSION_NOT_OPEN"
    SESSION_FULL = "SESSION_FULL"
    PERSON_INACTIVE = "PERSON_INACTIVE"
    MEDICAL_UNFIT = "MEDICAL_UNFIT"
    MEDICAL_EXPIRED = "MEDICAL_EXPIRED"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    INSTRUCTOR_INACTIVE = "INSTRUCTOR_INACTIVE"
    INSTRUCTOR_CONFLICT = "INSTRUCTOR_CONFLICT"
    CAPACITY_BELOW_OCCUPANCY = "CAPACITY_BELOW_OCCUPANCY"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    SESSION_LOCKED = "SESSION_LOCKED"
    SESSION_HAS_REGISTRANTS = "SESSION_HAS_REGISTRANTS"


class NotificationKind(str, Enum):
    SESSION_CREATED = "SESSION_CREATED"
    SESSION_UPDATED = "SESSION_UPDATED"
    SESSION_CANCELLED = "SESSION_CANCELLED"
    REGISTRATION_CREATED = "REGISTRATION_CREATED"


class ExportFormat(str, Enum):
    XLSX = "xlsx"
    CSV = "csv"
