from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.service import AttendanceService
from .core.constants import DEFAULT_MAX_SEATS, DEFAULT_MIN_SEATS
from .database.connection import DBConfig, DatabaseConnection
from .database.memory import InMemoryDatabase
from .database.mysql_unit_of_work import MySQLUnitOfWork
from .database.unit_of_work import UnitOfWork
from .notifications.dispatcher import LoggingNotificationDispatcher, NotificationDispatcher, NotificationPublisher
from .payroll.calculator.standard_calculator import StandardPayrollCalculator
from .payroll.renderer import PayrollRenderer
from .payroll.service import PayrollExportService
from .registrations.capacity import CapacityLedger
from .registrations.eligibility import EligibilityChecker
from .registrations.service import RegistrationService
from .sessions.service import SessionService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    uow: UnitOfWork

    ledger: CapacityLedger
    notifier: NotificationPublisher

    session_service: SessionService
    registration_service: RegistrationService
    attendance_service: AttendanceService
    payroll_export_service: PayrollExportService


def build_container(
    *,
    db_config: Optional[dict] = None,
    storage_backend: str = "mysql",
    min_seats: int = DEFAULT_MIN_SEATS,
    max_seats: int = DEFAULT_MAX_SEATS,
    dispatcher: Optional[NotificationDispatcher] = None,
    uow: Optional[UnitOfWork] = None,
) -> Container:
    conn: Optional[DatabaseConnection] = None
    if uow is None:
        if storage_backend == "memory":
            uow = InMemoryDatabase()
        elif storage_backend == "mysql":
            conn = DatabaseConnection(DBConfig.from_dict(db_config or {}))
            uow = MySQLUnitOfWork(conn)
        else:
            raise ValueError(f"Unknown STORAGE_BACKEND {storage_backend!r} (expected 'mysql' or 'memory')")

    ledger = CapacityLedger(min_seats=min_seats, max_seats=max_seats)
    notifier = NotificationPublisher(dispatcher or LoggingNotificationDispatcher())
    calculator = StandardPayrollCalculator()

    session_service = SessionService(uow, ledger, notifier)
    registration_service = RegistrationService(uow, EligibilityChecker(), ledger, notifier)
    attendance_service = AttendanceService(uow, ledger, calculator)
    payroll_export_service = PayrollExportService(uow, calculator=calculator, renderer=PayrollRenderer())

    return Container(
        conn=conn,
        uow=uow,
        ledger=ledger,
        notifier=notifier,
        session_service=session_service,
        registration_service=registration_service,
        attendance_service=attendance_service,
        payroll_export_service=payroll_export_service,
    )
