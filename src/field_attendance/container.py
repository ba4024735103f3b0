from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.gateway import RepositoryGateway
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.mysql_summary_repository import MySQLDailySummaryRepository
from .attendance.repository import AttendanceRepository, DailySummaryRepository
from .database.connection import DBConfig, DatabaseConnection
from .locations.mysql_location_repository import MySQLLocationRepository
from .locations.repository import LocationRepository
from .locations.service import LocationService
from .reports.service import EmployeeLogService
from .storage.photo_store import PhotoStore
from .tracking.runtime import TrackingRuntime, TrackingSettings
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AccessPolicy, AuthService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    attendance_repo: AttendanceRepository
    summaries_repo: DailySummaryRepository
    locations_repo: LocationRepository

    auth_service: AuthService
    access_policy: AccessPolicy
    location_service: LocationService
    log_service: EmployeeLogService
    photo_store: PhotoStore
    runtime: TrackingRuntime


def assemble(
    *,
    conn: Optional[DatabaseConnection],
    users_repo: UserRepository,
    attendance_repo: AttendanceRepository,
    summaries_repo: DailySummaryRepository,
    locations_repo: LocationRepository,
    photo_store: PhotoStore,
    tracking: Optional[TrackingSettings] = None,
    clock=None,
) -> Container:
    """Wire services on top of the given repositories (MySQL or in-memory)."""

    clock_kw = {"clock": clock} if clock is not None else {}

    auth_service = AuthService(users_repo)
    access_policy = AccessPolicy(users_repo)
    location_service = LocationService(locations_repo)
    log_service = EmployeeLogService(
        policy=access_policy,
        attendance=attendance_repo,
        summaries=summaries_repo,
        locations=location_service,
    )
    gateway = RepositoryGateway(
        users=users_repo,
        attendance=attendance_repo,
        summaries=summaries_repo,
        locations=location_service,
    )
    runtime = TrackingRuntime(gateway, tracking, **clock_kw)

    return Container(
        conn=conn,
        users_repo=users_repo,
        attendance_repo=attendance_repo,
        summaries_repo=summaries_repo,
        locations_repo=locations_repo,
        auth_service=auth_service,
        access_policy=access_policy,
        location_service=location_service,
        log_service=log_service,
        photo_store=photo_store,
        runtime=runtime,
    )


def build_container(
    *,
    db_config: dict,
    tracking: Optional[dict] = None,
    photo_dir: str = "instance/photos",
    photo_url_prefix: str = "/photos",
    max_photo_bytes: Optional[int] = None,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    photo_kw = {"max_bytes": int(max_photo_bytes)} if max_photo_bytes else {}
    return assemble(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        summaries_repo=MySQLDailySummaryRepository(conn),
        locations_repo=MySQLLocationRepository(conn),
        photo_store=PhotoStore(photo_dir, url_prefix=photo_url_prefix, **photo_kw),
        tracking=TrackingSettings.from_dict(tracking),
    )
