from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .config import Settings
from .database.connection import DBConfig, DatabaseConnection
from .media.service import ProfileMediaService
from .media.store import LocalMediaStore
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, PasswordResetService, UserService
from .users.tokens import TokenService


@dataclass(frozen=True)
class Container:
    settings: Settings
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    attendance_repo: AttendanceRepository
    media_store: LocalMediaStore

    token_service: TokenService
    auth_service: AuthService
    user_service: UserService
    password_reset_service: PasswordResetService
    attendance_service: AttendanceService
    media_service: ProfileMediaService


def build_container(
    settings: Settings,
    *,
    users_repo: Optional[UserRepository] = None,
    attendance_repo: Optional[AttendanceRepository] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    """Wire repositories and services; MySQL repositories unless others are given."""
    conn: Optional[DatabaseConnection] = None
    if users_repo is None or attendance_repo is None:
        conn = DatabaseConnection(DBConfig.from_dict(settings.db_config))
        users_repo = users_repo or MySQLUserRepository(conn)
        attendance_repo = attendance_repo or MySQLAttendanceRepository(conn)

    media_store = LocalMediaStore(settings.upload_dir)
    token_service = TokenService(settings.jwt_secret, ttl_minutes=settings.token_ttl_minutes)

    auth_service = AuthService(users_repo, token_service, clock=clock)
    user_service = UserService(users_repo)
    password_reset_service = PasswordResetService(
        users_repo, ttl_minutes=settings.reset_token_ttl_minutes, clock=clock
    )
    attendance_service = AttendanceService(
        attendance_repo,
        users_repo,
        strategy_factory=AttendanceStrategyFactory(half_day_threshold_minutes=settings.half_day_threshold_minutes),
        clock=clock,
    )
    media_service = ProfileMediaService(users_repo, media_store)

    return Container(
        settings=settings,
        conn=conn,
        users_repo=users_repo,
        attendance_repo=attendance_repo,
        media_store=media_store,
        token_service=token_service,
        auth_service=auth_service,
        user_service=user_service,
        password_reset_service=password_reset_service,
        attendance_service=attendance_service,
        media_service=media_service,
    )
