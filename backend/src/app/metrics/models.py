import datetime
from typing import Any, Optional

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.app.metrics.constants import DAILY_METRIC_PK_ABBREV, METRICS_SNAPSHOT_PK_ABBREV
from src.app.metrics.domains import (
    DailyMetricCreate,
    DailyMetricRead,
    MetricsSnapshotCreate,
    MetricsSnapshotRead,
)
from src.common.model import BaseModel, JSONType
from src.core.user.models import HasUser


class DailyMetric(HasUser, BaseModel[DailyMetricRead, DailyMetricCreate]):
    """
    The ledger, one row per user per date. Submissions replace a date's
    values, they never add to them.
    """

    org_id: Mapped[Optional[str]] = mapped_column(ForeignKey('organization.id'), nullable=True, index=True)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    claude_sessions: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    claude_messages: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    claude_tokens: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    claude_tool_calls: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    git_commits: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    git_lines_added: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    git_lines_deleted: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __pk_abbrev__ = DAILY_METRIC_PK_ABBREV
    __read_domain__ = DailyMetricRead
    __create_domain__ = DailyMetricCreate

    __table_args__ = (
        Index('idx_daily_metric_user_date', 'user_id', 'date', unique=True),
        Index('idx_daily_metric_date', 'date'),
    )


class MetricsSnapshot(HasUser, BaseModel[MetricsSnapshotRead, MetricsSnapshotCreate]):
    """
    Append only record of every submission as received
    """

    org_id: Mapped[Optional[str]] = mapped_column(ForeignKey('organization.id'), nullable=True)
    source: Mapped[str] = mapped_column(String(length=50), nullable=False)
    reported_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)

    claude_sessions: Mapped[int] = mapped_column(BigInteger, default=0)
    claude_messages: Mapped[int] = mapped_column(BigInteger, default=0)
    claude_input_tokens: Mapped[int] = mapped_column(BigInteger, default=0)
    claude_output_tokens: Mapped[int] = mapped_column(BigInteger, default=0)
    claude_cache_read_tokens: Mapped[int] = mapped_column(BigInteger, default=0)
    claude_cache_creation_tokens: Mapped[int] = mapped_column(BigInteger, default=0)
    claude_tool_calls: Mapped[int] = mapped_column(BigInteger, default=0)
    claude_by_model: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)

    git_repos_scanned: Mapped[int] = mapped_column(BigInteger, default=0)
    git_repos_contributed: Mapped[int] = mapped_column(BigInteger, default=0)
    git_commits: Mapped[int] = mapped_column(BigInteger, default=0)
    git_lines_added: Mapped[int] = mapped_column(BigInteger, default=0)
    git_lines_deleted: Mapped[int] = mapped_column(BigInteger, default=0)
    git_files_changed: Mapped[int] = mapped_column(BigInteger, default=0)
    git_by_repo: Mapped[Any] = mapped_column(JSONType, default=list)

    raw_payload: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)

    __pk_abbrev__ = METRICS_SNAPSHOT_PK_ABBREV
    __read_domain__ = MetricsSnapshotRead
    __create_domain__ = MetricsSnapshotCreate

    __table_args__ = (Index('idx_metrics_snapshot_user_reported', 'user_id', 'reported_at'),)
