import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.app.metrics.constants import DAILY_METRIC_PK_ABBREV, METRICS_SNAPSHOT_PK_ABBREV
from src.common.domain import BaseDomain, IngestDomain
from src.common.nanoid import NanoId, NanoIdType


def zero_if_none(value: Any) -> Any:
    return 0 if value is None else value


class CountsPayload(IngestDomain):
    """
    Collectors emit null for counters they could not read
    """

    @field_validator('*', mode='before')
    @classmethod
    def none_to_zero(cls, value: Any, info: Any) -> Any:
        if info.field_name == 'date':
            return value
        return zero_if_none(value)


class DatedPayload(CountsPayload):
    date: Optional[str] = None

    @field_validator('date', mode='before')
    @classmethod
    def stringify_date(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


# Submission payload, as produced by the agent
class ClaudeTotalsPayload(CountsPayload):
    sessions: int = 0
    messages: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0
    tool_calls: int = 0


class ClaudeDailyPayload(DatedPayload):
    sessions: int = 0
    messages: int = 0
    tokens: int = 0
    tool_calls: int = 0


class ClaudePayload(IngestDomain):
    totals: Optional[ClaudeTotalsPayload] = None
    by_model: Optional[dict[str, Any]] = None
    daily: Optional[list[ClaudeDailyPayload]] = None


class GitTotalsPayload(CountsPayload):
    commits: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    files_changed: int = 0


class GitDailyPayload(DatedPayload):
    commits: int = 0
    lines_added: int = 0
    lines_deleted: int = 0


class GitPayload(IngestDomain):
    totals: Optional[GitTotalsPayload] = None
    repos_scanned: Optional[int] = None
    repos_contributed: Optional[int] = None
    by_repo: Optional[Any] = None
    daily_array: Optional[list[GitDailyPayload]] = None


# Third party tools send bare usage counters instead of daily arrays
_USAGE_SHORT_KEYS = {
    'input': 'inputTokens',
    'output': 'outputTokens',
    'cacheRead': 'cacheReadTokens',
    'cacheWrite': 'cacheCreationTokens',
    'byModel': 'models',
}
_FLAT_TOTAL_KEYS = ('inputTokens', 'outputTokens', 'input_tokens', 'output_tokens')
_SUBMISSION_BLOCKS = ('claude', 'git', 'usage')


class UsagePayload(IngestDomain):
    sessions: int = 0
    messages: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0
    tool_calls: int = 0
    models: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode='before')
    @classmethod
    def expand_short_keys(cls, data: Any) -> Any:
        """
        OpenClaw spells the counters `input`, `output`, `cacheRead`, `cacheWrite`
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for short_key, full_key in _USAGE_SHORT_KEYS.items():
            if short_key in data and data.get(full_key) is None:
                data[full_key] = data.pop(short_key)
        return data

    @field_validator(
        'sessions',
        'messages',
        'input_tokens',
        'output_tokens',
        'cache_read_tokens',
        'cache_creation_tokens',
        'tool_calls',
        mode='before',
    )
    @classmethod
    def none_to_zero(cls, value: Any) -> Any:
        return zero_if_none(value)

    @field_validator('models', mode='before')
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return value or {}

    @property
    def tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def flat_usage(data: dict[str, Any]) -> dict[str, Any] | None:
    """
    The usage counters of a body sent without any submission block, None
    when it isn't one of the flat formats
    """
    if any(block in data for block in _SUBMISSION_BLOCKS):
        return None
    if 'input' in data or 'output' in data:
        # OpenClaw reports once per message
        return {**data, 'messages': data.get('messages') or 1}
    if any(key in data for key in _FLAT_TOTAL_KEYS):
        return dict(data)
    return None


class MetricsSubmission(IngestDomain):
    timestamp: Optional[datetime.datetime] = None
    claude: Optional[ClaudePayload] = None
    git: Optional[GitPayload] = None
    usage: Optional[UsagePayload] = None

    @model_validator(mode='before')
    @classmethod
    def wrap_flat_usage(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        usage = flat_usage(data)
        if usage is None:
            return data
        return {'timestamp': data.get('timestamp') or data.get('collectedAt'), 'usage': usage}


class DailyUsageSubmission(IngestDomain):
    """
    A tool's own count for one day, replaces whatever Claude usage we had for it
    """

    date: Optional[str] = None
    usage: Optional[UsagePayload] = None

    @field_validator('date', mode='before')
    @classmethod
    def stringify_date(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class DailyMetricRecord(BaseModel):
    """
    One user's activity for one date, every field populated
    """

    model_config = ConfigDict(frozen=True)

    claude_sessions: int = 0
    claude_messages: int = 0
    claude_tokens: int = 0
    claude_tool_calls: int = 0
    git_commits: int = 0
    git_lines_added: int = 0
    git_lines_deleted: int = 0


# Ledger
class DailyMetricCreate(BaseDomain):
    id: Optional[NanoIdType] = Field(default_factory=lambda: NanoId.gen(abbrev=DAILY_METRIC_PK_ABBREV))
    user_id: NanoIdType
    org_id: Optional[NanoIdType] = None
    date: datetime.date
    claude_sessions: int = 0
    claude_messages: int = 0
    claude_tokens: int = 0
    claude_tool_calls: int = 0
    git_commits: int = 0
    git_lines_added: int = 0
    git_lines_deleted: int = 0


class DailyMetricRead(DailyMetricCreate):
    id: NanoIdType
    created_at: datetime.datetime
    modified_at: Optional[datetime.datetime] = None


class MetricsSnapshotCreate(BaseDomain):
    id: Optional[NanoIdType] = Field(default_factory=lambda: NanoId.gen(abbrev=METRICS_SNAPSHOT_PK_ABBREV))
    user_id: NanoIdType
    org_id: Optional[NanoIdType] = None
    source: str
    reported_at: datetime.datetime
    claude_sessions: int = 0
    claude_messages: int = 0
    claude_input_tokens: int = 0
    claude_output_tokens: int = 0
    claude_cache_read_tokens: int = 0
    claude_cache_creation_tokens: int = 0
    claude_tool_calls: int = 0
    claude_by_model: dict[str, Any] = Field(default_factory=dict)
    git_repos_scanned: int = 0
    git_repos_contributed: int = 0
    git_commits: int = 0
    git_lines_added: int = 0
    git_lines_deleted: int = 0
    git_files_changed: int = 0
    git_by_repo: Any = Field(default_factory=list)
    raw_payload: dict[str, Any] = Field(default_factory=dict)


class MetricsSnapshotRead(MetricsSnapshotCreate):
    id: NanoIdType
    created_at: datetime.datetime


# Responses
class SubmissionResult(BaseModel):
    success: bool = True
    snapshot_id: str
    dates_recorded: int


class DailyUsageCounts(BaseModel):
    sessions: int = 0
    messages: int = 0
    tokens: int = 0
    tool_calls: int = 0


class DailyUsageResult(BaseModel):
    success: bool = True
    date: datetime.date
    source: str
    snapshot_id: str
    metrics: DailyUsageCounts


class MetricTotals(BaseModel):
    claude_sessions: int = 0
    claude_messages: int = 0
    claude_tokens: int = 0
    claude_tool_calls: int = 0
    git_commits: int = 0
    git_lines_added: int = 0
    git_lines_deleted: int = 0
    # Latest ledger write inside the window
    reported_at: Optional[datetime.datetime] = None


class MyMetrics(MetricTotals):
    """Caller's totals for a period plus when the agent last checked in."""

    period: str
    last_synced_at: Optional[datetime.datetime] = None


class ActivityDay(BaseModel):
    date: datetime.date
    claude_messages: int = 0
    claude_tokens: int = 0
    git_commits: int = 0
    git_lines_added: int = 0


class ActivityResponse(BaseModel):
    activity: list[ActivityDay]


class DeviceStats(BaseModel):
    tokens: int = 0
    messages: int = 0
    sessions: int = 0


class DeviceMe(BaseModel):
    """What a linked tool shows its user."""

    user: Optional[str] = None
    org: Optional[str] = None
    today: DeviceStats
    week: DeviceStats
    total: DeviceStats
    rank: Optional[int] = None


class MemberTotal(BaseModel):
    """One user's summed metric, as ranked by the ledger store."""

    user_id: str
    name: Optional[str] = None
    email: str = ''
    value: int = 0
    reported_at: Optional[datetime.datetime] = None
