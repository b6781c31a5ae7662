"""
Turns a submission's per-source daily arrays into one record per date.

Claude Code and git report days independently, either side may be missing
a date the other has. Each raw entry becomes a tagged `ClaudeDaily` or
`GitDaily` and is folded into a zeroed `DailyMetricRecord` for its date.
Bare usage from third party tools becomes a `ClaudeDaily` for the day it
was reported.
Pure, no database access.
"""

import datetime
import re
from typing import Annotated, Iterator, Literal, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from src.app.metrics.domains import (
    ClaudeDailyPayload,
    DailyMetricRecord,
    GitDailyPayload,
    MetricsSubmission,
    UsagePayload,
)
from src.app.metrics.exceptions import MalformedRecordError

_DATE_PATTERN = re.compile(r'^(\d{4}-\d{2}-\d{2})')
_EXACT_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


class ClaudeDaily(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal['claude'] = 'claude'
    date: datetime.date
    sessions: int = 0
    messages: int = 0
    tokens: int = 0
    tool_calls: int = 0


class GitDaily(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal['git'] = 'git'
    date: datetime.date
    commits: int = 0
    lines_added: int = 0
    lines_deleted: int = 0


UsageEntry = Annotated[Union[ClaudeDaily, GitDaily], Field(discriminator='kind')]


def parse_entry_date(value: str | None) -> datetime.date:
    """
    `YYYY-MM-DD`, a trailing time component is ignored
    """
    if not value:
        raise MalformedRecordError('Daily entry is missing a date')

    match = _DATE_PATTERN.match(value.strip())
    if match is None:
        raise MalformedRecordError(f'Unrecognised date: {value!r}')
    try:
        return datetime.date.fromisoformat(match.group(1))
    except ValueError:
        raise MalformedRecordError(f'Unrecognised date: {value!r}')


def parse_report_date(value: str | None) -> datetime.date:
    """
    Strict `YYYY-MM-DD` for single day reports, nothing trailing
    """
    if not value:
        raise MalformedRecordError('Missing required field: date')
    if _EXACT_DATE_PATTERN.match(value) is None:
        raise MalformedRecordError('Invalid date format. Expected YYYY-MM-DD')
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise MalformedRecordError('Invalid date format. Expected YYYY-MM-DD')


def usage_entry(usage: UsagePayload, date: datetime.date) -> ClaudeDaily:
    return ClaudeDaily(
        date=date,
        sessions=usage.sessions,
        messages=usage.messages,
        tokens=usage.tokens,
        tool_calls=usage.tool_calls,
    )


def _claude_entry(payload: ClaudeDailyPayload) -> ClaudeDaily:
    return ClaudeDaily(
        date=parse_entry_date(payload.date),
        sessions=payload.sessions,
        messages=payload.messages,
        tokens=payload.tokens,
        tool_calls=payload.tool_calls,
    )


def _git_entry(payload: GitDailyPayload) -> GitDaily:
    return GitDaily(
        date=parse_entry_date(payload.date),
        commits=payload.commits,
        lines_added=payload.lines_added,
        lines_deleted=payload.lines_deleted,
    )


def iter_entries(submission: MetricsSubmission) -> Iterator[UsageEntry]:
    """
    Every usable daily entry in the submission, malformed ones are logged
    and dropped
    """
    claude_days = (submission.claude.daily if submission.claude else None) or []
    git_days = (submission.git.daily_array if submission.git else None) or []

    for claude_day in claude_days:
        try:
            yield _claude_entry(claude_day)
        except MalformedRecordError as e:
            logger.warning(f'skipping claude daily entry: {e.message}')

    for git_day in git_days:
        try:
            yield _git_entry(git_day)
        except MalformedRecordError as e:
            logger.warning(f'skipping git daily entry: {e.message}')


def apply_entry(record: DailyMetricRecord, entry: UsageEntry) -> DailyMetricRecord:
    """
    New record with `entry` added on top. Only the entry's own source
    fields change.
    """
    if isinstance(entry, ClaudeDaily):
        return record.model_copy(
            update={
                'claude_sessions': record.claude_sessions + entry.sessions,
                'claude_messages': record.claude_messages + entry.messages,
                'claude_tokens': record.claude_tokens + entry.tokens,
                'claude_tool_calls': record.claude_tool_calls + entry.tool_calls,
            }
        )
    return record.model_copy(
        update={
            'git_commits': record.git_commits + entry.commits,
            'git_lines_added': record.git_lines_added + entry.lines_added,
            'git_lines_deleted': record.git_lines_deleted + entry.lines_deleted,
        }
    )


def normalize(submission: MetricsSubmission) -> dict[datetime.date, DailyMetricRecord]:
    """
    date -> merged record. Repeated entries for a date are summed, the
    collectors split some days across repos.
    """
    records: dict[datetime.date, DailyMetricRecord] = {}
    for entry in iter_entries(submission):
        records[entry.date] = apply_entry(records.get(entry.date, DailyMetricRecord()), entry)
    return records
