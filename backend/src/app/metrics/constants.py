from src.common.enum import BaseEnum

DAILY_METRIC_PK_ABBREV = 'dmet'
METRICS_SNAPSHOT_PK_ABBREV = 'snap'


class Period(BaseEnum):
    TODAY = 'today'
    WEEK = 'week'
    MONTH = 'month'
    ALL = 'all'


# No period at all means everything, one we don't recognise falls back to the month
MISSING_PERIOD = Period.ALL
DEFAULT_PERIOD = Period.MONTH

# Days back from the reference today, the lower bound is inclusive
PERIOD_LOOKBACK_DAYS = {
    Period.WEEK: 7,
    Period.MONTH: 30,
}


class LeaderboardMetric(BaseEnum):
    CLAUDE_TOKENS = 'claude_tokens'
    CLAUDE_MESSAGES = 'claude_messages'
    GIT_COMMITS = 'git_commits'
    GIT_LINES_ADDED = 'git_lines_added'


DEFAULT_LEADERBOARD_METRIC = LeaderboardMetric.CLAUDE_TOKENS
