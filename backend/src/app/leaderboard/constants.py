from src.common.enum import BaseEnum


class LeaderboardScope(BaseEnum):
    ORG = 'org'
    GLOBAL = 'global'


DEFAULT_SCOPE = LeaderboardScope.ORG
