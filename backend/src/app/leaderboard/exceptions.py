from src.common.exceptions import InternalException


class LeaderboardOrganizationMissing(InternalException):
    """
    Org scope was asked for but there is no organization to rank
    """

    ...


class NotOrganizationMember(InternalException): ...
