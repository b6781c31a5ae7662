from src.common.exceptions import InternalException


class MembershipSyncError(InternalException):
    """
    Org members could not be fetched from the identity provider.
    Never fatal, leaderboards rank whoever is already known locally.
    """

    default_detail = 'Unable to sync organization members.'
    default_code = 'membership_sync_error'
