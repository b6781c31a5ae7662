from src.common.exceptions import InternalException


class MalformedRecordError(InternalException):
    """
    A daily entry without a usable date. Inside a submission the entry is
    skipped and the rest is kept, a single day report is rejected outright.
    """

    default_detail = 'Malformed daily record.'
    default_code = 'malformed_record'
