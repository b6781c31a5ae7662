from src.common.exceptions import InternalException


class RepositoryObjectNotFound(InternalException):
    """
    Wraps sqlalchemy exception when an object does not exist
    """

    ...


class MultipleRepositoryObjectsFound(InternalException):
    """
    Wraps sqlalchemy exception when multiple results are returned when
    only one is expected
    """

    ...


class PreventingModelTruncation(InternalException):
    """
    Throws where a table truncation was avoided
    """

    ...


class StoreError(InternalException):
    """
    A write could not be applied. The surrounding transaction is rolled
    back so callers (and the agent retrying a submission) start clean.
    """

    default_detail = 'Unable to store metrics.'
    default_code = 'store_error'
