from unittest.mock import patch

import pytest

from src.network.database.session import get_engine


@pytest.fixture(autouse=True)
def no_db_access():
    """
    Unit tests cover pure code (normalizer, periods, tokens), they should
    never reach the ledger
    """
    with patch.object(
        get_engine(),
        'connect',
        side_effect=Exception('🛑 Database access attempted! 🛑\n Not permitted during unit tests!'),
    ):
        yield
