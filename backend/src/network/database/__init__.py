from src.network.database.decorator import read_only_route
from src.network.database.session import DatabaseMode, ReadOnlySession, db, initialize, teardown

__all__ = [
    'DatabaseMode',
    'ReadOnlySession',
    'db',
    'initialize',
    'read_only_route',
    'teardown',
]
