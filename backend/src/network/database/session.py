import sys
import time
from contextvars import ContextVar
from enum import Enum
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session as SqlAlchemySession
from sqlalchemy.pool import NullPool
from sqlalchemy.sql.compiler import FromLinter

from src import settings


class DatabaseMode(Enum):
    READ_WRITE = 'read_write'
    READ_ONLY = 'read_only'


class DatabaseNotInitialized(Exception):
    def __init__(self) -> None:
        super().__init__('Database engines are not set up, call `src.setup.run()` before opening a session')


def get_database_url(host: str | None = None) -> URL:
    """
    DATABASE_URL wins when present, otherwise a postgres url is
    assembled from the DB_* settings. `host` swaps in the replica.
    """
    if settings.DATABASE_URL:
        url = make_url(settings.DATABASE_URL)
        # Railway hands out postgres:// which sqlalchemy no longer accepts
        if url.drivername in ('postgres', 'postgresql'):
            url = url.set(drivername='postgresql+psycopg2')
        if host and url.get_backend_name() == 'postgresql':
            url = url.set(host=host)
        return url

    return URL.create(
        drivername='postgresql+psycopg2',
        username=settings.DB_USER,
        password=settings.DB_PASSWORD,
        host=host or settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_NAME,
    )


def create_db_engine(url: URL) -> Engine:
    if url.get_backend_name() == 'sqlite':
        # Local runs and tests, requests are served from a threadpool
        return create_engine(
            url,
            connect_args={'check_same_thread': False},
            enable_from_linting=True,
        )

    statement_timeout = settings.DB_STATEMENT_TIMEOUT_MS
    return create_engine(
        url,
        poolclass=NullPool,
        connect_args={
            'options': f'-c timezone=utc -c statement_timeout={statement_timeout}',
            'connect_timeout': settings.DB_CONNECT_TIMEOUT_SECONDS,
        },
        pool_pre_ping=True,
        enable_from_linting=True,  # Ensures we check for Cartesians
    )


_rw_engine: Engine | None = None
_ro_engine: Engine | None = None
_rw_session_maker: sessionmaker | None = None
_ro_session_maker: sessionmaker | None = None


def initialize() -> None:
    """
    Build engines and session makers. Safe to call more than once,
    only the first call after start (or after `teardown`) does work.
    """
    global _rw_engine, _ro_engine, _rw_session_maker, _ro_session_maker
    if _rw_engine is not None:
        return

    rw_url = get_database_url()
    _rw_engine = create_db_engine(rw_url)
    if rw_url.get_backend_name() == 'sqlite' or settings.DB_HOST_RO == settings.DB_HOST:
        _ro_engine = _rw_engine
    else:
        _ro_engine = create_db_engine(get_database_url(host=settings.DB_HOST_RO))

    _rw_session_maker = sessionmaker(autocommit=False, autoflush=False, bind=_rw_engine)
    _ro_session_maker = sessionmaker(autocommit=False, autoflush=False, bind=_ro_engine)
    logger.info(f'database engine ready: {rw_url.render_as_string(hide_password=True)}')


def teardown() -> None:
    """
    Release every pooled connection. A later `initialize` starts over.
    """
    global _rw_engine, _ro_engine, _rw_session_maker, _ro_session_maker
    for engine in {_rw_engine, _ro_engine}:
        if engine is not None:
            engine.dispose()
    _rw_engine = _ro_engine = None
    _rw_session_maker = _ro_session_maker = None
    logger.info('database engine disposed')


def get_engine(mode: DatabaseMode = DatabaseMode.READ_WRITE) -> Engine:
    engine = _rw_engine if mode == DatabaseMode.READ_WRITE else _ro_engine
    if engine is None:
        raise DatabaseNotInitialized()
    return engine


def _get_session_maker(mode: DatabaseMode) -> sessionmaker:
    session_maker = _rw_session_maker if mode == DatabaseMode.READ_WRITE else _ro_session_maker
    if session_maker is None:
        raise DatabaseNotInitialized()
    return session_maker


if settings.DB_LOG_STATEMENTS:
    # Log statements and their execution times
    @event.listens_for(Engine, 'before_cursor_execute')
    def before_cursor_execute(
        conn: Any, cursor: Any, statement: str, parameters: Any, context: Any, executemany: bool
    ) -> None:
        conn.info.setdefault('query_start_time', []).append(time.time())
        logger.info(f'Start Query: {statement} params={parameters}')

    @event.listens_for(Engine, 'after_cursor_execute')
    def after_cursor_execute(
        conn: Any, cursor: Any, statement: str, parameters: Any, context: Any, executemany: bool
    ) -> None:
        total = time.time() - conn.info['query_start_time'].pop(-1)
        logger.info(f'Query Time: {total}')


# Context variables for session storage and mode
# Should be thread safe as well as coroutine safe!
_session_storage: ContextVar[SqlAlchemySession | None] = ContextVar('_session_storage', default=None)
_session_mode: ContextVar[DatabaseMode] = ContextVar('_session_mode', default=DatabaseMode.READ_WRITE)


class ImplicitCartesianDetected(Exception): ...


def raise_for_implicit_cartesians(self: Any, stmt_type: str = 'SELECT') -> None:
    """
    The default behavior for implicit cartesians is to warn, we want
    to raise instead. A leaderboard joined without a condition would
    silently multiply every member's totals.
    """
    the_rest, start_with = self.lint()
    if the_rest:
        froms_str = ', '.join(f'"{self.froms[from_]}"' for from_ in the_rest)
        raise ImplicitCartesianDetected(
            f'{stmt_type} statement: Implicit cartesian product detected between '
            f'FROM element(s) {froms_str} and FROM element "{self.froms[start_with]}". '
            'Apply join condition(s) between these elements.'
        )


# Monkeypatch the warn method to raise errors instead of warnings for implicit cartesians
FromLinter.warn = raise_for_implicit_cartesians  # type: ignore[method-assign]


class SessionNotAvailable(Exception):
    def __init__(self) -> None:
        msg = """
        Either you are not currently in a request context, or you need to manually
        create a session context by using a `db` instance as a context manager e.g.:
        with db():
            db.session.execute(select(User))
        """
        super().__init__(msg)


class SessionManagerMeta(type):
    """
    Access session as a property on context manager
    without having to init
    """

    @property
    def session(self) -> SqlAlchemySession:
        session = _session_storage.get()
        if session is None:
            raise SessionNotAvailable

        return session

    @property
    def mode(self) -> DatabaseMode:
        return _session_mode.get()


class SessionManager(metaclass=SessionManagerMeta):
    def __init__(
        self,
        session_kwargs: Dict[str, Any] | None = None,
        commit_on_success: bool = False,
        mode: DatabaseMode = DatabaseMode.READ_WRITE,
    ):
        self.session_token: Optional[Any] = None
        self.mode_token: Optional[Any] = None
        self.session_kwargs = session_kwargs or {}
        self.commit_on_success = commit_on_success
        self.mode = mode

    def enter(self) -> Any:
        self.mode_token = _session_mode.set(self.mode)

        # Tests open a session before routing through the middleware,
        # reuse it so fixtures and requests see the same data
        if _session_storage.get() is None:
            session = _get_session_maker(self.mode)(**self.session_kwargs)
            self.session_token = _session_storage.set(session)

        if self.mode == DatabaseMode.READ_ONLY:
            ro_session = _session_storage.get()
            if ro_session is None:
                raise SessionNotAvailable()
            setattr(ro_session, '_is_read_only', True)

            @event.listens_for(ro_session, 'before_flush')
            def prevent_write_on_readonly(session: SqlAlchemySession, *args: Any, **kwargs: Any) -> None:
                if len(session.new) > 0 or len(session.deleted) > 0 or len(session.dirty) > 0:
                    raise RuntimeError('Cannot modify database in read-only mode')

        return type(self)

    def exit(self, exception: BaseException | None) -> None:
        exc_type, exc_value, exc_tb = sys.exc_info()
        self.__exit__(exc_type, exc_value, exc_tb)

    def cleanup(self) -> None:
        # Only close sessions this manager opened
        if self.session_token:
            session = _session_storage.get()
            if session is not None:
                session.close()
            _session_storage.reset(self.session_token)
        if self.mode_token:
            _session_mode.reset(self.mode_token)

    def __enter__(self) -> Any:
        return self.enter()

    def __exit__(self, exc_type: Any, exc_value: Any, traceback: Any) -> None:
        session = _session_storage.get()
        is_success = exc_type is None

        if session is not None and self.session_token:
            if self.commit_on_success and is_success and self.mode == DatabaseMode.READ_WRITE:
                session.commit()
            else:
                session.rollback()

        self.cleanup()


# This is what external callers should access!
db: SessionManagerMeta = SessionManager


class ReadOnlySession(SessionManager):
    """
    Isolated read-only session that prevents any write operations.

    with ReadOnlySession() as session:
        session.execute(select(DailyMetric))
    """

    def __init__(self, session_kwargs: Dict[str, Any] | None = None) -> None:
        super().__init__(session_kwargs=session_kwargs, commit_on_success=False, mode=DatabaseMode.READ_ONLY)
        self.current_session: Optional[SqlAlchemySession] = None

    def enter(self) -> Any:
        self.current_session = _session_storage.get()
        new_session = _get_session_maker(DatabaseMode.READ_ONLY)(**self.session_kwargs)
        self.session_token = _session_storage.set(new_session)
        self.mode_token = _session_mode.set(DatabaseMode.READ_ONLY)
        return new_session
