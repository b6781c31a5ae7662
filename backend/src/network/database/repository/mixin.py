from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from loguru import logger
from sqlalchemy import desc
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, MultipleResultsFound, NoResultFound, SQLAlchemyError
from sqlalchemy.orm import InstrumentedAttribute, Query, Session
from sqlalchemy.sql.elements import BinaryExpression, ColumnElement, UnaryExpression

from src.common.domain import BaseDomain
from src.network.database.repository.exceptions import (
    MultipleRepositoryObjectsFound,
    PreventingModelTruncation,
    RepositoryObjectNotFound,
    StoreError,
)
from src.network.database.session import db

if TYPE_CHECKING:
    from src.common.model import BaseModel


def utc_now() -> datetime:
    """
    Naive UTC, matches what `func.now()` writes with timezone=utc connections
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseQueryManager:
    def __init__(self, model: Type['BaseModel']) -> None:  # type: ignore[type-arg]
        self.model = model

    def get_query(self, *clauses: Any, **specification: Any) -> 'Query[BaseModel]':  # type: ignore[type-arg]
        query = self.model._get_session().query(self.model)
        for clause in clauses:
            query = query.where(clause)
        for key, value in specification.items():
            query = self.model._parse_specification(query, key, value)
        return query


ReadDomainType = TypeVar('ReadDomainType', bound=BaseDomain)
CreateDomainType = TypeVar('CreateDomainType', bound=BaseDomain)

# Dialects with a native INSERT .. ON CONFLICT
_INSERT_BY_DIALECT = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


class RepositoryMixin(Generic[ReadDomainType, CreateDomainType]):
    """
    Database access layer. All interaction with the database should be routed
    through this layer. all public interfaces accept domains subclasses from the
    pydantic base class with from_attributes for simple domain -> orm mapping
    """

    __create_domain__: Type[CreateDomainType] = NotImplemented
    __read_domain__: Type[ReadDomainType] = NotImplemented
    query_manager: Type[BaseQueryManager] = BaseQueryManager

    @classmethod
    def _get_session(cls) -> Session:
        return db.session

    @classmethod
    def get_query(cls, *clauses: Any, **specification: Any) -> 'Query[BaseModel]':  # type: ignore[type-arg]
        return cls.query_manager(cls).get_query(*clauses, **specification)  # type: ignore[arg-type]

    @classmethod
    def get(cls, *clauses: Union[BinaryExpression[Any], ColumnElement[bool]], **specification: Any) -> ReadDomainType:
        instance = cls._get(*clauses, **specification)

        return cls._to_domain(instance)

    @classmethod
    def get_or_none(cls, *clauses: Any, **specification: Any) -> ReadDomainType | None:
        try:
            instance = cls._get(*clauses, **specification)
        except RepositoryObjectNotFound:
            return None

        return cls._to_domain(instance)

    @classmethod
    def _get(cls, *clauses: Any, **specification: Any) -> 'BaseModel[Any, Any]':
        try:
            return cls.get_query(*clauses, **specification).one()
        except MultipleResultsFound:
            raise MultipleRepositoryObjectsFound(f'Multiple results found for {cls.__name__}: {specification}!')
        except NoResultFound:
            raise RepositoryObjectNotFound(f'{cls.__name__}: {specification} not found!')

    @classmethod
    def latest(
        cls,
        *clauses: Any,
        by: 'InstrumentedAttribute[Any]' | List['InstrumentedAttribute[Any]'],
    ) -> ReadDomainType | None:
        if not isinstance(by, list):
            by = [by]

        query = cls.get_query(*clauses)
        for attribute in by:
            query = query.order_by(desc(attribute))

        latest_record = query.first()
        if latest_record is None:
            return None

        return cls._to_domain(latest_record)

    @classmethod
    def list(
        cls,
        *clauses: Any,
        ordering: Optional[List[Union[str, UnaryExpression]]] = None,
        **specification: Any,
    ) -> List[ReadDomainType]:
        query = cls.get_query(*clauses, **specification)
        if ordering:
            query = query.order_by(*cls._parse_ordering(ordering))
        return [cls._to_domain(obj) for obj in query]

    @classmethod
    def count(cls, *clauses: Any, **specification: Any) -> int:
        return int(cls.get_query(*clauses, **specification).count())

    @classmethod
    def create(cls, domain_obj: CreateDomainType) -> ReadDomainType:
        model_instance = cls._create(**domain_obj.to_dict())
        return cls._to_domain(model_instance)

    @classmethod
    def get_or_create(
        cls,
        defaults: Dict[str, Any] | None = None,
        **specification: Any,
    ) -> Tuple[ReadDomainType, bool]:
        defaults = defaults or {}
        instance = cls.get_or_none(**specification)
        if instance is not None:
            return instance, False

        model_instance = cls._create(**specification, **defaults)
        return cls._to_domain(model_instance), True

    @classmethod
    def update(cls, id: str, **updates: Any) -> ReadDomainType:
        model_instance = cls._get(id=id)
        for key, value in updates.items():
            if not hasattr(model_instance, key):
                raise ValueError(f"The key '{key}' is not a valid attribute for this model.")
            setattr(model_instance, key, value)

        try:
            cls._get_session().flush([model_instance])
        except IntegrityError:
            cls._get_session().rollback()
            raise

        return cls._to_domain(model_instance)

    @classmethod
    def delete(cls, *clauses: Union[BinaryExpression[Any], ColumnElement[bool]]) -> int:
        if not clauses:
            raise PreventingModelTruncation(f'Must pass clauses to avoid truncating {cls.__name__}')

        return cls.get_query(*clauses).delete(synchronize_session=False)

    @classmethod
    def bulk_create_ignore(
        cls,
        mappings: Sequence[Dict[str, Any]],
        conflict_columns: Sequence[str] | None = None,
        chunk_size: int = 1000,
    ) -> None:
        """
        Insert rows, silently skipping any that collide with an existing
        unique constraint (all constraints when `conflict_columns` is None)
        """
        for chunk in cls._chunks(list(mappings), chunk_size):
            rows = [{'id': cls.generate_id(), **mapping} for mapping in chunk]  # type: ignore[attr-defined]
            statement = cls._insert()(cls).values(rows)
            statement = statement.on_conflict_do_nothing(index_elements=conflict_columns)
            try:
                cls._get_session().execute(statement)
            except IntegrityError:
                cls._get_session().rollback()
                raise

    @classmethod
    def upsert(
        cls,
        values: Dict[str, Any],
        conflict_columns: Sequence[str],
        replace_columns: Sequence[str],
    ) -> None:
        """
        Single statement INSERT .. ON CONFLICT DO UPDATE. On conflict every
        column in `replace_columns` is overwritten with the incoming value,
        nothing is accumulated. `modified_at` is stamped on both paths.
        """
        now = utc_now()
        row = {'id': cls.generate_id(), **values, 'modified_at': now}  # type: ignore[attr-defined]
        statement = cls._insert()(cls).values(row)
        set_ = {column: statement.excluded[column] for column in replace_columns}
        set_['modified_at'] = now
        statement = statement.on_conflict_do_update(index_elements=list(conflict_columns), set_=set_)
        try:
            cls._get_session().execute(statement)
        except SQLAlchemyError as e:
            logger.error(f'{cls.__name__} upsert failed on {dict((c, values.get(c)) for c in conflict_columns)}')
            raise StoreError(f'{cls.__name__} upsert failed', context={'error': str(e)}) from e

    @classmethod
    def _insert(cls) -> Any:
        dialect = cls._get_session().get_bind().dialect.name
        try:
            return _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise NotImplementedError(f'ON CONFLICT inserts are not supported for {dialect}')

    @classmethod
    def _create(cls, **attributes: Any) -> 'BaseModel[Any, Any]':
        model_instance = cls(**attributes)
        cls._get_session().add(model_instance)
        try:
            cls._get_session().flush([model_instance])
        except IntegrityError:
            cls._get_session().rollback()
            raise

        return model_instance  # type: ignore[return-value]

    @classmethod
    def _parse_ordering(
        cls, ordering: List[Union[str, 'UnaryExpression[Any]']] | None = None
    ) -> List['UnaryExpression[Any]']:
        """
        Parses str references for a field like:
        ['-date', 'user_id']
        """
        order_expressions = []
        for order in ordering or []:
            if isinstance(order, str):
                if order.startswith('-'):
                    order_expressions.append(getattr(cls, order[1:]).desc())
                else:
                    order_expressions.append(getattr(cls, order).asc())
            else:
                # Assume already an expression
                order_expressions.append(order)

        return order_expressions

    @classmethod
    def _parse_specification(cls, query: Any, key: Any, value: Any) -> Any:
        return query.where(getattr(cls, key) == value)

    @classmethod
    def _to_domain(cls, model_instance: 'BaseModel[Any, Any]') -> ReadDomainType:
        return cls.__read_domain__.model_validate(model_instance)  # type: ignore[no-any-return]

    @classmethod
    def _chunks(cls, lst: List[Any], chunk_size: int) -> Any:
        """Yield successive n-sized chunks from lst."""
        for i in range(0, len(lst), chunk_size):
            yield lst[i : i + chunk_size]
