from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Protocol, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.orm import Session

from db.repositories import (
    AssetRepository,
    FiatCurrencyRepository,
    MovementRepository,
    PriceHistoryRepository,
    PriceSyncConfigRepository,
    WalletRepository,
)
from domain.catalog import Asset, FiatCurrency, PriceSyncConfig, Wallet
from domain.ledger_store import LedgerStore
from domain.movements import MOVEMENT_TYPES
from domain.price_history import PriceHistoryEntry

EntityT = TypeVar("EntityT", bound=BaseModel)


class _Repository(Protocol):
    def create(self, entity: Any) -> Any: ...

    def update(self, entity: Any) -> Any: ...

    def delete(self, entity_id: UUID) -> None: ...

    def list(self) -> list[Any]: ...


class SqlLedgerStore(LedgerStore):
    """Ledger store on top of a SQLAlchemy session.

    Outside of `transaction()` every write is committed on its own; inside it the
    whole block is committed at the end or rolled back on the first exception.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._depth = 0
        self._movements = MovementRepository(session)
        self._price_history = PriceHistoryRepository(session)
        self._repositories: dict[type[BaseModel], _Repository] = {
            Wallet: WalletRepository(session),
            Asset: AssetRepository(session),
            FiatCurrency: FiatCurrencyRepository(session),
            PriceSyncConfig: PriceSyncConfigRepository(session),
        }

    def insert(self, entity: BaseModel) -> None:
        if isinstance(entity, MOVEMENT_TYPES):
            self._movements.create(entity)
        else:
            self._repository_for(type(entity)).create(entity)
        self._commit()

    def delete(self, entity: BaseModel) -> None:
        entity_id = getattr(entity, "id")
        if isinstance(entity, MOVEMENT_TYPES):
            self._movements.delete(entity_id)
        else:
            self._repository_for(type(entity)).delete(entity_id)
        self._commit()

    def replace(self, entity: BaseModel) -> None:
        if isinstance(entity, MOVEMENT_TYPES):
            self._movements.update(entity)
        else:
            self._repository_for(type(entity)).update(entity)
        self._commit()

    def fetch(
        self,
        entity_type: type[EntityT],
        predicate: Callable[[EntityT], bool] | None = None,
        order: Callable[[EntityT], Any] | None = None,
    ) -> list[EntityT]:
        entities: list[Any]
        if entity_type in MOVEMENT_TYPES:
            kind = entity_type.model_fields["kind"].default
            entities = self._movements.list(kind)
        elif entity_type is PriceHistoryEntry:
            entities = self._price_history.list()
        else:
            entities = self._repository_for(entity_type).list()

        if predicate is not None:
            entities = [entity for entity in entities if predicate(entity)]
        if order is not None:
            entities.sort(key=order)
        return entities

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self._session.rollback()
            raise
        self._depth -= 1
        self._commit()

    def _commit(self) -> None:
        if self._depth == 0:
            self._session.commit()

    def _repository_for(self, entity_type: type[BaseModel]) -> _Repository:
        repository = self._repositories.get(entity_type)
        if repository is None:
            raise TypeError(f"{entity_type.__name__} is not stored by {type(self).__name__}")
        return repository


__all__ = ["SqlLedgerStore"]
