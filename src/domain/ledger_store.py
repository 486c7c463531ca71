from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, ContextManager, Iterator, Protocol, TypeVar
from uuid import UUID

from pydantic import BaseModel

from .ledger import LedgerSnapshot
from .movements import MOVEMENT_TYPES, Movement

EntityT = TypeVar("EntityT", bound=BaseModel)


class LedgerStore(Protocol):
    """Queryable collection of catalog entries, movements and price history."""

    def insert(self, entity: BaseModel) -> None: ...

    def delete(self, entity: BaseModel) -> None: ...

    def replace(self, entity: BaseModel) -> None: ...

    def fetch(
        self,
        entity_type: type[EntityT],
        predicate: Callable[[EntityT], bool] | None = None,
        order: Callable[[EntityT], Any] | None = None,
    ) -> list[EntityT]: ...

    def transaction(self) -> ContextManager[None]: ...


class InMemoryLedgerStore(LedgerStore):
    def __init__(self) -> None:
        self._entities: dict[type[BaseModel], dict[UUID, BaseModel]] = {}

    def insert(self, entity: BaseModel) -> None:
        table = self._entities.setdefault(type(entity), {})
        entity_id = self._entity_id(entity)
        if entity_id in table:
            raise ValueError(f"{type(entity).__name__} {entity_id} already exists")
        table[entity_id] = entity

    def delete(self, entity: BaseModel) -> None:
        self._entities.get(type(entity), {}).pop(self._entity_id(entity), None)

    def replace(self, entity: BaseModel) -> None:
        table = self._entities.get(type(entity), {})
        entity_id = self._entity_id(entity)
        if entity_id not in table:
            raise KeyError(f"{type(entity).__name__} {entity_id} does not exist")
        table[entity_id] = entity

    def fetch(
        self,
        entity_type: type[EntityT],
        predicate: Callable[[EntityT], bool] | None = None,
        order: Callable[[EntityT], Any] | None = None,
    ) -> list[EntityT]:
        entities: list[EntityT] = list(self._entities.get(entity_type, {}).values())  # type: ignore[arg-type]
        if predicate is not None:
            entities = [entity for entity in entities if predicate(entity)]
        if order is not None:
            entities.sort(key=order)
        return entities

    @contextmanager
    def transaction(self) -> Iterator[None]:
        backup = {
            entity_type: {entity_id: entity.model_copy(deep=True) for entity_id, entity in table.items()}
            for entity_type, table in self._entities.items()
        }
        try:
            yield
        except BaseException:
            self._entities = backup
            raise

    @staticmethod
    def _entity_id(entity: BaseModel) -> UUID:
        return getattr(entity, "id")


def fetch_movements(store: LedgerStore) -> list[Movement]:
    movements: list[Movement] = []
    for movement_type in MOVEMENT_TYPES:
        movements.extend(store.fetch(movement_type))
    movements.sort(key=lambda movement: movement.date)
    return movements


def load_snapshot(store: LedgerStore) -> LedgerSnapshot:
    return LedgerSnapshot(fetch_movements(store))


__all__ = ["InMemoryLedgerStore", "LedgerStore", "fetch_movements", "load_snapshot"]
