"""Registration and soft deletion of cases and family members."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from caseflow.domain.errors import EntityNotFoundError
from caseflow.domain.model import CaseEntity, EntityKind, as_utc, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from caseflow.domain.ports import UnitOfWorkFactory

log = logging.getLogger(__name__)


class CaseDirectory:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.uow_factory = uow_factory
        self.clock = clock

    def register_case(self, case_id: str) -> CaseEntity:
        """Register ``case_id``; registering an existing live case returns it."""
        return self._register(CaseEntity(id=case_id, kind=EntityKind.CASE, case_id=case_id))

    def register_member(self, member_id: str, case_id: str, *, relation: str | None = None) -> CaseEntity:
        with self.uow_factory() as uow:
            owner = uow.repositories.entities.get(case_id)
        if owner is None or owner.is_deleted or owner.kind is not EntityKind.CASE:
            raise EntityNotFoundError(case_id)
        return self._register(
            CaseEntity(
                id=member_id,
                kind=EntityKind.FAMILY_MEMBER,
                case_id=case_id,
                relation=relation,
            )
        )

    def _register(self, entity: CaseEntity) -> CaseEntity:
        entity.created_at = as_utc(self.clock())
        with self.uow_factory() as uow:
            existing = uow.repositories.entities.get(entity.id)
            if existing is not None:
                if existing.is_deleted:
                    raise EntityNotFoundError(entity.id)
                return existing
            uow.repositories.entities.add(entity)
            uow.commit()
        log.info("Registered %s %s (case %s)", entity.kind, entity.id, entity.case_id)
        return entity

    def get(self, entity_id: str) -> CaseEntity:
        with self.uow_factory() as uow:
            entity = uow.repositories.entities.get(entity_id)
        if entity is None or entity.is_deleted:
            raise EntityNotFoundError(entity_id)
        return entity

    def members(self, case_id: str) -> list[CaseEntity]:
        with self.uow_factory() as uow:
            entities = uow.repositories.entities.list_for_case(case_id)
        return [
            entity
            for entity in entities
            if entity.kind is EntityKind.FAMILY_MEMBER and not entity.is_deleted
        ]

    def retire(self, entity_id: str) -> CaseEntity:
        """Soft-delete ``entity_id``; a case takes its family members with it."""
        now = as_utc(self.clock())
        with self.uow_factory() as uow:
            repositories = uow.repositories
            entity = repositories.entities.get(entity_id)
            if entity is None or entity.is_deleted:
                raise EntityNotFoundError(entity_id)
            entity.soft_delete(at=now)
            repositories.entities.update(entity)
            if entity.kind is EntityKind.CASE:
                for member in repositories.entities.list_for_case(entity.id):
                    if member.id != entity.id and not member.is_deleted:
                        member.soft_delete(at=now)
                        repositories.entities.update(member)
            uow.commit()
        log.info("Retired %s %s", entity.kind, entity.id)
        return entity
