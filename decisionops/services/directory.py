"""Tenant-scoped lookups for people and stakeholder records.

Both directories are thin read-only views over their tables. A row that exists
under another tenant is indistinguishable from a missing one.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from decisionops.core.exceptions import NotFoundError
from decisionops.db.models.person import Person
from decisionops.db.models.stakeholder import Stakeholder


class PersonDirectory:
    async def get(self, session: AsyncSession, person_id: uuid.UUID, tenant_id: uuid.UUID) -> Person:
        """Load a person in the tenant.

        Raises:
            NotFoundError: Unknown id or a person from another tenant
        """
        person = await self.find(session, person_id, tenant_id)
        if person is None:
            raise NotFoundError("Person", person_id)
        return person

    async def find(self, session: AsyncSession, person_id: uuid.UUID, tenant_id: uuid.UUID) -> Person | None:
        result = await session.execute(
            select(Person).where(Person.id == person_id, Person.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        first_name: str,
        last_name: str = "",
        email: str | None = None,
    ) -> Person:
        person = Person(tenant_id=tenant_id, first_name=first_name, last_name=last_name, email=email)
        session.add(person)
        await session.flush()
        return person


class StakeholderDirectory:
    async def find_by_person(
        self, session: AsyncSession, person_id: uuid.UUID | None, tenant_id: uuid.UUID
    ) -> Stakeholder | None:
        """Return the stakeholder record backing a person, if the tenant tracks one."""
        if person_id is None:
            return None
        result = await session.execute(
            select(Stakeholder).where(Stakeholder.person_id == person_id, Stakeholder.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()
