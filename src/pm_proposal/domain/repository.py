"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_proposal.domain.events import DomainEvent
from src.pm_proposal.domain.models import ProposalSnapshot


class ProposalRepositoryProtocol(Protocol):
    async def save_proposal_state(
        self, db: AsyncSession, snapshot: ProposalSnapshot
    ) -> None: ...

    async def load_proposal_state(
        self, db: AsyncSession, proposal_id: int
    ) -> ProposalSnapshot | None: ...

    async def list_proposal_ids(self, db: AsyncSession) -> list[int]: ...

    async def append_events(
        self, db: AsyncSession, events: list[DomainEvent]
    ) -> None: ...

    async def save_treasury_balance(self, db: AsyncSession, balance: int) -> None: ...

    async def load_treasury_balance(self, db: AsyncSession) -> int: ...
