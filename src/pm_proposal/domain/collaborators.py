"""External collaborator contracts consumed by the orchestrator.

Unit tests inject in-memory fakes that conform to these Protocols.
"""

from typing import Protocol


class ValueTransferProtocol(Protocol):
    async def deposit(self, payer: str, amount: int) -> bool: ...

    async def payout(self, payee: str, amount: int) -> bool: ...


class ActionExecutorProtocol(Protocol):
    async def execute(self, target: str, payload: str, amount: int) -> None:
        """Perform the treasury action. Raise on failure."""
        ...
