"""In-process implementations of the value-transfer and action collaborators.

InMemoryVault tracks the value held in custody plus per-party balances.
With ``require_funds=False`` (API deployment) deposits always clear and
parties may go negative; payer funding is assumed to happen upstream.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class InMemoryVault:
    def __init__(self, require_funds: bool = True) -> None:
        self._require_funds = require_funds
        self._accounts: dict[str, int] = defaultdict(int)
        self._custody = 0
        self.fail_next_deposit = False
        self.fail_next_payout = False

    @property
    def custody_balance(self) -> int:
        return self._custody

    def balance_of(self, party: str) -> int:
        return self._accounts.get(party, 0)

    def fund(self, party: str, amount: int) -> None:
        self._accounts[party] += amount

    async def deposit(self, payer: str, amount: int) -> bool:
        if self.fail_next_deposit:
            self.fail_next_deposit = False
            logger.warning("Deposit refused (injected): payer=%s amount=%d", payer, amount)
            return False
        if self._require_funds and self._accounts.get(payer, 0) < amount:
            logger.warning("Deposit refused: payer=%s amount=%d", payer, amount)
            return False
        self._accounts[payer] -= amount
        self._custody += amount
        return True

    async def payout(self, payee: str, amount: int) -> bool:
        if self.fail_next_payout:
            self.fail_next_payout = False
            logger.warning("Payout refused (injected): payee=%s amount=%d", payee, amount)
            return False
        if amount > self._custody:
            logger.error("Payout exceeds custody: payee=%s amount=%d", payee, amount)
            return False
        self._custody -= amount
        self._accounts[payee] += amount
        return True


@dataclass(frozen=True)
class ExecutedAction:
    target: str
    payload: str
    amount: int


class InMemoryActionExecutor:
    """Records executed actions; ``fail_with`` makes the next call raise it."""

    def __init__(self) -> None:
        self.executed: list[ExecutedAction] = []
        self.fail_with: Exception | None = None

    async def execute(self, target: str, payload: str, amount: int) -> None:
        if self.fail_with is not None:
            exc, self.fail_with = self.fail_with, None
            raise exc
        self.executed.append(ExecutedAction(target, payload, amount))
        logger.info("Treasury action executed: target=%s amount=%d", target, amount)
