"""Treasury balance held by the engine on behalf of the DAO.

Funds arrive through treasury deposits and trading fees and leave only when
a proposal executes. An execution first reserves its amount and settles it
once the action has run, so ``balance`` only ever shows settled funds.
"""
import logging

from src.pm_common.errors import InsufficientTreasuryError, ValidationError

logger = logging.getLogger(__name__)


class Treasury:
    def __init__(self, balance: int = 0) -> None:
        if balance < 0:
            raise ValueError("Treasury balance cannot start negative")
        self._balance = balance
        self._reserved = 0

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def available(self) -> int:
        return self._balance - self._reserved

    def credit(self, amount: int) -> None:
        if amount < 0:
            raise ValidationError(f"Treasury credit must be non-negative, got {amount}")
        self._balance += amount

    def reserve(self, amount: int) -> None:
        if amount < 0:
            raise ValidationError(f"Treasury reservation must be non-negative, got {amount}")
        if amount > self.available:
            raise InsufficientTreasuryError(required=amount, available=self.available)
        self._reserved += amount

    def release(self, amount: int) -> None:
        self._reserved -= amount

    def settle(self, amount: int) -> None:
        """Turn a reservation into a debit."""
        self._reserved -= amount
        self._balance -= amount
        logger.info("Treasury debit: amount=%d remaining=%d", amount, self._balance)
