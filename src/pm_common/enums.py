"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class ProposalState(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    RESOLVED = "RESOLVED"
    EXECUTED = "EXECUTED"
    REJECTED = "REJECTED"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        return self in (ProposalState.EXECUTED, ProposalState.REJECTED, ProposalState.CANCELED)


class OutcomeSide(str, Enum):
    """Which conditional market a token belongs to."""
    PASS = "PASS"
    FAIL = "FAIL"


class Outcome(str, Enum):
    """Binary outcome inside a single LMSR market."""
    YES = "YES"
    NO = "NO"

    @property
    def other(self) -> "Outcome":
        return Outcome.NO if self is Outcome.YES else Outcome.YES


class EventType(str, Enum):
    PROPOSAL_CREATED = "ProposalCreated"
    OUTCOME_BOUGHT = "OutcomeBought"
    OUTCOME_SOLD = "OutcomeSold"
    TRADING_CLOSED = "TradingClosed"
    PROPOSAL_RESOLVED = "ProposalResolved"
    PROPOSAL_EXECUTED = "ProposalExecuted"
    PROPOSAL_REJECTED = "ProposalRejected"
    PROPOSAL_CANCELED = "ProposalCanceled"
    WINNINGS_REDEEMED = "WinningsRedeemed"
    CANCEL_REFUNDED = "CancelRefunded"
    TREASURY_DEPOSIT = "TreasuryDeposit"
    ORACLE_POKED = "OraclePoked"
