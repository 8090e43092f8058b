"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Authorization
  2xxx: Economic (balances, slippage, deadlines)
  3xxx: Lifecycle state
  4xxx: Validation
  5xxx: Fixed-point arithmetic / quantity bounds
  6xxx: Consistency (resolution)
  9xxx: System / external collaborators
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- Taxonomy ---

class AuthorizationError(AppError):
    """Caller lacks the capability required for the operation."""

    def __init__(self, message: str, code: int = 1000) -> None:
        super().__init__(code, message, 403)


class EconomicError(AppError):
    def __init__(self, message: str, code: int = 2000) -> None:
        super().__init__(code, message, 422)


class StateError(AppError):
    """Operation is not valid in the current lifecycle state."""

    def __init__(self, message: str, code: int = 3000) -> None:
        super().__init__(code, message, 409)


class ValidationError(AppError):
    def __init__(self, message: str, code: int = 4000) -> None:
        super().__init__(code, message, 400)


class ArithmeticOverflowError(AppError):
    """Quantity bound exceeded or fixed-point domain error."""

    def __init__(self, message: str, code: int = 5000) -> None:
        super().__init__(code, message, 422)


class ConsistencyError(AppError):
    def __init__(self, message: str, code: int = 6000) -> None:
        super().__init__(code, message, 409)


# --- 1xxx: Authorization ---

class UnauthorizedCallerError(AuthorizationError):
    def __init__(self, caller: str, capability: str) -> None:
        super().__init__(f"Caller {caller} is not authorized for {capability}", 1001)


class CapabilityAlreadyBoundError(AuthorizationError):
    def __init__(self, capability: str) -> None:
        super().__init__(f"Capability already bound: {capability}", 1002)


class InvalidTokenError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("Token is invalid or expired", 1003)
        self.http_status = 401


class CancelNotAllowedError(AuthorizationError):
    def __init__(self, caller: str, proposal_id: int) -> None:
        super().__init__(f"Caller {caller} may not cancel proposal {proposal_id}", 1004)


# --- 2xxx: Economic ---

class InsufficientBalanceError(EconomicError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient balance: required {required}, available {available}",
            2001,
        )


class SlippageExceededError(EconomicError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Slippage limit exceeded: {detail}", 2002)


class DeadlineExpiredError(EconomicError):
    def __init__(self, deadline: int, now: int) -> None:
        super().__init__(f"Deadline {deadline} has passed (now={now})", 2003)


class InsufficientLiquidityError(EconomicError):
    def __init__(self, liquidity: int, minimum: int) -> None:
        super().__init__(
            f"Liquidity {liquidity} is below the minimum of {minimum}", 2004
        )


class NothingToRedeemError(EconomicError):
    def __init__(self, holder: str, proposal_id: int) -> None:
        super().__init__(
            f"Holder {holder} has nothing to redeem on proposal {proposal_id}", 2005
        )


class InsufficientTreasuryError(EconomicError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Treasury holds {available}, proposal requires {required}", 2006
        )


# --- 3xxx: State ---

class ProposalNotFoundError(StateError):
    def __init__(self, proposal_id: int) -> None:
        super().__init__(f"Proposal not found: {proposal_id}", 3001)
        self.http_status = 404


class MarketNotFoundError(StateError):
    def __init__(self, market_id: str) -> None:
        super().__init__(f"Market not found: {market_id}", 3002)
        self.http_status = 404


class MarketNotActiveError(StateError):
    def __init__(self, market_id: str) -> None:
        super().__init__(f"Market is not active: {market_id}", 3003)


class InvalidTransitionError(StateError):
    def __init__(self, proposal_id: int, current: str, operation: str) -> None:
        super().__init__(
            f"Proposal {proposal_id} in state {current} cannot {operation}", 3004
        )


class TimingError(StateError):
    def __init__(self, detail: str) -> None:
        super().__init__(detail, 3005)


# --- 5xxx: Arithmetic ---

class QuantityOutOfBoundsError(ArithmeticOverflowError):
    def __init__(self, quantity: int, low: int, high: int) -> None:
        super().__init__(
            f"Outstanding quantity {quantity} outside [{low}, {high}]", 5001
        )


# --- 6xxx: Consistency ---

class NoClearWinnerError(ConsistencyError):
    def __init__(self, gap_bps: int, threshold_bps: int) -> None:
        super().__init__(
            f"No clear winner: price gap {gap_bps} bps below threshold {threshold_bps} bps",
            6001,
        )


# --- 9xxx: System / external ---

class TransferFailedError(AppError):
    def __init__(self, direction: str, party: str, amount: int) -> None:
        super().__init__(9003, f"Value transfer failed: {direction} {amount} for {party}", 502)


class ActionExecutionError(AppError):
    def __init__(self, target: str, detail: str) -> None:
        super().__init__(9004, f"Treasury action on {target} failed: {detail}", 502)


class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
