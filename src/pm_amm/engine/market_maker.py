"""LmsrMarketMaker — binary LMSR pricing engine with an embedded TWAP oracle.

Mutating entrypoints (create/buy/sell/close) are restricted to the single
identity bound at construction. Reads and ``poke`` are open to anyone.
Every mutation validates fully before touching market state, so a raised
error leaves the market exactly as it was.
"""
import logging

from src.pm_amm.domain import lmsr
from src.pm_amm.domain.fixed_point import LN2_WAD, div_wad
from src.pm_amm.domain.models import Market, MarketInfo, TradeResult
from src.pm_amm.domain.twap import TwapOracle
from src.pm_common.capability import Capability
from src.pm_common.enums import Outcome
from src.pm_common.errors import (
    ArithmeticOverflowError,
    DeadlineExpiredError,
    MarketNotActiveError,
    MarketNotFoundError,
    QuantityOutOfBoundsError,
    SlippageExceededError,
    StateError,
    ValidationError,
)
from src.pm_common.wad import WAD, calculate_fee

logger = logging.getLogger(__name__)

MAX_Q = 10**12 * WAD
MIN_Q = -MAX_Q

# Added to every buy charge so that rounding in C() always favours the pool.
ROUNDING_GUARD = 1


class LmsrMarketMaker:
    def __init__(
        self,
        authorized_caller: str,
        fee_bps: int = 0,
        min_q: int = MIN_Q,
        max_q: int = MAX_Q,
    ) -> None:
        if not 0 <= fee_bps < 10_000:
            raise ValueError(f"fee_bps must be in [0, 10000), got {fee_bps}")
        self.capability = Capability("market-maker", authorized_caller)
        self._fee_bps = fee_bps
        self._min_q = min_q
        self._max_q = max_q
        self._markets: dict[str, Market] = {}

    # ------------------------------------------------------------------
    # Market table
    # ------------------------------------------------------------------

    @property
    def market_count(self) -> int:
        return len(self._markets)

    def get_market(self, market_id: str) -> Market:
        market = self._markets.get(market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    def put_market(self, caller: str, market: Market) -> None:
        """Install a market object as-is (snapshot restore)."""
        self.capability.require(caller)
        self._markets[market.id] = market

    def drop_market(self, caller: str, market_id: str) -> None:
        self.capability.require(caller)
        self._markets.pop(market_id, None)

    def create_market(
        self, caller: str, market_id: str, proposal_id: int, funding: int, now: int
    ) -> Market:
        """Open a market seeded with ``funding``; b = funding / ln 2."""
        self.capability.require(caller)
        if funding <= 0:
            raise ValidationError(f"Market funding must be positive, got {funding}")
        if market_id in self._markets:
            raise ValidationError(f"Market already exists: {market_id}")
        market = Market(
            id=market_id,
            proposal_id=proposal_id,
            b=div_wad(funding, LN2_WAD),
            funding=funding,
            created_at=now,
            oracle=TwapOracle.start(now),
            total_collateral=funding,
        )
        self._markets[market_id] = market
        logger.info("Market created: id=%s proposal=%s b=%d", market_id, proposal_id, market.b)
        return market

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    # The ``*_of`` helpers work on a Market object so callers can read from a
    # detached copy as well as from the live table.

    @staticmethod
    def price_of(market: Market, outcome: Outcome) -> int:
        return lmsr.price(market.quantity(outcome), market.quantity(outcome.other), market.b)

    @staticmethod
    def twap_of(market: Market, now: int, window: int) -> tuple[int, int]:
        """TWAP for an open market; the frozen final price once closed."""
        if not market.active:
            if market.final_price_yes is None or market.final_price_no is None:
                raise StateError(f"Closed market {market.id} has no final price")
            return market.final_price_yes, market.final_price_no
        spot_yes, spot_no = lmsr.prices(market.q_yes, market.q_no, market.b)
        return market.oracle.twap(now, window, spot_yes, spot_no)

    @staticmethod
    def info_of(market: Market) -> MarketInfo:
        price_yes, price_no = lmsr.prices(market.q_yes, market.q_no, market.b)
        return MarketInfo(
            id=market.id,
            proposal_id=market.proposal_id,
            b=market.b,
            funding=market.funding,
            q_yes=market.q_yes,
            q_no=market.q_no,
            total_collateral=market.total_collateral,
            accumulated_fees=market.accumulated_fees,
            active=market.active,
            created_at=market.created_at,
            price_yes=price_yes,
            price_no=price_no,
            final_price_yes=market.final_price_yes,
            final_price_no=market.final_price_no,
        )

    def get_price(self, market_id: str, outcome: Outcome) -> int:
        return self.price_of(self.get_market(market_id), outcome)

    def get_prices(self, market_id: str) -> tuple[int, int]:
        market = self.get_market(market_id)
        return lmsr.prices(market.q_yes, market.q_no, market.b)

    def get_twap(self, market_id: str, now: int, window: int) -> tuple[int, int]:
        return self.twap_of(self.get_market(market_id), now, window)

    def get_market_info(self, market_id: str) -> MarketInfo:
        return self.info_of(self.get_market(market_id))

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    def _check_bounds(self, market: Market, outcome: Outcome, delta: int) -> None:
        new_q = market.quantity(outcome) + delta
        if not self._min_q <= new_q <= self._max_q:
            raise QuantityOutOfBoundsError(new_q, self._min_q, self._max_q)

    def _buy_charge(self, market: Market, outcome: Outcome, amount: int) -> tuple[int, int]:
        """(pool amount, fee) charged for buying ``amount``."""
        if amount == 0:
            return 0, 0
        pool = lmsr.trade_cost(market.q_yes, market.q_no, market.b, outcome, amount)
        pool += ROUNDING_GUARD
        return pool, calculate_fee(pool, self._fee_bps)

    def _sell_return(self, market: Market, outcome: Outcome, amount: int) -> tuple[int, int]:
        """(pool amount, fee) for selling ``amount``; the seller nets pool - fee."""
        released = -lmsr.trade_cost(market.q_yes, market.q_no, market.b, outcome, -amount)
        released = max(0, released)
        return released, calculate_fee(released, self._fee_bps)

    def calc_buy_cost(self, market_id: str, outcome: Outcome, amount: int) -> int:
        """Total the buyer pays (cost plus fee) for exactly ``amount`` tokens."""
        market = self.get_market(market_id)
        if amount <= 0:
            raise ValidationError("Buy amount must be positive")
        self._check_bounds(market, outcome, amount)
        pool, fee = self._buy_charge(market, outcome, amount)
        return pool + fee

    def calc_sell_return(self, market_id: str, outcome: Outcome, amount: int) -> int:
        """Net amount the seller receives for ``amount`` tokens."""
        return self.sell_return_of(self.get_market(market_id), outcome, amount)

    def sell_return_of(self, market: Market, outcome: Outcome, amount: int) -> int:
        if amount <= 0:
            raise ValidationError("Sell amount must be positive")
        self._check_bounds(market, outcome, -amount)
        pool, fee = self._sell_return(market, outcome, amount)
        return pool - fee

    def calc_buy_amount(self, market_id: str, outcome: Outcome, budget: int) -> int:
        """Largest quantity purchasable with ``budget`` (cost plus fee)."""
        return self.buy_amount_of(self.get_market(market_id), outcome, budget)

    def buy_amount_of(self, market: Market, outcome: Outcome, budget: int) -> int:
        if budget <= 0:
            return 0
        spot = lmsr.price(market.quantity(outcome), market.quantity(outcome.other), market.b)
        # cost is convex, so cost(q) >= q * spot and q <= budget / spot
        upper = min(self._max_q - market.quantity(outcome), budget * WAD // spot + 1)

        def charge(quantity: int) -> int:
            pool, fee = self._buy_charge(market, outcome, quantity)
            return pool + fee

        return lmsr.search_max_quantity(charge, budget, upper)

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def _require_tradeable(self, market: Market, now: int, deadline: int) -> None:
        if now > deadline:
            raise DeadlineExpiredError(deadline, now)
        if not market.active:
            raise MarketNotActiveError(market.id)

    def buy(
        self,
        caller: str,
        market_id: str,
        outcome: Outcome,
        amount: int,
        max_cost: int,
        now: int,
        deadline: int,
    ) -> TradeResult:
        """Buy ``amount`` of ``outcome``, or the most ``max_cost`` affords if less."""
        self.capability.require(caller)
        market = self.get_market(market_id)
        self._require_tradeable(market, now, deadline)
        if amount <= 0:
            raise ValidationError("Buy amount must be positive")
        self._check_bounds(market, outcome, amount)

        pool, fee = self._buy_charge(market, outcome, amount)
        if pool + fee > max_cost:
            amount = self.buy_amount_of(market, outcome, max_cost)
            if amount == 0:
                raise SlippageExceededError(
                    f"max_cost {max_cost} buys nothing on {market_id}"
                )
            pool, fee = self._buy_charge(market, outcome, amount)

        self._accumulate(market, now)
        if outcome is Outcome.YES:
            market.q_yes += amount
        else:
            market.q_no += amount
        market.total_collateral += pool
        market.accumulated_fees += fee
        price_yes, price_no = lmsr.prices(market.q_yes, market.q_no, market.b)
        logger.debug(
            "Buy: market=%s outcome=%s qty=%d pool=%d fee=%d",
            market_id, outcome.value, amount, pool, fee,
        )
        return TradeResult(market_id, outcome, amount, pool, fee, price_yes, price_no)

    def sell(
        self,
        caller: str,
        market_id: str,
        outcome: Outcome,
        amount: int,
        min_return: int,
        now: int,
        deadline: int,
    ) -> TradeResult:
        self.capability.require(caller)
        market = self.get_market(market_id)
        self._require_tradeable(market, now, deadline)
        if amount <= 0:
            raise ValidationError("Sell amount must be positive")
        self._check_bounds(market, outcome, -amount)

        pool, fee = self._sell_return(market, outcome, amount)
        if pool - fee < min_return:
            raise SlippageExceededError(
                f"sell returns {pool - fee}, minimum acceptable is {min_return}"
            )
        if pool > market.total_collateral:
            raise ArithmeticOverflowError(
                f"sell releases {pool} but market {market_id} holds {market.total_collateral}"
            )

        self._accumulate(market, now)
        if outcome is Outcome.YES:
            market.q_yes -= amount
        else:
            market.q_no -= amount
        market.total_collateral -= pool
        market.accumulated_fees += fee
        price_yes, price_no = lmsr.prices(market.q_yes, market.q_no, market.b)
        logger.debug(
            "Sell: market=%s outcome=%s qty=%d pool=%d fee=%d",
            market_id, outcome.value, amount, pool, fee,
        )
        return TradeResult(market_id, outcome, amount, pool, fee, price_yes, price_no)

    # ------------------------------------------------------------------
    # Oracle and lifecycle
    # ------------------------------------------------------------------

    def _accumulate(self, market: Market, now: int) -> None:
        price_yes, price_no = lmsr.prices(market.q_yes, market.q_no, market.b)
        market.oracle.accumulate(now, price_yes, price_no)

    def poke(self, market_id: str, now: int) -> None:
        """Permissionless accumulator refresh for idle markets."""
        market = self.get_market(market_id)
        if not market.active:
            raise MarketNotActiveError(market_id)
        self._accumulate(market, now)

    def close_market(
        self, caller: str, market_id: str, now: int, window: int
    ) -> tuple[int, int]:
        """Deactivate the market and freeze its TWAP as the final price."""
        self.capability.require(caller)
        market = self.get_market(market_id)
        if not market.active:
            raise MarketNotActiveError(market_id)
        self._accumulate(market, now)
        final_yes, final_no = self.get_twap(market_id, now, window)
        market.final_price_yes = final_yes
        market.final_price_no = final_no
        market.active = False
        market.closed_at = now
        logger.info(
            "Market closed: id=%s final_yes=%d final_no=%d", market_id, final_yes, final_no
        )
        return final_yes, final_no
