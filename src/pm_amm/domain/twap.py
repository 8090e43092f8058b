"""Time-weighted average price oracle embedded in every market.

The accumulator integrates price over time: on every update it adds
``price * elapsed`` for both outcomes, with ``elapsed`` capped at
``MAX_ELAPSED_SECONDS`` so an idle market cannot blow up the sums. Seconds
that were actually integrated are tracked separately as
``accounted_seconds``; averages divide by that, not by wall time.

Each update appends an Observation. Between two observations the price was
constant, so the cumulative value at any instant is a linear interpolation,
which lets ``twap`` average over a trailing window shorter than the market's
life. When the buffer is full the interior observation with the closest
neighbours is merged away; the creation observation is never dropped, so a
burst of trades can only coarsen recent history, never hide older history.
"""

import bisect
from dataclasses import dataclass, field

MAX_ELAPSED_SECONDS = 7 * 24 * 3600
MIN_TWAP_AGE_SECONDS = 60
MAX_OBSERVATIONS = 512


@dataclass(frozen=True)
class Observation:
    timestamp: int
    cumulative_yes: int
    cumulative_no: int
    accounted_seconds: int


@dataclass
class TwapOracle:
    created_at: int
    last_update_time: int
    cumulative_yes: int = 0
    cumulative_no: int = 0
    accounted_seconds: int = 0
    observations: list[Observation] = field(default_factory=list)

    @classmethod
    def start(cls, now: int) -> "TwapOracle":
        oracle = cls(created_at=now, last_update_time=now)
        oracle.observations.append(Observation(now, 0, 0, 0))
        return oracle

    def accumulate(self, now: int, price_yes: int, price_no: int) -> None:
        """Integrate the prevailing prices up to ``now``. Call before a trade mutates them."""
        elapsed = now - self.last_update_time
        if elapsed <= 0:
            return
        capped = min(elapsed, MAX_ELAPSED_SECONDS)
        self.cumulative_yes += price_yes * capped
        self.cumulative_no += price_no * capped
        self.accounted_seconds += capped
        self.last_update_time = now
        self.observations.append(
            Observation(now, self.cumulative_yes, self.cumulative_no, self.accounted_seconds)
        )
        if len(self.observations) > MAX_OBSERVATIONS:
            self._merge_closest()

    def _merge_closest(self) -> None:
        obs = self.observations
        idx = min(
            range(1, len(obs) - 1),
            key=lambda i: (obs[i + 1].timestamp - obs[i - 1].timestamp, -i),
        )
        del obs[idx]

    def _cumulative_at(
        self, t: int, spot_yes: int, spot_no: int
    ) -> tuple[int, int, int]:
        obs = self.observations
        if t <= obs[0].timestamp:
            first = obs[0]
            return first.cumulative_yes, first.cumulative_no, first.accounted_seconds
        idx = bisect.bisect_right([o.timestamp for o in obs], t) - 1
        left = obs[idx]
        if idx == len(obs) - 1:
            since = min(t - left.timestamp, MAX_ELAPSED_SECONDS)
            return (
                left.cumulative_yes + spot_yes * since,
                left.cumulative_no + spot_no * since,
                left.accounted_seconds + since,
            )
        right = obs[idx + 1]
        span = right.timestamp - left.timestamp
        frac = t - left.timestamp
        return (
            left.cumulative_yes + (right.cumulative_yes - left.cumulative_yes) * frac // span,
            left.cumulative_no + (right.cumulative_no - left.cumulative_no) * frac // span,
            left.accounted_seconds
            + (right.accounted_seconds - left.accounted_seconds) * frac // span,
        )

    def twap(
        self, now: int, window: int, spot_yes: int, spot_no: int
    ) -> tuple[int, int]:
        """Average prices over the trailing ``window`` seconds ending at ``now``.

        A market younger than ``MIN_TWAP_AGE_SECONDS`` reports spot prices.
        A window longer than the market's age is shortened to the age.
        """
        age = now - self.created_at
        if age < MIN_TWAP_AGE_SECONDS or window <= 0:
            return spot_yes, spot_no
        effective = min(window, age)
        end_yes, end_no, end_secs = self._cumulative_at(now, spot_yes, spot_no)
        start_yes, start_no, start_secs = self._cumulative_at(
            now - effective, spot_yes, spot_no
        )
        accounted = end_secs - start_secs
        if accounted <= 0:
            return spot_yes, spot_no
        return (end_yes - start_yes) // accounted, (end_no - start_no) // accounted
