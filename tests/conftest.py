"""Shared test fixtures."""

import os

# Settings() requires a secret at import time.
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")

import pytest

from src.pm_common.wad import WAD
from src.pm_proposal.domain.config import EngineConfig
from src.pm_proposal.engine.orchestrator import ProposalOrchestrator
from src.pm_proposal.infrastructure.in_memory import InMemoryActionExecutor, InMemoryVault

T0 = 1_700_000_000
HOUR = 3600
DAY = 24 * HOUR
STARTING_FUNDS = 1_000_000 * WAD
PARTIES = ("proposer", "alice", "bob", "carol", "dao")


class FakeClock:
    """Engine clock the test moves by hand."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(proposal_stake=100 * WAD, min_liquidity=10 * WAD)


@pytest.fixture
def vault() -> InMemoryVault:
    v = InMemoryVault()
    for party in PARTIES:
        v.fund(party, STARTING_FUNDS)
    return v


@pytest.fixture
def executor() -> InMemoryActionExecutor:
    return InMemoryActionExecutor()


@pytest.fixture
def orchestrator(
    config: EngineConfig,
    vault: InMemoryVault,
    executor: InMemoryActionExecutor,
    clock: FakeClock,
) -> ProposalOrchestrator:
    return ProposalOrchestrator(config, vault, executor, clock=clock)
