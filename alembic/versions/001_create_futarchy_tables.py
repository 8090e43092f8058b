"""001: create futarchy engine tables

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE futarchy_proposals (
            id                  BIGINT          PRIMARY KEY,
            proposer            VARCHAR(128)    NOT NULL,
            target              VARCHAR(256)    NOT NULL,
            payload             TEXT            NOT NULL DEFAULT '',
            requested_amount    NUMERIC(78, 0)  NOT NULL,
            description_ref     VARCHAR(128)    NOT NULL,
            pass_market_id      VARCHAR(64)     NOT NULL,
            fail_market_id      VARCHAR(64)     NOT NULL,
            trading_start       BIGINT          NOT NULL,
            trading_end         BIGINT          NOT NULL,
            resolution_time     BIGINT          NOT NULL,
            stake               NUMERIC(78, 0)  NOT NULL,
            liquidity           NUMERIC(78, 0)  NOT NULL,
            state               VARCHAR(16)     NOT NULL,
            collateral          NUMERIC(78, 0)  NOT NULL,
            final_pass_price    NUMERIC(78, 0),
            final_fail_price    NUMERIC(78, 0),
            pass_wins           BOOLEAN,
            stake_returned      BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at          BIGINT          NOT NULL,
            closed_at           BIGINT,
            resolved_at         BIGINT,
            finalized_at        BIGINT,
            CONSTRAINT ck_futarchy_proposals_collateral_gte_0 CHECK (collateral >= 0),
            CONSTRAINT ck_futarchy_proposals_requested_gt_0   CHECK (requested_amount > 0),
            CONSTRAINT ck_futarchy_proposals_window           CHECK (trading_start < trading_end),
            CONSTRAINT ck_futarchy_proposals_state CHECK (
                state IN ('ACTIVE', 'CLOSED', 'RESOLVED', 'EXECUTED', 'REJECTED', 'CANCELED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_futarchy_proposals_state ON futarchy_proposals (state);")

    op.execute("""
        CREATE TABLE futarchy_markets (
            id                          VARCHAR(64)     PRIMARY KEY,
            proposal_id                 BIGINT          NOT NULL REFERENCES futarchy_proposals (id),
            b                           NUMERIC(78, 0)  NOT NULL,
            funding                     NUMERIC(78, 0)  NOT NULL,
            q_yes                       NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            q_no                        NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            total_collateral            NUMERIC(78, 0)  NOT NULL,
            accumulated_fees            NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            active                      BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at                  BIGINT          NOT NULL,
            closed_at                   BIGINT,
            final_price_yes             NUMERIC(78, 0),
            final_price_no              NUMERIC(78, 0),
            oracle_last_update          BIGINT          NOT NULL,
            oracle_cumulative_yes       NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            oracle_cumulative_no        NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            oracle_accounted_seconds    BIGINT          NOT NULL DEFAULT 0,
            oracle_observations         JSONB           NOT NULL DEFAULT '[]'::jsonb,
            CONSTRAINT ck_futarchy_markets_b_gt_0           CHECK (b > 0),
            CONSTRAINT ck_futarchy_markets_collateral_gte_0 CHECK (total_collateral >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_futarchy_markets_proposal ON futarchy_markets (proposal_id);")

    op.execute("""
        CREATE TABLE outcome_balances (
            holder          VARCHAR(128)    NOT NULL,
            proposal_id     BIGINT          NOT NULL REFERENCES futarchy_proposals (id),
            side            VARCHAR(8)      NOT NULL,
            amount          NUMERIC(78, 0)  NOT NULL,
            PRIMARY KEY (holder, proposal_id, side),
            CONSTRAINT ck_outcome_balances_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_outcome_balances_side        CHECK (side IN ('PASS', 'FAIL'))
        );
    """)
    op.execute("CREATE INDEX idx_outcome_balances_proposal ON outcome_balances (proposal_id);")

    op.execute("""
        CREATE TABLE outcome_supply (
            proposal_id     BIGINT          NOT NULL REFERENCES futarchy_proposals (id),
            side            VARCHAR(8)      NOT NULL,
            total_minted    NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            total_redeemed  NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            PRIMARY KEY (proposal_id, side),
            CONSTRAINT ck_outcome_supply_conservation CHECK (total_redeemed <= total_minted),
            CONSTRAINT ck_outcome_supply_side         CHECK (side IN ('PASS', 'FAIL'))
        );
    """)

    op.execute("""
        CREATE TABLE engine_treasury (
            id          BIGINT          PRIMARY KEY,
            balance     NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            CONSTRAINT ck_engine_treasury_singleton   CHECK (id = 1),
            CONSTRAINT ck_engine_treasury_balance_gte_0 CHECK (balance >= 0)
        );
    """)

    op.execute("""
        CREATE TABLE engine_events (
            id              BIGSERIAL       PRIMARY KEY,
            proposal_id     BIGINT,
            event_type      VARCHAR(32)     NOT NULL,
            occurred_at     BIGINT          NOT NULL,
            payload         JSONB           NOT NULL DEFAULT '{}'::jsonb,
            recorded_at     TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_engine_events_proposal ON engine_events (proposal_id, id);")
    op.execute("COMMENT ON TABLE engine_events IS 'Append-only domain event feed for the indexer';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS engine_events CASCADE;")
    op.execute("DROP TABLE IF EXISTS engine_treasury CASCADE;")
    op.execute("DROP TABLE IF EXISTS outcome_supply CASCADE;")
    op.execute("DROP TABLE IF EXISTS outcome_balances CASCADE;")
    op.execute("DROP TABLE IF EXISTS futarchy_markets CASCADE;")
    op.execute("DROP TABLE IF EXISTS futarchy_proposals CASCADE;")
