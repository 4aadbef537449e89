"""Database tables used by the indexer."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    SmallInteger,
    String,
    Table,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.engine import Engine

metadata = MetaData()

# JSONB and text arrays on PostgreSQL, plain JSON elsewhere.
_JSONB = JSON().with_variant(JSONB(), "postgresql")
_TEXT_ARRAY = JSON().with_variant(ARRAY(Text), "postgresql")

blocks = Table(
    "blocks",
    metadata,
    Column("hash", Text, primary_key=True),
    Column("timestamp", DateTime, nullable=False),
    Column("chain_from", BigInteger, nullable=False),
    Column("chain_to", BigInteger, nullable=False),
    Column("height", BigInteger, nullable=False),
    Column("nonce", Text, nullable=False),
    Column("version", Text, nullable=False),
    Column("dep_state_hash", Text, nullable=False),
    Column("txs_hash", Text, nullable=False),
    Column("tx_number", BigInteger, nullable=False),
    Column("target", Text, nullable=False),
    Column("ghost_uncles", _JSONB, nullable=False),
    Column("main_chain", Boolean, nullable=False),
    Column("deps", _TEXT_ARRAY, nullable=False),
)

events = Table(
    "events",
    metadata,
    Column("id", Text, primary_key=True),
    Column("tx_id", Text, nullable=False),
    Column("contract_address", Text, nullable=False),
    Column("event_index", Integer, nullable=False),
    Column("fields", _JSONB, nullable=False),
)

loan_actions = Table(
    "loan_actions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("loan_subcontract_id", String, nullable=False),
    Column("loan_id", Numeric, nullable=True),
    Column("by", String, nullable=False),
    Column("timestamp", DateTime, nullable=False),
    Column("action_type", SmallInteger, nullable=False),
)

loan_details = Table(
    "loan_details",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("loan_subcontract_id", String, nullable=False),
    Column("lending_token_id", String, nullable=False),
    Column("collateral_token_id", String, nullable=False),
    Column("lending_amount", Numeric, nullable=False),
    Column("collateral_amount", Numeric, nullable=False),
    Column("interest_rate", Numeric, nullable=False),
    Column("duration", Numeric, nullable=False),
    Column("lender", String, nullable=False),
)

processor_status = Table(
    "processor_status",
    metadata,
    Column("processor", String(50), primary_key=True),
    Column("last_timestamp", BigInteger, nullable=False),
)

transactions = Table(
    "transactions",
    metadata,
    Column("tx_hash", Text, primary_key=True),
    Column("unsigned", _JSONB, nullable=False),
    Column("script_execution_ok", Boolean, nullable=False),
    Column("contract_inputs", _JSONB, nullable=False),
    Column("generated_outputs", _JSONB, nullable=False),
    Column("input_signatures", _TEXT_ARRAY, nullable=False),
    Column("script_signatures", _TEXT_ARRAY, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=True, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=True, server_default=func.now()),
    Column("main_chain", Boolean, nullable=False, server_default=text("false")),
    Column("block_hash", Text, nullable=True),
)


def create_tables(engine: Engine) -> None:
    """Create every table that does not exist yet."""
    metadata.create_all(engine)


__all__ = [
    "metadata",
    "blocks",
    "events",
    "loan_actions",
    "loan_details",
    "processor_status",
    "transactions",
    "create_tables",
]