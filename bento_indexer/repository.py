"""Reading and writing indexed blocks, events, transactions and processor status."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import Table, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bento_indexer.errors import BlockNotFoundError, RepositoryDatabaseError
from bento_indexer.models import BlockModel, EventModel, TransactionModel
from bento_indexer.schema import blocks, processor_status, transactions
from bento_indexer.schema import events as events_table
from bento_indexer.types import BlockHash, Order

logger = logging.getLogger(__name__)


def _insert_ignoring_conflicts(
    conn: Connection,
    table: Table,
    rows: Sequence[dict[str, Any]],
    index_elements: list[str] | None = None,
) -> None:
    dialect = conn.dialect.name
    if dialect == "postgresql":
        conn.execute(pg_insert(table).on_conflict_do_nothing(index_elements=index_elements), rows)
    elif dialect == "sqlite":
        conn.execute(
            sqlite_insert(table).on_conflict_do_nothing(index_elements=index_elements), rows
        )
    else:
        for row in rows:
            savepoint = conn.begin_nested()
            try:
                conn.execute(insert(table), row)
            except IntegrityError:
                savepoint.rollback()
            else:
                savepoint.commit()


def _query_first(db: Engine, statement: Any) -> Any:
    """The first row of a query, or None when there is none or the query fails."""
    with db.connect() as conn:
        try:
            return conn.execute(statement).first()
        except SQLAlchemyError:
            return None


# Blocks


def insert_blocks_to_db(db: Engine, block_models: Sequence[BlockModel]) -> None:
    """Insert blocks, leaving already known hashes untouched."""
    if not block_models:
        return
    with db.begin() as conn:
        _insert_ignoring_conflicts(
            conn, blocks, [model.to_row() for model in block_models], ["hash"]
        )
    logger.info(
        "Inserted %d blocks from timestamp %s to timestamp %s",
        len(block_models),
        block_models[0].timestamp,
        block_models[-1].timestamp,
    )


def get_block_by_hash(db: Engine, block_hash: str) -> BlockModel | None:
    row = _query_first(db, select(blocks).where(blocks.c.hash == block_hash))
    return None if row is None else BlockModel.from_row(row._mapping)


def fetch_block_hashes_at_height_filter_one(
    db: Engine, from_group: int, to_group: int, height: int, hash_to_ignore: str
) -> list[str]:
    """Hashes of the blocks of one chain at a height, except ``hash_to_ignore``."""
    statement = select(blocks.c.hash).where(
        blocks.c.chain_from == from_group,
        blocks.c.chain_to == to_group,
        blocks.c.height == height,
        blocks.c.hash != hash_to_ignore,
    )
    with db.connect() as conn:
        return list(conn.execute(statement).scalars())


def get_blocks(
    db: Engine, limit: int, offset: int, order: Order | None = None
) -> list[BlockModel]:
    """A page of blocks ordered by height, ascending unless ``Order.DESC``."""
    ordering = blocks.c.height.desc() if order is Order.DESC else blocks.c.height.asc()
    statement = select(blocks).order_by(ordering).limit(limit).offset(offset)
    with db.connect() as conn:
        return [BlockModel.from_row(row._mapping) for row in conn.execute(statement)]


def get_block_by_height(db: Engine, height: int) -> BlockModel | None:
    row = _query_first(db, select(blocks).where(blocks.c.height == height))
    return None if row is None else BlockModel.from_row(row._mapping)


def exists_block(db: Engine, block_hash: str) -> bool:
    return _query_first(db, select(blocks.c.hash).where(blocks.c.hash == block_hash)) is not None


# Events


def insert_events_to_db(db: Engine, events: Sequence[EventModel]) -> None:
    """Insert events, skipping any that conflict with stored rows."""
    logger.debug("Starting DB insertion process for %d events", len(events))
    if not events:
        return
    try:
        with db.begin() as conn:
            _insert_ignoring_conflicts(conn, events_table, [e.to_row() for e in events])
    except SQLAlchemyError as error:
        logger.error("Database insert error: %s", error)
        raise RepositoryDatabaseError(error) from error
    logger.info("Successfully inserted %d events", len(events))


def _load_events(db: Engine, statement: Any) -> list[EventModel]:
    with db.connect() as conn:
        return [EventModel.from_row(row._mapping) for row in conn.execute(statement)]


def get_events(db: Engine, limit: int, offset: int) -> list[EventModel]:
    return _load_events(db, select(events_table).limit(limit).offset(offset))


def get_events_by_contract(
    db: Engine, contract_address: str, limit: int, offset: int
) -> list[EventModel]:
    statement = (
        select(events_table)
        .where(events_table.c.contract_address == contract_address)
        .limit(limit)
        .offset(offset)
    )
    return _load_events(db, statement)


def get_events_by_tx(db: Engine, tx_id: str, limit: int, offset: int) -> list[EventModel]:
    statement = (
        select(events_table).where(events_table.c.tx_id == tx_id).limit(limit).offset(offset)
    )
    return _load_events(db, statement)


# Blocks together with events and transactions


def insert_block_and_events(db: Engine, block: BlockModel, events: Iterable[EventModel]) -> None:
    """Insert a block and its events in one transaction."""
    rows = [event.to_row() for event in events]
    with db.begin() as conn:
        conn.execute(insert(blocks), block.to_row())
        if rows:
            conn.execute(insert(events_table), rows)


def update_main_chain(
    db: Engine,
    block_hash: BlockHash,
    chain_from: int,
    chain_to: int,
    group_num: int | None = None,
) -> BlockHash:
    """Mark a block and its stored ancestors as main chain.

    Competing blocks at the same heights lose their main-chain status.
    Returns the first ancestor hash that is not stored.
    """
    current_hash = block_hash
    while (block := get_block_by_hash(db, current_hash)) is not None:
        if not block.main_chain and (block.chain_from, block.chain_to) != (chain_from, chain_to):
            raise ValueError(
                f"block {block.hash} belongs to chain {block.chain_from}->{block.chain_to}, "
                f"expected {chain_from}->{chain_to}"
            )
        competitors = fetch_block_hashes_at_height_filter_one(
            db, block.chain_from, block.chain_to, block.height, block.hash
        )
        update_main_chain_status(db, competitors, False)
        update_main_chain_status(db, [current_hash], True)

        parent = block.parent(group_num)
        if parent is None:
            raise ValueError(f"block {block.hash} has no parent")
        current_hash = parent
    return current_hash


def update_main_chain_status(db: Engine, block_hashes: Iterable[str], main_chain: bool) -> None:
    """Set the main-chain flag of blocks and of the transactions they hold."""
    for block_hash in block_hashes:
        with db.begin() as conn:
            conn.execute(
                update(blocks).where(blocks.c.hash == block_hash).values(main_chain=main_chain)
            )
            conn.execute(
                update(transactions)
                .where(transactions.c.block_hash == block_hash)
                .values(main_chain=main_chain)
            )


def get_block_transactions(db: Engine, block_hash: BlockHash) -> list[TransactionModel]:
    """Transactions of a stored block; raises BlockNotFoundError otherwise."""
    if get_block_by_hash(db, block_hash) is None:
        raise BlockNotFoundError(block_hash)
    return _load_txs(db, select(transactions).where(transactions.c.block_hash == block_hash))


# Processor status


def processor_key(processor_name: str, network: Any, is_backward: bool) -> str:
    """The status key of a processor on a network and sync direction."""
    key = f"{processor_name}_{network}"
    return f"{key}_backward" if is_backward else key


def get_last_timestamp(db: Engine, processor_name: str, network: Any, is_backward: bool) -> int:
    """The last processed timestamp; raises LookupError when none is stored."""
    logger.info("Getting last timestamp for processor %s", processor_name)
    key = processor_key(processor_name, network, is_backward)
    statement = select(processor_status.c.last_timestamp).where(
        processor_status.c.processor == key
    )
    with db.connect() as conn:
        timestamp = conn.execute(statement).scalar_one_or_none()
    if timestamp is None:
        logger.info("No last timestamp found for processor %s", processor_name)
        raise LookupError(f"No last timestamp found for processor: {processor_name}")
    logger.info("Found last timestamp %d for processor %s", timestamp, processor_name)
    return timestamp


def update_last_timestamp(
    db: Engine, processor_name: str, network: Any, last_timestamp: int, is_backward: bool
) -> None:
    """Store the last processed timestamp, replacing any earlier value."""
    logger.debug(
        "Updating last timestamp of %s on %s to %d", processor_name, network, last_timestamp
    )
    key = processor_key(processor_name, network, is_backward)
    row = {"processor": key, "last_timestamp": last_timestamp}
    with db.begin() as conn:
        dialect = conn.dialect.name
        if dialect in ("postgresql", "sqlite"):
            make_insert = pg_insert if dialect == "postgresql" else sqlite_insert
            statement = make_insert(processor_status).on_conflict_do_update(
                index_elements=["processor"], set_={"last_timestamp": last_timestamp}
            )
            conn.execute(statement, row)
        else:
            result = conn.execute(
                update(processor_status)
                .where(processor_status.c.processor == key)
                .values(last_timestamp=last_timestamp)
            )
            if result.rowcount == 0:
                conn.execute(insert(processor_status), row)


# Transactions


def _load_txs(db: Engine, statement: Any) -> list[TransactionModel]:
    with db.connect() as conn:
        return [TransactionModel.from_row(row._mapping) for row in conn.execute(statement)]


def insert_txs_to_db(db: Engine, txs: Sequence[TransactionModel]) -> None:
    """Insert transactions, leaving already known hashes untouched."""
    if not txs:
        return
    with db.begin() as conn:
        _insert_ignoring_conflicts(conn, transactions, [tx.to_row() for tx in txs], ["tx_hash"])
    logger.info("Inserted %d txs", len(txs))


def get_txs(db: Engine, limit: int, offset: int) -> list[TransactionModel]:
    return _load_txs(db, select(transactions).limit(limit).offset(offset))


def get_tx_by_hash(db: Engine, tx_hash: str) -> TransactionModel | None:
    row = _query_first(db, select(transactions).where(transactions.c.tx_hash == tx_hash))
    return None if row is None else TransactionModel.from_row(row._mapping)


def get_txs_by_block(db: Engine, block_hash: str) -> list[TransactionModel]:
    """Transactions of a stored block; raises BlockNotFoundError otherwise."""
    if not exists_block(db, block_hash):
        raise BlockNotFoundError(block_hash)
    return _load_txs(db, select(transactions).where(transactions.c.block_hash == block_hash))


__all__ = [
    "insert_blocks_to_db",
    "get_block_by_hash",
    "fetch_block_hashes_at_height_filter_one",
    "get_blocks",
    "get_block_by_height",
    "exists_block",
    "insert_events_to_db",
    "get_events",
    "get_events_by_contract",
    "get_events_by_tx",
    "insert_block_and_events",
    "update_main_chain",
    "update_main_chain_status",
    "get_block_transactions",
    "processor_key",
    "get_last_timestamp",
    "update_last_timestamp",
    "insert_txs_to_db",
    "get_txs",
    "get_tx_by_hash",
    "get_txs_by_block",
]