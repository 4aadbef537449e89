"""Interfaces for block processors, data providers and pipeline stages."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from sqlalchemy.engine import Engine

from bento_indexer.models import (
    BlockOutput,
    CustomOutput,
    EventOutput,
    ProcessorOutput,
    TxOutput,
)
from bento_indexer.repository import (
    insert_blocks_to_db,
    insert_events_to_db,
    insert_txs_to_db,
)
from bento_indexer.types import (
    BlockAndEvents,
    BlockEntry,
    BlockHeaderEntry,
    BlocksAndEventsPerTimestampRange,
    BlocksPerTimestampRange,
    StageMessage,
    Transaction,
)

logger = logging.getLogger(__name__)


class Processor(ABC):
    """Turns fetched blocks into output and stores that output."""

    @abstractmethod
    def name(self) -> str:
        """A unique name for this processor."""

    @abstractmethod
    def connection_pool(self) -> Engine:
        """The database the processor writes to."""

    @abstractmethod
    def process_blocks(
        self, from_ts: int, to_ts: int, blocks: Sequence[BlockAndEvents]
    ) -> ProcessorOutput:
        """Process a batch of blocks fetched for ``[from_ts, to_ts]``."""

    def store_output(self, output: ProcessorOutput) -> None:
        """Store block, event and transaction output.

        Processors producing custom output override this method; the
        default only logs a warning for such output.
        """
        if isinstance(output, BlockOutput):
            if output.blocks:
                insert_blocks_to_db(self.connection_pool(), output.blocks)
        elif isinstance(output, EventOutput):
            if output.events:
                insert_events_to_db(self.connection_pool(), output.events)
        elif isinstance(output, TxOutput):
            if output.txs:
                insert_txs_to_db(self.connection_pool(), output.txs)
        elif isinstance(output, CustomOutput):
            logger.warning("Custom processor output with no storage implementation")
        else:
            raise TypeError(f"unsupported processor output: {type(output).__name__}")


class BlockProvider(ABC):
    """A source of blocks and their events."""

    @abstractmethod
    def get_blocks(self, from_ts: int, to_ts: int) -> BlocksPerTimestampRange:
        """Blocks in the given time interval."""

    @abstractmethod
    def get_blocks_and_events(
        self, from_ts: int, to_ts: int
    ) -> BlocksAndEventsPerTimestampRange:
        """Blocks with their events in the given time interval."""

    @abstractmethod
    def get_block(self, block_hash: str) -> BlockEntry:
        """The block with the given hash."""

    @abstractmethod
    def get_block_and_events_by_hash(self, block_hash: str) -> BlockAndEvents:
        """The block with the given hash together with its events."""

    @abstractmethod
    def get_block_header(self, block_hash: str) -> BlockHeaderEntry:
        """The header of the block with the given hash."""


class TransactionProvider(ABC):
    """A source of transactions."""

    @abstractmethod
    def get_block_txs(self, block_hash: str, limit: int, offset: int) -> list[Transaction]:
        """A page of the transactions of a block."""

    @abstractmethod
    def get_tx_by_hash(self, tx_hash: str) -> Transaction | None:
        """The transaction with the given hash, if known."""


class StageHandler(ABC):
    """One stage of the indexing pipeline."""

    @abstractmethod
    def handle(self, message: StageMessage) -> StageMessage:
        """Consume a message and produce the message for the next stage."""


def _describe(value: Any) -> str:
    return type(value).__name__


__all__ = ["Processor", "BlockProvider", "TransactionProvider", "StageHandler"]