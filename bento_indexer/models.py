"""Database row models and their construction from node data."""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime
from itertools import groupby
from typing import Any, Union

from bento_indexer.timeutils import timestamp_millis_to_naive_datetime
from bento_indexer.types import DEFAULT_GROUP_NUM, BlockAndEvents, BlockHash


@dataclass
class BlockModel:
    """A row of the ``blocks`` table."""

    hash: BlockHash
    timestamp: datetime
    chain_from: int
    chain_to: int
    height: int
    deps: list[str | None]
    nonce: str
    version: str
    dep_state_hash: str
    txs_hash: str
    tx_number: int
    target: str
    main_chain: bool
    ghost_uncles: Any

    def parent(self, group_num: int | None = None) -> BlockHash | None:
        """The parent hash, or None for a genesis block."""
        if self.height == 0:
            return None
        index = DEFAULT_GROUP_NUM if group_num is None else group_num
        return self.get_deps()[index]

    def get_deps(self) -> list[BlockHash]:
        if any(dep is None for dep in self.deps):
            raise ValueError(f"block {self.hash} has a missing dependency")
        return list(self.deps)  # type: ignore[arg-type]

    def to_row(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> BlockModel:
        return cls(**{name: row[name] for name in cls.__dataclass_fields__})


@dataclass
class EventModel:
    """A row of the ``events`` table."""

    id: str
    tx_id: str
    contract_address: str
    event_index: int
    fields: Any

    def to_row(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> EventModel:
        return cls(**{name: row[name] for name in cls.__dataclass_fields__})


@dataclass
class TransactionModel:
    """A row of the ``transactions`` table."""

    tx_hash: str
    unsigned: Any
    script_execution_ok: bool
    contract_inputs: Any
    generated_outputs: Any
    input_signatures: list[str | None] = field(default_factory=list)
    script_signatures: list[str | None] = field(default_factory=list)
    block_hash: BlockHash | None = None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> TransactionModel:
        return cls(**{name: row[name] for name in cls.__dataclass_fields__})


@dataclass
class ProcessorStatusModel:
    """A row of the ``processor_status`` table."""

    processor: str
    last_timestamp: int

    def to_row(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ProcessorStatusModel:
        return cls(processor=row["processor"], last_timestamp=row["last_timestamp"])


@dataclass
class BlockOutput:
    """Processor output made of block rows."""

    blocks: list[BlockModel]


@dataclass
class EventOutput:
    """Processor output made of event rows."""

    events: list[EventModel]


@dataclass
class TxOutput:
    """Processor output made of transaction rows."""

    txs: list[TransactionModel]


@dataclass
class CustomOutput:
    """Processor output of a custom processor, stored by that processor."""

    output: Any


ProcessorOutput = Union[BlockOutput, EventOutput, TxOutput, CustomOutput]


def convert_bwe_to_block_models(blocks: Iterable[BlockAndEvents]) -> list[BlockModel]:
    """Turn fetched blocks into rows of the ``blocks`` table."""
    return [
        BlockModel(
            hash=be.block.hash,
            timestamp=timestamp_millis_to_naive_datetime(be.block.timestamp),
            chain_from=be.block.chain_from,
            chain_to=be.block.chain_to,
            height=be.block.height,
            deps=list(be.block.deps),
            nonce=be.block.nonce,
            version=str(be.block.version),
            dep_state_hash=be.block.dep_state_hash,
            txs_hash=be.block.txs_hash,
            tx_number=len(be.block.transactions),
            target=be.block.target,
            main_chain=bool(be.block.main_chain),
            ghost_uncles=[uncle.to_dict() for uncle in be.block.ghost_uncles],
        )
        for be in blocks
    ]


def convert_bwe_to_event_models(blocks: Iterable[BlockAndEvents]) -> list[EventModel]:
    """Turn the events of fetched blocks into rows with fresh ids."""
    return [
        EventModel(
            id=str(uuid.uuid4()),
            tx_id=event.tx_id,
            contract_address=event.contract_address,
            event_index=event.event_index,
            fields=[f.to_dict() for f in event.fields],
        )
        for be in blocks
        for event in be.events
    ]


def convert_bwe_to_tx_models(blocks: Iterable[BlockAndEvents]) -> list[TransactionModel]:
    """Turn block transactions into rows, dropping consecutive duplicates."""
    models = []
    for be in blocks:
        for _, group in groupby(be.block.transactions, key=lambda t: t.unsigned.tx_id):
            tx = next(group)
            models.append(
                TransactionModel(
                    tx_hash=tx.unsigned.tx_id,
                    unsigned=tx.unsigned.to_dict(),
                    script_execution_ok=tx.script_execution_ok,
                    contract_inputs=[ref.to_dict() for ref in tx.contract_inputs],
                    generated_outputs=[out.to_dict() for out in tx.generated_outputs],
                    input_signatures=list(tx.input_signatures),
                    script_signatures=list(tx.script_signatures),
                    block_hash=be.block.hash,
                )
            )
    return models


__all__ = [
    "BlockModel",
    "EventModel",
    "TransactionModel",
    "ProcessorStatusModel",
    "BlockOutput",
    "EventOutput",
    "TxOutput",
    "CustomOutput",
    "ProcessorOutput",
    "convert_bwe_to_block_models",
    "convert_bwe_to_event_models",
    "convert_bwe_to_tx_models",
]