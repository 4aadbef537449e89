"""Data types exchanged with a full node and between pipeline stages."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar, Union

DEFAULT_GROUP_NUM = 4
REORG_TIMEOUT = 210 * 16 * 1000  # 210 blocks * 16 seconds
MAX_TIMESTAMP_RANGE = 1_800_000

BlockHash = str
GroupIndex = int

_T = TypeVar("_T")


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"invalid type: expected an object for {what}")
    return data


def _field(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _check_int(value: Any, key: str, bits: int, signed: bool) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"invalid type for `{key}`: expected an integer")
    low, high = (-(1 << (bits - 1)), (1 << (bits - 1)) - 1) if signed else (0, (1 << bits) - 1)
    if not low <= value <= high:
        raise ValueError(f"invalid value for `{key}`: {value} out of range")
    return value


def _int(data: Mapping[str, Any], key: str, bits: int = 64, signed: bool = True) -> int:
    return _check_int(_field(data, key), key, bits, signed)


def _check_str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`: expected a string")
    return value


def _str(data: Mapping[str, Any], key: str) -> str:
    return _check_str(_field(data, key), key)


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = _field(data, key)
    if not isinstance(value, bool):
        raise ValueError(f"invalid type for `{key}`: expected a boolean")
    return value


def _optional(data: Mapping[str, Any], key: str, check: Callable[[Any, str], _T]) -> _T | None:
    value = data.get(key)
    return None if value is None else check(value, key)


def _list(data: Mapping[str, Any], key: str, item: Callable[[Any], _T]) -> list[_T]:
    value = _field(data, key)
    if not isinstance(value, list):
        raise ValueError(f"invalid type for `{key}`: expected a list")
    return [item(element) for element in value]


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    return _list(data, key, lambda element: _check_str(element, key))


@dataclass
class BlockHeaderEntry:
    """Header of a block: hash, timestamp, chain index, height and deps."""

    hash: str
    timestamp: int
    chain_from: int
    chain_to: int
    height: int
    deps: list[str]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BlockHeaderEntry:
        data = _mapping(data, "BlockHeaderEntry")
        return cls(
            hash=_str(data, "hash"),
            timestamp=_int(data, "timestamp"),
            chain_from=_int(data, "chainFrom"),
            chain_to=_int(data, "chainTo"),
            height=_int(data, "height"),
            deps=_str_list(data, "deps"),
        )


@dataclass
class GhostUncleBlockEntry:
    block_hash: str
    miner: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GhostUncleBlockEntry:
        data = _mapping(data, "GhostUncleBlockEntry")
        return cls(block_hash=_str(data, "blockHash"), miner=_str(data, "miner"))

    def to_dict(self) -> dict[str, Any]:
        return {"blockHash": self.block_hash, "miner": self.miner}


@dataclass
class Token:
    id: str
    amount: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Token:
        data = _mapping(data, "Token")
        return cls(id=_str(data, "id"), amount=_str(data, "amount"))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "amount": self.amount}


@dataclass
class OutputRef:
    hint: int
    key: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OutputRef:
        data = _mapping(data, "OutputRef")
        return cls(hint=_int(data, "hint", bits=32), key=_str(data, "key"))

    def to_dict(self) -> dict[str, Any]:
        return {"hint": self.hint, "key": self.key}


@dataclass
class Output:
    """A generated output; its contents are not kept."""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Output:
        _mapping(data, "Output")
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {}


@dataclass
class AssetInput:
    output_ref: OutputRef
    unlock_script: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AssetInput:
        data = _mapping(data, "AssetInput")
        return cls(
            output_ref=OutputRef.from_dict(_field(data, "outputRef")),
            unlock_script=_str(data, "unlockScript"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"outputRef": self.output_ref.to_dict(), "unlockScript": self.unlock_script}


@dataclass
class FixedAssetOutput:
    hint: int
    key: str
    atto_alph_amount: str
    address: str
    tokens: list[Token]
    lock_time: int
    message: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FixedAssetOutput:
        data = _mapping(data, "FixedAssetOutput")
        return cls(
            hint=_int(data, "hint", bits=32),
            key=_str(data, "key"),
            atto_alph_amount=_str(data, "attoAlphAmount"),
            address=_str(data, "address"),
            tokens=_list(data, "tokens", Token.from_dict),
            lock_time=_int(data, "lockTime"),
            message=_str(data, "message"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hint": self.hint,
            "key": self.key,
            "attoAlphAmount": self.atto_alph_amount,
            "address": self.address,
            "tokens": [token.to_dict() for token in self.tokens],
            "lockTime": self.lock_time,
            "message": self.message,
        }


@dataclass
class ContractOutput:
    hint: int
    key: str
    atto_alph_amount: str
    address: str
    tokens: list[Token]
    typ: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ContractOutput:
        data = _mapping(data, "ContractOutput")
        return cls(
            hint=_int(data, "hint", bits=32),
            key=_str(data, "key"),
            atto_alph_amount=_str(data, "attoAlphAmount"),
            address=_str(data, "address"),
            tokens=_list(data, "tokens", Token.from_dict),
            typ=_str(data, "typ"),
        )


@dataclass
class AssetOutput:
    hint: int
    key: str
    atto_alph_amount: str
    address: str
    tokens: list[Token]
    lock_time: int
    message: str
    typ: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AssetOutput:
        data = _mapping(data, "AssetOutput")
        return cls(
            hint=_int(data, "hint", bits=32),
            key=_str(data, "key"),
            atto_alph_amount=_str(data, "attoAlphAmount"),
            address=_str(data, "address"),
            tokens=_list(data, "tokens", Token.from_dict),
            lock_time=_int(data, "lockTime"),
            message=_str(data, "message"),
            typ=_str(data, "typ"),
        )


@dataclass
class UnsignedTx:
    tx_id: str
    version: int
    network_id: int
    script_opt: str | None
    gas_amount: int
    gas_price: str
    inputs: list[AssetInput]
    fixed_outputs: list[FixedAssetOutput]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UnsignedTx:
        data = _mapping(data, "UnsignedTx")
        return cls(
            tx_id=_str(data, "txId"),
            version=_int(data, "version", bits=32),
            network_id=_int(data, "networkId", bits=32),
            script_opt=_optional(data, "scriptOpt", _check_str),
            gas_amount=_int(data, "gasAmount", bits=32),
            gas_price=_str(data, "gasPrice"),
            inputs=_list(data, "inputs", AssetInput.from_dict),
            fixed_outputs=_list(data, "fixedOutputs", FixedAssetOutput.from_dict),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "txId": self.tx_id,
            "version": self.version,
            "networkId": self.network_id,
            "scriptOpt": self.script_opt,
            "gasAmount": self.gas_amount,
            "gasPrice": self.gas_price,
            "inputs": [item.to_dict() for item in self.inputs],
            "fixedOutputs": [item.to_dict() for item in self.fixed_outputs],
        }


@dataclass
class Transaction:
    unsigned: UnsignedTx
    script_execution_ok: bool
    contract_inputs: list[OutputRef]
    generated_outputs: list[Output]
    input_signatures: list[str]
    script_signatures: list[str]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Transaction:
        data = _mapping(data, "Transaction")
        return cls(
            unsigned=UnsignedTx.from_dict(_field(data, "unsigned")),
            script_execution_ok=_bool(data, "scriptExecutionOk"),
            contract_inputs=_list(data, "contractInputs", OutputRef.from_dict),
            generated_outputs=_list(data, "generatedOutputs", Output.from_dict),
            input_signatures=_str_list(data, "inputSignatures"),
            script_signatures=_str_list(data, "scriptSignatures"),
        )


def _check_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"invalid type for `{key}`: expected a boolean")
    return value


@dataclass
class BlockEntry:
    hash: str
    timestamp: int
    chain_from: int
    chain_to: int
    height: int
    deps: list[str]
    transactions: list[Transaction]
    nonce: str
    version: int
    dep_state_hash: str
    txs_hash: str
    target: str
    ghost_uncles: list[GhostUncleBlockEntry]
    parent: BlockHash | None = None
    main_chain: bool | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BlockEntry:
        data = _mapping(data, "BlockEntry")
        return cls(
            hash=_str(data, "hash"),
            timestamp=_int(data, "timestamp"),
            chain_from=_int(data, "chainFrom"),
            chain_to=_int(data, "chainTo"),
            height=_int(data, "height"),
            deps=_str_list(data, "deps"),
            transactions=_list(data, "transactions", Transaction.from_dict),
            nonce=_str(data, "nonce"),
            version=_int(data, "version", bits=8),
            dep_state_hash=_str(data, "depStateHash"),
            txs_hash=_str(data, "txsHash"),
            target=_str(data, "target"),
            ghost_uncles=_list(data, "ghostUncles", GhostUncleBlockEntry.from_dict),
            parent=_optional(data, "parent", _check_str),
            main_chain=_optional(data, "mainChain", _check_bool),
        )


@dataclass
class LatestBlock:
    hash: str
    timestamp: int
    chain_from: int
    chain_to: int
    height: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LatestBlock:
        data = _mapping(data, "LatestBlock")
        return cls(
            hash=_str(data, "hash"),
            timestamp=_int(data, "timestamp"),
            chain_from=_int(data, "chain_from"),
            chain_to=_int(data, "chain_to"),
            height=_int(data, "height"),
        )


def _nested(item: Callable[[Any], _T]) -> Callable[[Any], list[_T]]:
    def parse(value: Any) -> list[_T]:
        if not isinstance(value, list):
            raise ValueError("invalid type: expected a list")
        return [item(element) for element in value]

    return parse


@dataclass
class BlocksPerTimestampRange:
    """Blocks grouped per chain for a timestamp range."""

    blocks: list[list[BlockEntry]]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BlocksPerTimestampRange:
        data = _mapping(data, "BlocksPerTimestampRange")
        return cls(blocks=_list(data, "blocks", _nested(BlockEntry.from_dict)))


class EventFieldType(Enum):
    BOOL = "Bool"
    I256 = "I256"
    U256 = "U256"
    BYTE_VEC = "ByteVec"
    ADDRESS = "Address"


@dataclass
class EventField:
    field_type: EventFieldType
    value: Any

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EventField:
        data = _mapping(data, "EventField")
        raw_type = _field(data, "type")
        try:
            field_type = EventFieldType(raw_type)
        except ValueError:
            raise ValueError(f"unknown variant `{raw_type}` for event field type") from None
        return cls(field_type=field_type, value=_field(data, "value"))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.field_type.value, "value": self.value}


@dataclass
class ContractEventByBlockHash:
    tx_id: str
    contract_address: str
    event_index: int
    fields: list[EventField]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ContractEventByBlockHash:
        data = _mapping(data, "ContractEventByBlockHash")
        return cls(
            tx_id=_str(data, "txId"),
            contract_address=_str(data, "contractAddress"),
            event_index=_int(data, "eventIndex", bits=32),
            fields=_list(data, "fields", EventField.from_dict),
        )


Event = ContractEventByBlockHash


@dataclass
class BlockAndEvents:
    block: BlockEntry
    events: list[ContractEventByBlockHash]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BlockAndEvents:
        data = _mapping(data, "BlockAndEvents")
        return cls(
            block=BlockEntry.from_dict(_field(data, "block")),
            events=_list(data, "events", ContractEventByBlockHash.from_dict),
        )


@dataclass
class BlocksAndEventsPerTimestampRange:
    """Blocks with their events, grouped per chain for a timestamp range."""

    blocks_and_events: list[list[BlockAndEvents]]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BlocksAndEventsPerTimestampRange:
        data = _mapping(data, "BlocksAndEventsPerTimestampRange")
        return cls(
            blocks_and_events=_list(data, "blocksAndEvents", _nested(BlockAndEvents.from_dict))
        )


@dataclass
class TimestampRange:
    from_: int
    to: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TimestampRange:
        data = _mapping(data, "TimestampRange")
        return cls(
            from_=_int(data, "from", signed=False),
            to=_int(data, "to", signed=False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.from_, "to": self.to}


class Order(Enum):
    ASC = "Asc"
    DESC = "Desc"


@dataclass(frozen=True)
class BlockRange:
    from_ts: int
    to_ts: int


@dataclass
class BlockBatch:
    blocks: list[BlockAndEvents]
    range: BlockRange


@dataclass(frozen=True)
class FetchStrategy:
    """How blocks are fetched: simply, in chunks, or by parallel workers."""

    kind: str
    chunk_size: int | None = None
    workers: int | None = None

    @classmethod
    def simple(cls) -> FetchStrategy:
        return cls(kind="simple")

    @classmethod
    def chunked(cls, chunk_size: int) -> FetchStrategy:
        return cls(kind="chunked", chunk_size=chunk_size)

    @classmethod
    def parallel(cls, num_workers: int) -> FetchStrategy:
        return cls(kind="parallel", workers=num_workers)

    def num_workers(self) -> int:
        if self.kind == "parallel" and self.workers is not None:
            return self.workers
        return 1


@dataclass
class StageRange:
    """Input of the fetcher stage."""

    range: BlockRange


@dataclass
class StageBatch:
    """Input of the processor stage."""

    batch: BlockBatch


@dataclass
class StageProcessed:
    """Output of the processor stage."""

    output: Any


@dataclass
class StageComplete:
    """Marks the end of the pipeline's input."""


StageMessage = Union[StageRange, StageBatch, StageProcessed, StageComplete]

__all__ = [
    "DEFAULT_GROUP_NUM",
    "REORG_TIMEOUT",
    "MAX_TIMESTAMP_RANGE",
    "BlockHash",
    "GroupIndex",
    "Event",
    "StageMessage",
    "BlockHeaderEntry",
    "GhostUncleBlockEntry",
    "Token",
    "OutputRef",
    "Output",
    "AssetInput",
    "FixedAssetOutput",
    "ContractOutput",
    "AssetOutput",
    "UnsignedTx",
    "Transaction",
    "BlockEntry",
    "LatestBlock",
    "BlocksPerTimestampRange",
    "EventFieldType",
    "EventField",
    "ContractEventByBlockHash",
    "BlockAndEvents",
    "BlocksAndEventsPerTimestampRange",
    "TimestampRange",
    "Order",
    "BlockRange",
    "BlockBatch",
    "FetchStrategy",
    "StageRange",
    "StageBatch",
    "StageProcessed",
    "StageComplete",
]

_unused = field  # keep dataclasses.field importable for subclass defaults