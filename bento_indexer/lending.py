"""Processor indexing the events of a lending contract."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import IntEnum
from typing import Any

from sqlalchemy import insert
from sqlalchemy.engine import Engine

from bento_indexer.models import CustomOutput, ProcessorOutput
from bento_indexer.processor import Processor
from bento_indexer.schema import loan_actions, loan_details
from bento_indexer.timeutils import timestamp_millis_to_naive_datetime
from bento_indexer.types import BlockAndEvents, ContractEventByBlockHash

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")
_LOAN_DETAIL_INDEX = 1


class LoanActionType(IntEnum):
    """Kind of a loan action, stored as a small integer."""

    LOAN_CREATED = 0
    LOAN_CANCELLED = 1
    LOAN_PAID = 2
    LOAN_ACCEPTED = 3
    LOAN_LIQUIDATED = 4

    @classmethod
    def from_event_index(cls, event_index: int) -> LoanActionType | None:
        """The action an event index stands for, or None."""
        return _BY_EVENT_INDEX.get(event_index)

    def as_string(self) -> str:
        return "".join(part.capitalize() for part in self.name.split("_"))


_BY_EVENT_INDEX = {
    2: LoanActionType.LOAN_CREATED,
    3: LoanActionType.LOAN_CANCELLED,
    4: LoanActionType.LOAN_PAID,
    5: LoanActionType.LOAN_ACCEPTED,
    6: LoanActionType.LOAN_LIQUIDATED,
}


@dataclass
class LoanActionModel:
    """A row of the ``loan_actions`` table."""

    loan_subcontract_id: str
    loan_id: Decimal | None
    by: str
    timestamp: datetime
    action_type: LoanActionType

    def to_row(self) -> dict[str, Any]:
        return {
            "loan_subcontract_id": self.loan_subcontract_id,
            "loan_id": self.loan_id,
            "by": self.by,
            "timestamp": self.timestamp,
            "action_type": int(self.action_type),
        }


@dataclass
class LoanDetailModel:
    """A row of the ``loan_details`` table."""

    loan_subcontract_id: str
    lending_token_id: str
    collateral_token_id: str
    lending_amount: Decimal
    collateral_amount: Decimal
    interest_rate: Decimal
    duration: Decimal
    lender: str

    def to_row(self) -> dict[str, Any]:
        return {
            "loan_subcontract_id": self.loan_subcontract_id,
            "lending_token_id": self.lending_token_id,
            "collateral_token_id": self.collateral_token_id,
            "lending_amount": self.lending_amount,
            "collateral_amount": self.collateral_amount,
            "interest_rate": self.interest_rate,
            "duration": self.duration,
            "lender": self.lender,
        }


@dataclass
class LendingContractOutput:
    """Loan actions and loan details found in a batch of blocks."""

    loan_actions: list[LoanActionModel] = field(default_factory=list)
    loan_details: list[LoanDetailModel] = field(default_factory=list)


class LendingContractProcessor(Processor):
    """Indexes loan actions and loan details emitted by one contract."""

    def __init__(self, connection_pool: Engine, args: Mapping[str, Any] | None) -> None:
        address = args.get("contract_address") if isinstance(args, Mapping) else None
        if not isinstance(address, str):
            raise ValueError("Missing contract address argument")
        self._connection_pool = connection_pool
        self.contract_address = address

    def __repr__(self) -> str:
        return f"LendingContractProcessor(contract_address={self.contract_address!r})"

    def name(self) -> str:
        return "lending"

    def connection_pool(self) -> Engine:
        return self._connection_pool

    def process_blocks(
        self, from_ts: int, to_ts: int, blocks: Sequence[BlockAndEvents]
    ) -> ProcessorOutput:
        actions, details = convert_to_model(blocks, self.contract_address)
        logger.info(
            "Processed %d loan actions and %d loan details", len(actions), len(details)
        )
        return CustomOutput(LendingContractOutput(loan_actions=actions, loan_details=details))

    def store_output(self, output: ProcessorOutput) -> None:
        if not isinstance(output, CustomOutput):
            raise TypeError("Expected Custom output type")
        lending = output.output
        if not isinstance(lending, LendingContractOutput):
            raise TypeError("Invalid custom output type")
        if lending.loan_actions:
            insert_loan_actions_to_db(self._connection_pool, lending.loan_actions)
        if lending.loan_details:
            insert_loan_details_to_db(self._connection_pool, lending.loan_details)
        logger.info(
            "Stored %d loan actions and %d loan details",
            len(lending.loan_actions),
            len(lending.loan_details),
        )


def processor_factory() -> Callable[[Engine, Mapping[str, Any] | None], Processor]:
    """A factory building a lending processor from a pool and its arguments."""

    def build(db_pool: Engine, args: Mapping[str, Any] | None = None) -> Processor:
        return LendingContractProcessor(db_pool, args)

    return build


def insert_loan_actions_to_db(db: Engine, actions: Iterable[LoanActionModel]) -> None:
    rows = [action.to_row() for action in actions]
    if not rows:
        return
    with db.begin() as conn:
        conn.execute(insert(loan_actions), rows)


def insert_loan_details_to_db(db: Engine, details: Iterable[LoanDetailModel]) -> None:
    rows = [detail.to_row() for detail in details]
    if not rows:
        return
    with db.begin() as conn:
        conn.execute(insert(loan_details), rows)


def convert_to_model(
    blocks: Iterable[BlockAndEvents], contract_address: str
) -> tuple[list[LoanActionModel], list[LoanDetailModel]]:
    """Collect the loan actions and loan details emitted by ``contract_address``."""
    actions: list[LoanActionModel] = []
    details: list[LoanDetailModel] = []
    for be in blocks:
        for event in be.events:
            if event.contract_address != contract_address:
                continue
            action = LoanActionType.from_event_index(event.event_index)
            if action is not None:
                actions.append(_loan_action(event, action))
            elif event.event_index == _LOAN_DETAIL_INDEX:
                details.append(_loan_detail(event))
    return actions, details


def _json_text(value: Any) -> str:
    # Identifiers are kept as their JSON text, so strings keep their quotes.
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _string_value(event: ContractEventByBlockHash, index: int) -> str:
    value = event.fields[index].value
    if not isinstance(value, str):
        raise ValueError(f"event field {index} is not a string: {value!r}")
    return value


def _int_value(event: ContractEventByBlockHash, index: int) -> int:
    text = _string_value(event, index)
    if not _INTEGER.fullmatch(text):
        raise ValueError(f"event field {index} is not an integer: {text!r}")
    return int(text)


def _decimal_value(event: ContractEventByBlockHash, index: int) -> Decimal:
    text = _string_value(event, index)
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValueError(f"event field {index} is not a decimal: {text!r}") from None


def _float_decimal_value(event: ContractEventByBlockHash, index: int) -> Decimal:
    text = _string_value(event, index)
    try:
        number = float(text)
    except ValueError:
        raise ValueError(f"event field {index} is not a number: {text!r}") from None
    result = Decimal(repr(number))
    if not result.is_finite():
        raise ValueError(f"event field {index} is not a finite number: {text!r}")
    return result


def _loan_action(event: ContractEventByBlockHash, action: LoanActionType) -> LoanActionModel:
    if len(event.fields) < 3:
        logger.warning("Invalid event fields length: %d, skipping", len(event.fields))
    if action is LoanActionType.LOAN_CREATED:
        return LoanActionModel(
            loan_subcontract_id=_json_text(event.fields[0].value),
            loan_id=_decimal_value(event, 1),
            by=_json_text(event.fields[2].value),
            timestamp=timestamp_millis_to_naive_datetime(_int_value(event, 3)),
            action_type=action,
        )
    return LoanActionModel(
        loan_subcontract_id=_json_text(event.fields[0].value),
        loan_id=None,
        by=_json_text(event.fields[1].value),
        timestamp=timestamp_millis_to_naive_datetime(_int_value(event, 2)),
        action_type=action,
    )


def _loan_detail(event: ContractEventByBlockHash) -> LoanDetailModel:
    if len(event.fields) != 8:
        logger.warning("Invalid event fields length: %d, skipping", len(event.fields))
    logger.debug("Loan detail lending amount: %r", event.fields[3].value)
    return LoanDetailModel(
        loan_subcontract_id=_json_text(event.fields[0].value),
        lending_token_id=_json_text(event.fields[1].value),
        collateral_token_id=_json_text(event.fields[2].value),
        lending_amount=_float_decimal_value(event, 3),
        collateral_amount=_float_decimal_value(event, 4),
        interest_rate=_float_decimal_value(event, 5),
        duration=_float_decimal_value(event, 6),
        lender=_json_text(event.fields[7].value),
    )


__all__ = [
    "LoanActionType",
    "LoanActionModel",
    "LoanDetailModel",
    "LendingContractOutput",
    "LendingContractProcessor",
    "processor_factory",
    "insert_loan_actions_to_db",
    "insert_loan_details_to_db",
    "convert_to_model",
]