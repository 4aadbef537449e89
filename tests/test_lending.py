import json
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select

from bento_indexer.lending import (
    LendingContractOutput,
    LendingContractProcessor,
    LoanActionType,
    convert_to_model,
    insert_loan_actions_to_db,
    insert_loan_details_to_db,
    processor_factory,
)
from bento_indexer.models import BlockOutput, CustomOutput
from bento_indexer.schema import create_tables, loan_actions, loan_details
from bento_indexer.timeutils import timestamp_millis_to_naive_datetime
from bento_indexer.types import (
    BlockAndEvents,
    BlockEntry,
    ContractEventByBlockHash,
    EventField,
    EventFieldType,
)

CONTRACT = "tgx7VNFoP9DJiFMFgXXtafQZkUvyEdDHT9ryamHJZC9M"
OTHER = "yuF1Sum4ricLFBc86h3RdjFsebR7ZXKBHm2S5sZmVsiF"
TS = 1672531200000


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'lending.sqlite'}")
    create_tables(eng)
    yield eng
    eng.dispose()


def _field(kind, value):
    return EventField(field_type=kind, value=value)


def _event(index, fields, address=CONTRACT):
    return ContractEventByBlockHash(
        tx_id="tx1", contract_address=address, event_index=index, fields=fields
    )


def _block(events):
    entry = BlockEntry(
        hash="blockhash123",
        timestamp=TS,
        chain_from=1,
        chain_to=2,
        height=1000,
        deps=["hash1", "hash2"],
        transactions=[],
        nonce="nonce_value",
        version=1,
        dep_state_hash="dep_hash",
        txs_hash="txs_hash",
        target="target_value",
        ghost_uncles=[],
    )
    return BlockAndEvents(block=entry, events=events)


def _created():
    return _event(
        2,
        [
            _field(EventFieldType.ADDRESS, "sub1"),
            _field(EventFieldType.U256, "42"),
            _field(EventFieldType.ADDRESS, "lender1"),
            _field(EventFieldType.U256, str(TS)),
        ],
    )


def _paid():
    return _event(
        4,
        [
            _field(EventFieldType.ADDRESS, "sub2"),
            _field(EventFieldType.ADDRESS, "payer"),
            _field(EventFieldType.U256, str(TS)),
        ],
    )


def _detail():
    return _event(
        1,
        [
            _field(EventFieldType.ADDRESS, "sub3"),
            _field(EventFieldType.BYTE_VEC, "tokA"),
            _field(EventFieldType.BYTE_VEC, "tokB"),
            _field(EventFieldType.U256, "1000"),
            _field(EventFieldType.U256, "2000"),
            _field(EventFieldType.U256, "5"),
            _field(EventFieldType.U256, "30"),
            _field(EventFieldType.ADDRESS, "lender1"),
        ],
    )


@pytest.mark.parametrize(
    "index, expected",
    [
        (2, LoanActionType.LOAN_CREATED),
        (3, LoanActionType.LOAN_CANCELLED),
        (4, LoanActionType.LOAN_PAID),
        (5, LoanActionType.LOAN_ACCEPTED),
        (6, LoanActionType.LOAN_LIQUIDATED),
        (1, None),
        (7, None),
        (-1, None),
    ],
)
def test_from_event_index(index, expected):
    assert LoanActionType.from_event_index(index) is expected


@pytest.mark.parametrize(
    "index, expected",
    [
        (2, "LoanCreated"),
        (3, "LoanCancelled"),
        (4, "LoanPaid"),
        (5, "LoanAccepted"),
        (6, "LoanLiquidated"),
    ],
)
def test_as_string(index, expected):
    action = LoanActionType.from_event_index(index)
    assert action.as_string() == expected


def test_loan_created_event():
    actions, details = convert_to_model([_block([_created()])], CONTRACT)
    assert details == []
    (action,) = actions
    assert json.loads(action.loan_subcontract_id) == "sub1"
    assert json.loads(action.by) == "lender1"
    assert action.loan_id == Decimal("42")
    assert action.timestamp == timestamp_millis_to_naive_datetime(TS)
    assert action.action_type is LoanActionType.LOAN_CREATED


def test_other_action_event_has_no_loan_id():
    actions, _ = convert_to_model([_block([_paid()])], CONTRACT)
    (action,) = actions
    assert action.loan_id is None
    assert json.loads(action.by) == "payer"
    assert action.action_type is LoanActionType.LOAN_PAID


def test_loan_detail_event():
    _, details = convert_to_model([_block([_detail()])], CONTRACT)
    (detail,) = details
    assert json.loads(detail.lending_token_id) == "tokA"
    assert json.loads(detail.collateral_token_id) == "tokB"
    assert detail.lending_amount == Decimal("1000")
    assert detail.collateral_amount == Decimal("2000")
    assert detail.interest_rate == Decimal("5")
    assert detail.duration == Decimal("30")
    assert json.loads(detail.lender) == "lender1"


def test_other_contracts_and_indexes_are_ignored():
    events = [_event(2, [], address=OTHER), _event(0, []), _event(9, [])]
    assert convert_to_model([_block(events)], CONTRACT) == ([], [])


def test_events_keep_their_order_across_blocks():
    blocks = [_block([_paid()]), _block([_created(), _detail()])]
    actions, details = convert_to_model(blocks, CONTRACT)
    assert [a.action_type for a in actions] == [
        LoanActionType.LOAN_PAID,
        LoanActionType.LOAN_CREATED,
    ]
    assert len(details) == 1


def test_bad_timestamp_is_rejected():
    event = _paid()
    event.fields[2] = _field(EventFieldType.U256, "soon")
    with pytest.raises(ValueError):
        convert_to_model([_block([event])], CONTRACT)


def test_non_string_amount_is_rejected():
    event = _detail()
    event.fields[3] = _field(EventFieldType.U256, 1000)
    with pytest.raises(ValueError):
        convert_to_model([_block([event])], CONTRACT)


def test_processor_requires_contract_address(engine):
    with pytest.raises(ValueError, match="Missing contract address argument"):
        LendingContractProcessor(engine, {})
    with pytest.raises(ValueError, match="Missing contract address argument"):
        processor_factory()(engine, None)


def test_factory_builds_named_processor(engine):
    processor = processor_factory()(engine, {"contract_address": CONTRACT})
    assert processor.name() == "lending"
    assert processor.connection_pool() is engine
    assert processor.contract_address == CONTRACT


def test_process_blocks_returns_custom_output(engine):
    processor = LendingContractProcessor(engine, {"contract_address": CONTRACT})
    output = processor.process_blocks(0, TS, [_block([_created(), _detail()])])
    assert len(output.output.loan_actions) == 1
    assert len(output.output.loan_details) == 1


def test_store_output_writes_rows(engine):
    processor = LendingContractProcessor(engine, {"contract_address": CONTRACT})
    output = processor.process_blocks(0, TS, [_block([_created(), _paid(), _detail()])])
    processor.store_output(output)
    with engine.connect() as conn:
        action_rows = conn.execute(
            select(loan_actions.c.action_type, loan_actions.c.by).order_by(loan_actions.c.id)
        ).all()
        detail_rows = conn.execute(select(loan_details.c.lender)).all()
    assert [row.action_type for row in action_rows] == [
        int(LoanActionType.LOAN_CREATED),
        int(LoanActionType.LOAN_PAID),
    ]
    assert json.loads(action_rows[1].by) == "payer"
    assert [json.loads(row.lender) for row in detail_rows] == ["lender1"]


def test_store_output_rejects_other_outputs(engine):
    processor = LendingContractProcessor(engine, {"contract_address": CONTRACT})
    with pytest.raises(TypeError, match="Expected Custom output type"):
        processor.store_output(BlockOutput([]))
    with pytest.raises(TypeError, match="Invalid custom output type"):
        processor.store_output(CustomOutput({"other": True}))


def test_insert_helpers_round_trip(engine):
    actions, details = convert_to_model([_block([_created(), _detail()])], CONTRACT)
    insert_loan_actions_to_db(engine, actions)
    insert_loan_details_to_db(engine, details)
    insert_loan_actions_to_db(engine, [])
    with engine.connect() as conn:
        loan_id = conn.execute(select(loan_actions.c.loan_id)).scalar_one()
        duration = conn.execute(select(loan_details.c.duration)).scalar_one()
    assert Decimal(loan_id) == Decimal("42")
    assert Decimal(duration) == Decimal("30")


def test_empty_output_stores_nothing(engine):
    processor = LendingContractProcessor(engine, {"contract_address": CONTRACT})
    processor.store_output(CustomOutput(LendingContractOutput()))
    with engine.connect() as conn:
        count = len(conn.execute(select(loan_actions)).all())
    assert count == 0