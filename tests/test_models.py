import uuid
from datetime import datetime

import pytest

from bento_indexer.models import (
    BlockModel,
    EventModel,
    ProcessorStatusModel,
    TransactionModel,
    convert_bwe_to_block_models,
    convert_bwe_to_event_models,
    convert_bwe_to_tx_models,
)
from bento_indexer.timeutils import timestamp_millis_to_naive_datetime
from bento_indexer.types import BlockAndEvents


def _tx(tx_id):
    return {
        "unsigned": {
            "txId": tx_id,
            "version": 1,
            "networkId": 42,
            "scriptOpt": "script",
            "gasAmount": 1000,
            "gasPrice": "1000000000",
            "inputs": [],
            "fixedOutputs": [],
        },
        "scriptExecutionOk": True,
        "contractInputs": [{"hint": 7, "key": "key1"}],
        "generatedOutputs": [{}],
        "inputSignatures": ["sig1"],
        "scriptSignatures": [],
    }


def _bwe(transactions=(), events=(), block_hash="blockhash123"):
    return BlockAndEvents.from_dict(
        {
            "block": {
                "hash": block_hash,
                "parent": "parent_hash",
                "mainChain": True,
                "timestamp": 1672531200,
                "chainFrom": 1,
                "chainTo": 2,
                "height": 1000,
                "deps": ["hash1", "hash2"],
                "transactions": list(transactions),
                "nonce": "nonce_value",
                "version": 1,
                "depStateHash": "dep_hash",
                "txsHash": "txs_hash",
                "target": "target_value",
                "ghostUncles": [{"blockHash": "unclehash1", "miner": "miner1"}],
            },
            "events": list(events),
        }
    )


def _event(index):
    return {
        "contractAddress": "contract1",
        "txId": "tx123",
        "eventIndex": index,
        "fields": [{"type": "ByteVec", "value": ""}],
    }


def _block_model(height, deps):
    return BlockModel(
        hash="h",
        timestamp=datetime(2024, 1, 1),
        chain_from=0,
        chain_to=0,
        height=height,
        deps=deps,
        nonce="n",
        version="1",
        dep_state_hash="d",
        txs_hash="t",
        tx_number=0,
        target="x",
        main_chain=True,
        ghost_uncles=[],
    )


def test_convert_block_models():
    [model] = convert_bwe_to_block_models([_bwe(transactions=[_tx("a"), _tx("b")])])
    assert model.hash == "blockhash123"
    assert model.timestamp == timestamp_millis_to_naive_datetime(1672531200)
    assert model.deps == ["hash1", "hash2"]
    assert model.version == "1"
    assert model.tx_number == 2
    assert model.main_chain is True
    assert model.ghost_uncles == [{"blockHash": "unclehash1", "miner": "miner1"}]


def test_convert_block_models_missing_main_chain_is_false():
    bwe = _bwe()
    bwe.block.main_chain = None
    [model] = convert_bwe_to_block_models([bwe])
    assert model.main_chain is False


def test_convert_event_models_assigns_unique_ids():
    models = convert_bwe_to_event_models([_bwe(events=[_event(0), _event(1)])])
    assert [m.event_index for m in models] == [0, 1]
    assert len({m.id for m in models}) == 2
    assert all(uuid.UUID(m.id).version == 4 for m in models)
    assert models[0].fields == [{"type": "ByteVec", "value": ""}]


def test_convert_tx_models_drops_consecutive_duplicates():
    models = convert_bwe_to_tx_models([_bwe(transactions=[_tx("a"), _tx("a"), _tx("b")])])
    assert [m.tx_hash for m in models] == ["a", "b"]
    assert all(m.block_hash == "blockhash123" for m in models)


def test_convert_tx_models_keeps_non_consecutive_duplicates():
    models = convert_bwe_to_tx_models([_bwe(transactions=[_tx("a"), _tx("b"), _tx("a")])])
    assert [m.tx_hash for m in models] == ["a", "b", "a"]


def test_convert_tx_model_fields():
    [model] = convert_bwe_to_tx_models([_bwe(transactions=[_tx("a")])])
    assert model.unsigned["txId"] == "a"
    assert model.unsigned["gasPrice"] == "1000000000"
    assert model.contract_inputs == [{"hint": 7, "key": "key1"}]
    assert model.generated_outputs == [{}]
    assert model.input_signatures == ["sig1"]
    assert model.script_execution_ok is True


def test_parent_of_genesis_is_none():
    assert _block_model(0, ["a", "b", "c", "d", "e"]).parent(None) is None


def test_parent_uses_default_group():
    model = _block_model(5, ["a", "b", "c", "d", "e"])
    assert model.parent(None) == "e"
    assert model.parent(0) == "a"


def test_get_deps_rejects_missing():
    with pytest.raises(ValueError):
        _block_model(5, ["a", None]).get_deps()


def test_row_round_trips():
    block = _block_model(3, ["a"])
    assert BlockModel.from_row(block.to_row()) == block
    event = EventModel(id="i", tx_id="t", contract_address="c", event_index=2, fields=[])
    assert EventModel.from_row(event.to_row()) == event
    tx = TransactionModel(
        tx_hash="t",
        unsigned={},
        script_execution_ok=False,
        contract_inputs=[],
        generated_outputs=[],
        block_hash="b",
    )
    assert TransactionModel.from_row(tx.to_row()) == tx
    status = ProcessorStatusModel(processor="p", last_timestamp=9)
    assert ProcessorStatusModel.from_row(status.to_row()) == status