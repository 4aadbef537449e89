# bento_indexer

A library of parts for indexing a blockchain node into a relational database.
It has typed records for the node's JSON responses, SQLAlchemy table
definitions, and row models built from fetched blocks. It has functions that
store and query blocks, events, transactions and processor progress. It also
has a processor interface for turning fetched blocks into stored output.

## Installation

```
pip install .
```

Connecting to PostgreSQL needs a database driver that SQLAlchemy can use.
That driver is not installed with this package.

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `bento_indexer.types`

This module has records parsed from the node's camel-case JSON with
`from_dict`. Among them are `BlockEntry`, `BlockHeaderEntry`, `LatestBlock`,
`Transaction`, `UnsignedTx`, `ContractEventByBlockHash` (also named `Event`),
`EventField` with `EventFieldType`, `BlockAndEvents`, `BlocksPerTimestampRange`
and `BlocksAndEventsPerTimestampRange`.

- Missing fields, wrong types and out-of-range integers raise `ValueError`.
- Records that are written back to JSON have `to_dict`.
- The module also defines `Order`, `TimestampRange`, `BlockRange`,
  `BlockBatch` and `FetchStrategy`. `FetchStrategy` has the constructors
  `simple()`, `chunked(chunk_size)` and `parallel(num_workers)`, and the
  method `num_workers()`.
- The pipeline stage messages are `StageRange`, `StageBatch`,
  `StageProcessed` and `StageComplete`.
- The constants are `DEFAULT_GROUP_NUM`, `REORG_TIMEOUT` and
  `MAX_TIMESTAMP_RANGE`.

### `bento_indexer.timeutils`

`timestamp_millis_to_naive_datetime(ms)` converts milliseconds since the
epoch to a naive UTC `datetime`. It returns the epoch for a timestamp that
cannot be represented.

### `bento_indexer.network`

This module has `NetworkType` (`DEVNET`, `TESTNET`, `MAINNET`) and `Network`.

- `Network.DEVNET`, `Network.TESTNET` and `Network.MAINNET` take their
  `base_url()` from `DEV_NODE_URL`, `TESTNET_NODE_URL` and `MAINNET_NODE_URL`.
  When a variable is not set, the network falls back to a built-in default.
- `Network.custom(url, network_type)` fixes the URL.
- `Network.default()` reads `ENVIRONMENT`. The values `development`,
  `testnet` and `mainnet` select a network. Any other value selects mainnet.
- `Network.from_str` and `NetworkType.from_str` raise `ValueError` for an
  unknown name.

### `bento_indexer.errors`

`AppError` has the subclasses `InternalError`, `DatabaseError`,
`ValidationError`, `NotFoundError`, `UnauthorizedError`, `ForbiddenError` and
`BadRequestError`.

- `to_response()` returns an HTTP status code and a JSON body.
- `AppError.from_exception(error)` classifies any exception.

The repository errors are `RepositoryError`, `BlockNotFoundError`,
`RepositoryDatabaseError` and `RepositoryOtherError`.

### `bento_indexer.schema`

This module defines the tables `blocks`, `events`, `transactions`,
`processor_status`, `loan_actions` and `loan_details` on `metadata`.
`create_tables(engine)` creates any of them that are missing.

### `bento_indexer.db`

- `new_db_pool(database_url, max_pool_size=None)` returns a SQLAlchemy engine.
  The pool size defaults to `DEFAULT_MAX_POOL_SIZE`, which is 150. An
  `sslrootcert` query parameter is passed to the driver for TLS.
- `parse_and_clean_db_url` separates that parameter from the URL.
- `run_pending_migrations(engine)` creates the tables.

### `bento_indexer.models`

This module has the row models `BlockModel`, `EventModel`, `TransactionModel`
and `ProcessorStatusModel`.

- `BlockModel.parent(group_num=None)` returns the parent hash, or `None` for
  a block at height 0.
- The processor outputs are `BlockOutput`, `EventOutput`, `TxOutput` and
  `CustomOutput`.
- `convert_bwe_to_block_models`, `convert_bwe_to_event_models` and
  `convert_bwe_to_tx_models` build rows from `BlockAndEvents`. Each event gets
  a fresh UUID. Consecutive duplicate transactions are dropped.

### `bento_indexer.repository`

These are synchronous functions that take an engine.

- Inserts ignore conflicting rows: `insert_blocks_to_db`,
  `insert_events_to_db` and `insert_txs_to_db`.
- `insert_block_and_events` writes one block and its events in one
  transaction.
- Queries: `get_block_by_hash`, `get_block_by_height`, `get_blocks`,
  `exists_block`, `fetch_block_hashes_at_height_filter_one`, `get_events`,
  `get_events_by_contract`, `get_events_by_tx`, `get_txs`, `get_tx_by_hash`,
  `get_txs_by_block` and `get_block_transactions`. The last two raise
  `BlockNotFoundError` when the block is not stored.
- `update_main_chain` and `update_main_chain_status` keep main-chain flags
  right on blocks and transactions.
- `get_last_timestamp` and `update_last_timestamp` store processor progress
  under `processor_key(name, network, is_backward)`. `get_last_timestamp`
  raises `LookupError` when nothing is stored.

### `bento_indexer.processor`

This module has the abstract bases `Processor`, `BlockProvider`,
`TransactionProvider` and `StageHandler`. The default
`Processor.store_output` stores block, event and transaction output. For a
`CustomOutput` it only logs a warning.

### `bento_indexer.lending`

`LendingContractProcessor(engine, {"contract_address": ...})` is a sample
custom processor. It collects `LoanActionModel` and `LoanDetailModel` rows
from a contract's events into the `loan_actions` and `loan_details` tables.
`processor_factory()` returns a function that builds such a processor.

## Example

```python
from sqlalchemy import create_engine

from bento_indexer.models import convert_bwe_to_block_models
from bento_indexer.repository import get_blocks, insert_blocks_to_db
from bento_indexer.schema import create_tables
from bento_indexer.types import BlockAndEvents

engine = create_engine("sqlite:///index.db")
create_tables(engine)

blocks = [BlockAndEvents.from_dict(item) for item in payload]
insert_blocks_to_db(engine, convert_bwe_to_block_models(blocks))
print(get_blocks(engine, limit=10, offset=0))
```

## What this package does not do

This package is a library only.

- It has no command-line program.
- It has no client that fetches blocks from a node.
- It has no worker loop that syncs ranges over time.
- It has no HTTP API server.

`BlockProvider`, `TransactionProvider` and `StageHandler` are interfaces to
implement. The errors in `bento_indexer.errors` describe responses but do not
serve them.