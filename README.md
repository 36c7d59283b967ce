# suiwatch

`suiwatch` picks out the transactions in Sui checkpoints that call a Move
package you choose, and stores them in a SQL database through SQLAlchemy.

For each matching transaction it writes one row to each of these tables:

- `transactions`: digest, checkpoint sequence number, sender, a JSON summary
  of the transaction kind, gas budget, gas price and the transaction as given
- `transaction_effects`: the effects as JSON
- `transaction_events`: the events as JSON, only when the transaction has events
- `input_objects` and `output_objects`: the object lists as JSON

A transaction is skipped if it has no Move calls, or if none of its Move calls
are to the target package. Rows whose primary key is already stored are left
as they are.

## Installation

```
pip install suiwatch
```

Only SQLAlchemy is required. SQLite works out of the box; for PostgreSQL,
install a driver that SQLAlchemy supports.

## Checkpoint input

Checkpoints are plain dictionaries, for example decoded from JSON, read with
`suiwatch.checkpoint.CheckpointData.from_dict`:

```python
raw_checkpoint = {
    "sequence_number": 7,
    "transactions": [
        {
            "transaction": {
                "digest": "DigestA",
                "sender": "0x1234",
                "gas_budget": 1000,
                "gas_price": 10,
                "kind": {
                    "type": "ProgrammableTransaction",
                    "inputs": [],
                    "commands": [
                        {"type": "MoveCall", "package": "0x2",
                         "module": "coin", "function": "transfer"},
                        {"type": "SplitCoins"},
                    ],
                },
            },
            "effects": {"status": "success"},
            "events": [],
            "input_objects": [],
            "output_objects": [],
        }
    ],
}
```

- `sequence_number`, `gas_budget` and `gas_price` must be integers from 0 to
  2**64 - 1.
- `kind` is either a dictionary with a `type` key or a bare type name such as
  `"ConsensusCommitPrologue"`. Only `"ProgrammableTransaction"` carries
  `inputs` and `commands`, and only its `MoveCall` commands count as Move
  calls.
- Command types are `MoveCall`, `TransferObjects`, `SplitCoins`,
  `MergeCoins`, `Publish`, `MakeMoveVec` and `Upgrade`; a `MoveCall` needs
  `package`, `module` and `function`.
- `events`, `input_objects` and `output_objects` are optional; the object
  lists default to empty lists.

Missing fields and values of the wrong kind raise `ValueError`.

Addresses and package ids go through `normalize_address`, which lower-cases
them and pads them to `0x` followed by 64 hex digits, so `0x2` and its full
form are the same package. A string that is not hex, or is longer than 64
digits, raises `ValueError`; a value that is not a string raises `TypeError`.

## Usage

```python
from suiwatch.pipeline import SuiIndexer

indexer = SuiIndexer()
indexer.set_filter_package("0x2")
inserted = indexer.start("sqlite:///index.db", [raw_checkpoint])
```

`start` accepts `CheckpointData` objects or dictionaries in the form above.
It creates any missing tables, then processes each checkpoint and commits its
records in a transaction of its own. It returns the number of new rows
written to `transactions`. Without a package filter it raises
`ValueError("Package filter not set")`.

### Working with the pipeline directly

```python
from sqlalchemy import create_engine
from suiwatch.checkpoint import CheckpointData
from suiwatch.schema import create_tables

pipeline = indexer.build_pipeline()
engine = create_engine("sqlite:///index.db")
create_tables(engine)

with engine.begin() as connection:
    values = pipeline.process(CheckpointData.from_dict(raw_checkpoint))
    inserted = pipeline.commit(values, connection)
```

`IndexerPipeline.process` returns a list of `TransactionWithEffects`, one per
matching transaction, in checkpoint order. The `tx_kind` JSON of each
transaction holds `type`, `matched_calls` (package id, module and function of
each call to the target package), `total_move_calls`, and for programmable
transactions also `inputs` and `commands`.

`IndexerPipeline.commit` inserts the records and returns the number of new
rows in `transactions`. A database error is raised as `RuntimeError`, naming
the kind of record that failed. `check_package(package_id)` tells whether a
package id is the watched one.

Progress is logged through the `suiwatch.pipeline` logger at INFO level.

### Field settings

`SuiIndexer.set_filter_fields` takes `IndexField` members (`TRANSACTION`,
`EFFECTS`, `EVENTS`, `INPUT_OBJECTS`, `OUTPUT_OBJECTS`), and
`set_filter_callback_for_field` registers a callback for a field, replacing
any earlier one. Both are handed on to the pipeline, but processing does not
use them: every record is written whatever they hold.

## Models and schema

`suiwatch.models` holds a dataclass for each table: `Transaction`,
`TransactionEffect`, `TransactionEvent`, `InputObjects`, `OutputObjects`,
`CheckpointTransaction` and `MyIndexData`. Each has `as_row()`, which returns
a dictionary of column values, and a `table_name`.
`CheckpointTransaction.from_digest(digest)` builds a record whose two digest
columns both hold the digest.

`suiwatch.schema.table_for(name)` returns the SQLAlchemy `Table` with that
name (or raises `KeyError`), and `create_tables(engine)` creates the tables
that do not exist yet. JSON columns are `JSONB` on PostgreSQL and `JSON`
elsewhere.

## What it does not do

- It does not fetch checkpoints from a Sui node or any other service; you
  supply them.
- It has no command-line program and no long-running service.
- It does not manage schema migrations; `create_tables` only creates missing
  tables.
- Nothing writes to the `checkpoint_transactions` or `my_index_data` tables;
  they are defined for your own use.

## Development

```
pip install -e ".[test]"
pytest
```