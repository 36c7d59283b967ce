"""Table definitions for the indexed transaction data."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    MetaData,
    String,
    Table,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine

metadata = MetaData()

# JSONB on PostgreSQL, plain JSON elsewhere.
_JSON = JSON().with_variant(JSONB(), "postgresql")


def _timestamp() -> Column:
    return Column("created_at", DateTime(timezone=True), nullable=True)


transactions = Table(
    "transactions",
    metadata,
    Column("tx_digest", String, primary_key=True),
    Column("checkpoint_sequence_number", BigInteger, nullable=False),
    Column("sender", String, nullable=False),
    Column("tx_kind", _JSON, nullable=False),
    Column("gas_budget", BigInteger, nullable=False),
    Column("gas_price", BigInteger, nullable=False),
    Column("serialized_tx", _JSON, nullable=False),
    _timestamp(),
)

checkpoint_transactions = Table(
    "checkpoint_transactions",
    metadata,
    Column("tx_digest", String, primary_key=True),
    Column("transaction_digest", String, nullable=False),
    Column("transaction_effects_digest", String, nullable=True),
    Column("transaction_events_digest", String, nullable=True),
    Column("input_objects_digest", String, nullable=True),
    Column("output_objects_digest", String, nullable=True),
    _timestamp(),
)

my_index_data = Table(
    "my_index_data",
    metadata,
    Column("id", String, primary_key=True),
    Column("checkpoint_sequence_number", BigInteger, nullable=False),
)


def _json_table(name: str, json_column: str) -> Table:
    return Table(
        name,
        metadata,
        Column(
            "tx_digest",
            String,
            ForeignKey("transactions.tx_digest"),
            primary_key=True,
        ),
        Column(json_column, _JSON, nullable=False),
        _timestamp(),
    )


input_objects = _json_table("input_objects", "objects_json")
output_objects = _json_table("output_objects", "objects_json")
transaction_effects = _json_table("transaction_effects", "effects_json")
transaction_events = _json_table("transaction_events", "events_json")


def create_tables(engine: Engine) -> None:
    """Create every table that does not exist yet."""
    metadata.create_all(engine)


def table_for(name: str) -> Table:
    """Return the table with the given name."""
    try:
        return metadata.tables[name]
    except KeyError:
        raise KeyError(f"unknown table: {name!r}") from None