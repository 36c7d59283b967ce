"""Checkpoint processing and storage of transactions that call a watched package."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Table, and_, create_engine, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from .checkpoint import (
    PROGRAMMABLE_TRANSACTION,
    CheckpointData,
    ExecutedTransaction,
    normalize_address,
)
from .models import (
    InputObjects,
    MyIndexData,
    OutputObjects,
    Transaction,
    TransactionEffect,
    TransactionEvent,
)
from .schema import create_tables, table_for

logger = logging.getLogger(__name__)


class IndexField(enum.Enum):
    """Parts of a transaction that can be indexed."""

    TRANSACTION = "transaction"
    EFFECTS = "effects"
    EVENTS = "events"
    INPUT_OBJECTS = "input_objects"
    OUTPUT_OBJECTS = "output_objects"


IndexCallback = Callable[[CheckpointData], list[MyIndexData]]


@dataclass
class TransactionWithEffects:
    """A matching transaction with all the records derived from it."""

    transaction: Transaction
    effects: TransactionEffect
    events: TransactionEvent | None = None
    input_objects: InputObjects | None = None
    output_objects: OutputObjects | None = None


def _command_json(command: Any) -> dict[str, Any]:
    call = command.move_call
    if call is None:
        return {"type": command.kind}
    return {
        "type": "MoveCall",
        "package": call.package,
        "module": call.module,
        "function": call.function,
    }


def _insert_ignore(connection: Connection, table: Table, row: Mapping[str, Any]) -> int:
    """Insert one row unless its primary key exists; return the rows inserted."""
    dialect = connection.dialect.name
    if dialect == "postgresql":
        statement = pg_insert(table).values(**row).on_conflict_do_nothing()
    elif dialect == "sqlite":
        statement = sqlite_insert(table).values(**row).on_conflict_do_nothing()
    else:
        key = and_(*(column == row[column.name] for column in table.primary_key.columns))
        if connection.execute(select(table).where(key)).first() is not None:
            return 0
        statement = insert(table).values(**row)
    result = connection.execute(statement)
    return max(result.rowcount, 0)


@dataclass
class IndexerPipeline:
    """Selects the transactions of a checkpoint that call the watched package."""

    NAME = "indexer_pipeline"

    package_filter: str
    field_filters: list[IndexField] = field(default_factory=list)
    callbacks: dict[IndexField, IndexCallback] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.package_filter = normalize_address(self.package_filter)

    def check_package(self, package_id: str) -> bool:
        """Tell whether the package id is the watched package."""
        return normalize_address(package_id) == self.package_filter

    def _process_transaction(
        self, tx: ExecutedTransaction, sequence_number: int
    ) -> TransactionWithEffects | None:
        data = tx.transaction
        tx_digest = data.digest
        move_calls = data.move_calls()

        if not move_calls:
            logger.info("  Transaction has no move calls, skipping")
            return None
        logger.info("  Transaction has %d move calls", len(move_calls))

        matched_calls = []
        for number, call in enumerate(move_calls, start=1):
            logger.info(
                "  Move call %d: %s::%s::%s", number, call.package, call.module, call.function
            )
            if self.check_package(call.package):
                logger.info(
                    "  MATCH FOUND! Transaction %s uses target package in module %s, function %s",
                    tx_digest,
                    call.module,
                    call.function,
                )
                matched_calls.append(
                    {"package_id": call.package, "module": call.module, "function": call.function}
                )

        if not matched_calls:
            logger.info("  No matching package found in this transaction, skipping")
            return None

        if data.kind == PROGRAMMABLE_TRANSACTION and data.programmable is not None:
            kind_json: dict[str, Any] = {
                "type": PROGRAMMABLE_TRANSACTION,
                "matched_calls": matched_calls,
                "total_move_calls": len(move_calls),
                "inputs": list(data.programmable.inputs),
                "commands": [_command_json(c) for c in data.programmable.commands],
            }
        else:
            kind_json = {
                "type": data.kind,
                "matched_calls": matched_calls,
                "total_move_calls": len(move_calls),
            }

        transaction = Transaction(
            tx_digest=tx_digest,
            checkpoint_sequence_number=sequence_number,
            sender=data.sender,
            tx_kind=kind_json,
            gas_budget=data.gas_budget,
            gas_price=data.gas_price,
            serialized_tx=data.raw,
        )
        events = (
            None
            if tx.events is None
            else TransactionEvent(tx_digest=tx_digest, events_json=tx.events)
        )
        return TransactionWithEffects(
            transaction=transaction,
            effects=TransactionEffect(tx_digest=tx_digest, effects_json=tx.effects),
            events=events,
            input_objects=InputObjects(tx_digest=tx_digest, objects_json=tx.input_objects),
            output_objects=OutputObjects(tx_digest=tx_digest, objects_json=tx.output_objects),
        )

    def process(self, checkpoint: CheckpointData) -> list[TransactionWithEffects]:
        """Return the records of every transaction that calls the watched package."""
        sequence_number = checkpoint.sequence_number
        total = len(checkpoint.transactions)
        logger.info("Processing checkpoint: %d", sequence_number)
        logger.info("Target package: %s", self.package_filter)
        logger.info("Number of transactions in checkpoint: %d", total)

        results = []
        for number, tx in enumerate(checkpoint.transactions, start=1):
            logger.info(
                "Examining transaction %d of %d: digest=%s, sender=%s",
                number,
                total,
                tx.transaction.digest,
                tx.transaction.sender,
            )
            record = self._process_transaction(tx, sequence_number)
            if record is not None:
                results.append(record)

        logger.info(
            "Finished processing checkpoint %d, found %d matching transactions",
            sequence_number,
            len(results),
        )
        return results

    def commit(self, values: Sequence[TransactionWithEffects], connection: Connection) -> int:
        """Store the records, skipping existing ones; return the transactions inserted."""
        if not values:
            return 0

        logger.info("Inserting %d transaction records", len(values))
        transactions = table_for("transactions")
        try:
            inserted = sum(
                _insert_ignore(connection, transactions, v.transaction.as_row()) for v in values
            )
        except SQLAlchemyError as error:
            raise RuntimeError(f"Failed to insert transaction records: {error}") from error
        logger.info("Successfully inserted %d transaction records", inserted)

        for value in values:
            related = [
                ("effects", value.effects),
                ("events", value.events),
                ("input objects", value.input_objects),
                ("output objects", value.output_objects),
            ]
            for label, record in related:
                if record is None:
                    continue
                try:
                    _insert_ignore(connection, table_for(record.table_name), record.as_row())
                except SQLAlchemyError as error:
                    raise RuntimeError(f"Failed to insert {label} record: {error}") from error

        return inserted


class SuiIndexer:
    """Configures and runs an indexer for one package."""

    def __init__(self) -> None:
        self.package_filter: str | None = None
        self.field_filters: list[IndexField] = []
        self.field_callbacks: dict[IndexField, IndexCallback] = {}

    def set_filter_package(self, package: str) -> None:
        """Watch transactions that call the given package."""
        self.package_filter = normalize_address(package)

    def set_filter_fields(self, fields: Iterable[IndexField]) -> None:
        """Set which parts of a transaction are indexed."""
        self.field_filters = list(fields)

    def set_filter_callback_for_field(self, field: IndexField, callback: IndexCallback) -> None:
        """Register a callback for one indexed field, replacing any earlier one."""
        self.field_callbacks[field] = callback

    def build_pipeline(self) -> IndexerPipeline:
        """Return the pipeline for the current settings."""
        if self.package_filter is None:
            raise ValueError("Package filter not set")
        return IndexerPipeline(
            package_filter=self.package_filter,
            field_filters=list(self.field_filters),
            callbacks=dict(self.field_callbacks),
        )

    def start(
        self,
        database_url: str,
        checkpoints: Iterable[CheckpointData | Mapping[str, Any]],
    ) -> int:
        """Index the checkpoints into the database; return the transactions inserted."""
        pipeline = self.build_pipeline()
        engine = create_engine(database_url)
        try:
            create_tables(engine)
            total = 0
            for checkpoint in checkpoints:
                if not isinstance(checkpoint, CheckpointData):
                    checkpoint = CheckpointData.from_dict(checkpoint)
                values = pipeline.process(checkpoint)
                with engine.begin() as connection:
                    total += pipeline.commit(values, connection)
            return total
        finally:
            engine.dispose()