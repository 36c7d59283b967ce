"""Row records for the indexed tables."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, ClassVar


class _Row:
    table_name: ClassVar[str]

    def as_row(self) -> dict[str, Any]:
        """Return the record as a column-name to value mapping."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class MyIndexData(_Row):
    """A bare index entry keyed by an identifier."""

    table_name: ClassVar[str] = "my_index_data"

    id: str
    checkpoint_sequence_number: int

    def as_row(self) -> dict[str, Any]:
        return super().as_row()


@dataclass
class Transaction(_Row):
    """A transaction that touched the watched package."""

    table_name: ClassVar[str] = "transactions"

    tx_digest: str
    checkpoint_sequence_number: int
    sender: str
    tx_kind: Any
    gas_budget: int
    gas_price: int
    serialized_tx: Any
    created_at: datetime | None = None

    def as_row(self) -> dict[str, Any]:
        return super().as_row()


@dataclass
class CheckpointTransaction(_Row):
    """Digests linking a transaction to its related records."""

    table_name: ClassVar[str] = "checkpoint_transactions"

    tx_digest: str
    transaction_digest: str
    transaction_effects_digest: str | None = None
    transaction_events_digest: str | None = None
    input_objects_digest: str | None = None
    output_objects_digest: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_digest(cls, tx_digest: str) -> CheckpointTransaction:
        """Build a record whose transaction digest is the given digest."""
        return cls(tx_digest=tx_digest, transaction_digest=tx_digest)

    def as_row(self) -> dict[str, Any]:
        return super().as_row()


@dataclass
class TransactionEffect(_Row):
    """Effects of one transaction, as JSON."""

    table_name: ClassVar[str] = "transaction_effects"

    tx_digest: str
    effects_json: Any
    created_at: datetime | None = None

    def as_row(self) -> dict[str, Any]:
        return super().as_row()


@dataclass
class TransactionEvent(_Row):
    """Events emitted by one transaction, as JSON."""

    table_name: ClassVar[str] = "transaction_events"

    tx_digest: str
    events_json: Any
    created_at: datetime | None = None

    def as_row(self) -> dict[str, Any]:
        return super().as_row()


@dataclass
class InputObjects(_Row):
    """Objects read by one transaction, as JSON."""

    table_name: ClassVar[str] = "input_objects"

    tx_digest: str
    objects_json: Any
    created_at: datetime | None = None

    def as_row(self) -> dict[str, Any]:
        return super().as_row()


@dataclass
class OutputObjects(_Row):
    """Objects written by one transaction, as JSON."""

    table_name: ClassVar[str] = "output_objects"

    tx_digest: str
    objects_json: Any
    created_at: datetime | None = None

    def as_row(self) -> dict[str, Any]:
        return super().as_row()