"""Checkpoint content: transactions, their commands, effects and objects."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

ADDRESS_LENGTH = 32
_HEX_DIGITS = frozenset("0123456789abcdef")
_U64_LIMIT = 2**64

PROGRAMMABLE_TRANSACTION = "ProgrammableTransaction"

COMMAND_KINDS = frozenset(
    {
        "MoveCall",
        "TransferObjects",
        "SplitCoins",
        "MergeCoins",
        "Publish",
        "MakeMoveVec",
        "Upgrade",
    }
)


def normalize_address(value: str) -> str:
    """Return an address or object id in its canonical 0x-prefixed 64-digit form."""
    if not isinstance(value, str):
        raise TypeError(f"address must be a string, not {type(value).__name__}")
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    if not text or len(text) > ADDRESS_LENGTH * 2 or not set(text) <= _HEX_DIGITS:
        raise ValueError(f"invalid address: {value!r}")
    return "0x" + text.rjust(ADDRESS_LENGTH * 2, "0")


def _require(data: Any, key: str, context: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"{context}: expected an object, got {type(data).__name__}")
    if key not in data:
        raise ValueError(f"{context}: missing field {key!r}")
    return data[key]


def _u64(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if not 0 <= value < _U64_LIMIT:
        raise ValueError(f"{name} out of range: {value}")
    return value


def _string(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    return value


@dataclass(frozen=True)
class MoveCall:
    """A call of a Move function: package, module and function."""

    package: str
    module: str
    function: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "package", normalize_address(self.package))


@dataclass(frozen=True)
class Command:
    """One command of a programmable transaction."""

    kind: str
    move_call: MoveCall | None = None

    def __post_init__(self) -> None:
        if self.kind not in COMMAND_KINDS:
            raise ValueError(f"unknown command kind: {self.kind!r}")
        if (self.kind == "MoveCall") != (self.move_call is not None):
            raise ValueError("a move call is required for, and only for, MoveCall commands")

    @classmethod
    def _from_dict(cls, data: Any) -> Command:
        kind = _string(_require(data, "type", "command"), "command type")
        if kind != "MoveCall":
            return cls(kind)
        call = MoveCall(
            package=_string(_require(data, "package", "move call"), "package"),
            module=_string(_require(data, "module", "move call"), "module"),
            function=_string(_require(data, "function", "move call"), "function"),
        )
        return cls(kind, call)


@dataclass
class ProgrammableTransaction:
    """Inputs and commands of a programmable transaction."""

    inputs: list[Any] = field(default_factory=list)
    commands: list[Command] = field(default_factory=list)


@dataclass
class TransactionData:
    """A signed transaction: digest, sender, kind and gas settings."""

    digest: str
    sender: str
    kind: str
    gas_budget: int
    gas_price: int
    programmable: ProgrammableTransaction | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    def move_calls(self) -> list[MoveCall]:
        """Return the Move calls of the transaction, in command order."""
        if self.programmable is None:
            return []
        return [c.move_call for c in self.programmable.commands if c.move_call is not None]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TransactionData:
        """Build transaction data from its JSON form."""
        digest = _string(_require(data, "digest", "transaction"), "digest")
        sender = normalize_address(
            _string(_require(data, "sender", "transaction"), "sender")
        )
        gas_budget = _u64(_require(data, "gas_budget", "transaction"), "gas_budget")
        gas_price = _u64(_require(data, "gas_price", "transaction"), "gas_price")

        kind_data = _require(data, "kind", "transaction")
        if isinstance(kind_data, str):
            kind, kind_data = kind_data, {}
        else:
            kind = _string(_require(kind_data, "type", "transaction kind"), "kind type")

        programmable = None
        if kind == PROGRAMMABLE_TRANSACTION:
            inputs = kind_data.get("inputs", [])
            commands = kind_data.get("commands", [])
            if not isinstance(inputs, list) or not isinstance(commands, list):
                raise ValueError("programmable transaction inputs and commands must be lists")
            programmable = ProgrammableTransaction(
                inputs=list(inputs),
                commands=[Command._from_dict(c) for c in commands],
            )

        return cls(
            digest=digest,
            sender=sender,
            kind=kind,
            gas_budget=gas_budget,
            gas_price=gas_price,
            programmable=programmable,
            raw=dict(data),
        )


@dataclass
class ExecutedTransaction:
    """A transaction together with what its execution produced."""

    transaction: TransactionData
    effects: Any
    events: Any | None = None
    input_objects: list[Any] = field(default_factory=list)
    output_objects: list[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExecutedTransaction:
        """Build an executed transaction from its JSON form."""
        transaction = TransactionData.from_dict(
            _require(data, "transaction", "executed transaction")
        )
        effects = _require(data, "effects", "executed transaction")
        input_objects = data.get("input_objects", [])
        output_objects = data.get("output_objects", [])
        if not isinstance(input_objects, list) or not isinstance(output_objects, list):
            raise ValueError("input and output objects must be lists")
        return cls(
            transaction=transaction,
            effects=effects,
            events=data.get("events"),
            input_objects=list(input_objects),
            output_objects=list(output_objects),
        )


@dataclass
class CheckpointData:
    """The transactions of one checkpoint."""

    sequence_number: int
    transactions: list[ExecutedTransaction] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CheckpointData:
        """Build checkpoint content from its JSON form."""
        sequence_number = _u64(
            _require(data, "sequence_number", "checkpoint"), "sequence_number"
        )
        transactions = data.get("transactions", [])
        if not isinstance(transactions, list):
            raise ValueError("checkpoint transactions must be a list")
        return cls(
            sequence_number=sequence_number,
            transactions=[ExecutedTransaction.from_dict(t) for t in transactions],
        )