import pytest
from sqlalchemy import create_engine, func, select

from suiwatch.checkpoint import CheckpointData, normalize_address
from suiwatch.pipeline import (
    IndexerPipeline,
    IndexField,
    SuiIndexer,
    TransactionWithEffects,
)
from suiwatch.schema import create_tables, table_for

PACKAGE = "0x2"
OTHER = "0x3"
SENDER = "0xa11ce"


def _tx(digest, commands, events=None, kind="ProgrammableTransaction"):
    return {
        "transaction": {
            "digest": digest,
            "sender": SENDER,
            "gas_budget": 5000,
            "gas_price": 750,
            "kind": {"type": kind, "inputs": [{"pure": [1]}], "commands": commands},
        },
        "effects": {"status": "success", "digest": digest},
        "events": events,
        "input_objects": [{"id": "0x10"}],
        "output_objects": [{"id": "0x11"}],
    }


def _call(package, module="coin", function="join"):
    return {"type": "MoveCall", "package": package, "module": module, "function": function}


def _checkpoint(sequence_number=7):
    return CheckpointData.from_dict(
        {
            "sequence_number": sequence_number,
            "transactions": [
                _tx("match", [_call(PACKAGE), {"type": "SplitCoins"}, _call(OTHER, "m", "f")],
                    events=[{"kind": "Minted"}]),
                _tx("other", [_call(OTHER)]),
                _tx("none", [{"type": "TransferObjects"}]),
            ],
        }
    )


@pytest.fixture
def engine():
    eng = create_engine("sqlite://")
    create_tables(eng)
    yield eng
    eng.dispose()


def _count(connection, name):
    return connection.execute(select(func.count()).select_from(table_for(name))).scalar_one()


def test_index_field_members_carried_into_pipeline():
    indexer = SuiIndexer()
    indexer.set_filter_package(PACKAGE)
    indexer.set_filter_fields(list(IndexField))
    pipeline = indexer.build_pipeline()
    assert [f.name for f in pipeline.field_filters] == [
        "TRANSACTION", "EFFECTS", "EVENTS", "INPUT_OBJECTS", "OUTPUT_OBJECTS",
    ]


def test_pipeline_name():
    assert IndexerPipeline(PACKAGE).NAME == "indexer_pipeline"


@pytest.mark.parametrize("candidate", ["0x2", "0x0002", "2", normalize_address("0x2").upper()[2:]])
def test_check_package_matches_equivalent_forms(candidate):
    assert IndexerPipeline(PACKAGE).check_package(candidate) is True


def test_check_package_rejects_other_package():
    assert IndexerPipeline(PACKAGE).check_package(OTHER) is False


def test_process_keeps_only_matching_transactions():
    results = IndexerPipeline(PACKAGE).process(_checkpoint())
    assert [r.transaction.tx_digest for r in results] == ["match"]


def test_process_transaction_record():
    record = IndexerPipeline(PACKAGE).process(_checkpoint(sequence_number=42))[0].transaction
    assert record.checkpoint_sequence_number == 42
    assert record.sender == normalize_address(SENDER)
    assert record.gas_budget == 5000
    assert record.gas_price == 750
    assert record.created_at is None
    assert record.serialized_tx["digest"] == "match"


def test_process_kind_json_for_programmable_transaction():
    kind = IndexerPipeline(PACKAGE).process(_checkpoint())[0].transaction.tx_kind
    assert kind["type"] == "ProgrammableTransaction"
    assert kind["total_move_calls"] == 2
    assert kind["matched_calls"] == [
        {"package_id": normalize_address(PACKAGE), "module": "coin", "function": "join"}
    ]
    assert kind["inputs"] == [{"pure": [1]}]
    assert [c["type"] for c in kind["commands"]] == ["MoveCall", "SplitCoins", "MoveCall"]
    assert kind["commands"][2]["package"] == normalize_address(OTHER)


def test_process_related_records():
    result = IndexerPipeline(PACKAGE).process(_checkpoint())[0]
    assert result.effects.effects_json == {"status": "success", "digest": "match"}
    assert result.events.events_json == [{"kind": "Minted"}]
    assert result.input_objects.objects_json == [{"id": "0x10"}]
    assert result.output_objects.objects_json == [{"id": "0x11"}]
    assert {r.tx_digest for r in (result.effects, result.events,
                                  result.input_objects, result.output_objects)} == {"match"}


def test_process_without_events_has_no_event_record():
    checkpoint = CheckpointData.from_dict(
        {"sequence_number": 1, "transactions": [_tx("quiet", [_call(PACKAGE)])]}
    )
    assert IndexerPipeline(PACKAGE).process(checkpoint)[0].events is None


def test_process_empty_checkpoint():
    checkpoint = CheckpointData.from_dict({"sequence_number": 3})
    assert IndexerPipeline(PACKAGE).process(checkpoint) == []


def test_commit_empty_returns_zero(engine):
    with engine.begin() as connection:
        assert IndexerPipeline(PACKAGE).commit([], connection) == 0
        assert _count(connection, "transactions") == 0


def test_commit_stores_all_records(engine):
    pipeline = IndexerPipeline(PACKAGE)
    values = pipeline.process(_checkpoint())
    with engine.begin() as connection:
        assert pipeline.commit(values, connection) == len(values)
        for name in ("transactions", "transaction_effects", "transaction_events",
                     "input_objects", "output_objects"):
            assert _count(connection, name) == len(values)
        row = connection.execute(select(table_for("transactions"))).mappings().one()
    assert row["tx_digest"] == "match"
    assert row["tx_kind"]["type"] == "ProgrammableTransaction"


def test_commit_ignores_duplicates(engine):
    pipeline = IndexerPipeline(PACKAGE)
    values = pipeline.process(_checkpoint())
    with engine.begin() as connection:
        first = pipeline.commit(values, connection)
        second = pipeline.commit(values, connection)
        assert (first, second) == (len(values), 0)
        assert _count(connection, "transaction_effects") == len(values)


def test_transaction_with_effects_defaults():
    result = IndexerPipeline(PACKAGE).process(_checkpoint())[0]
    bare = TransactionWithEffects(result.transaction, result.effects)
    assert (bare.events, bare.input_objects, bare.output_objects) == (None, None, None)


def test_build_pipeline_requires_package():
    with pytest.raises(ValueError, match="Package filter not set"):
        SuiIndexer().build_pipeline()


def test_build_pipeline_carries_settings():
    indexer = SuiIndexer()
    indexer.set_filter_package(PACKAGE)
    indexer.set_filter_fields([IndexField.EVENTS, IndexField.EFFECTS])
    callback = lambda checkpoint: []  # noqa: E731
    indexer.set_filter_callback_for_field(IndexField.EVENTS, callback)
    pipeline = indexer.build_pipeline()
    assert pipeline.package_filter == normalize_address(PACKAGE)
    assert pipeline.field_filters == [IndexField.EVENTS, IndexField.EFFECTS]
    assert pipeline.callbacks == {IndexField.EVENTS: callback}


def test_set_filter_package_rejects_invalid_address():
    with pytest.raises(ValueError):
        SuiIndexer().set_filter_package("not-hex")


def test_start_requires_package(tmp_path):
    with pytest.raises(ValueError, match="Package filter not set"):
        SuiIndexer().start(f"sqlite:///{tmp_path / 'db.sqlite'}", [])


def test_start_indexes_checkpoints(tmp_path):
    url = f"sqlite:///{tmp_path / 'db.sqlite'}"
    indexer = SuiIndexer()
    indexer.set_filter_package(PACKAGE)
    raw = {"sequence_number": 9, "transactions": [_tx("second", [_call(PACKAGE)])]}
    total = indexer.start(url, [_checkpoint(), raw])
    assert total == 2

    engine = create_engine(url)
    try:
        with engine.connect() as connection:
            rows = connection.execute(
                select(table_for("transactions").c.tx_digest,
                       table_for("transactions").c.checkpoint_sequence_number)
                .order_by(table_for("transactions").c.tx_digest)
            ).all()
    finally:
        engine.dispose()
    assert [tuple(r) for r in rows] == [("match", 7), ("second", 9)]