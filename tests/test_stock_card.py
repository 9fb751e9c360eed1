from datetime import datetime
from decimal import Decimal

import pytest

from smartstock.ledger import (
    ItemSnapshot,
    LineItemRequest,
    MemoryItemRegistry,
    MemoryTransactionStore,
    TransactionDraft,
    TransactionRevisionEngine,
    TransactionType,
    UnitConversion,
    build_history,
    replay,
)


@pytest.fixture
def engine() -> TransactionRevisionEngine:
    registry = MemoryItemRegistry(
        [
            ItemSnapshot(
                id="2",
                base_unit="pcs",
                stock=Decimal("45"),
                conversions=(UnitConversion("Box", Decimal("10")),),
                name="Mouse Wireless Pro",
                sku="ACC-002",
            ),
            ItemSnapshot(id="4", base_unit="pcs", stock=Decimal("20")),
        ]
    )
    return TransactionRevisionEngine(registry, MemoryTransactionStore())


def post(engine, tx_id, tx_type, day, *lines):
    engine.create(
        TransactionDraft(
            id=tx_id,
            type=tx_type,
            date=datetime(2024, 5, day, 12, 0),
            lines=tuple(LineItemRequest(*line) for line in lines),
        )
    )


def card_for(engine, item_id):
    return build_history(engine.registry.get(item_id), engine.store.list_for_item(item_id))


def test_history_walks_back_to_opening_balance(engine):
    post(engine, "TX-A", TransactionType.IN, 1, ("2", 2, "Box"))
    post(engine, "TX-B", TransactionType.OUT, 3, ("2", 15, "pcs"))
    post(engine, "TX-C", TransactionType.IN, 2, ("2", 5, "pcs"), ("4", 1, "pcs"))

    card = card_for(engine, "2")
    assert [entry.transaction.id for entry in card.entries] == ["TX-B", "TX-C", "TX-A"]
    assert [entry.balance_after for entry in card.entries] == [Decimal("55"), Decimal("70"), Decimal("65")]
    assert card.opening_balance == Decimal("45")
    assert card.current_balance == Decimal("55")


def test_replay_matches_current_stock(engine):
    post(engine, "TX-A", TransactionType.IN, 1, ("2", 1, "Box"))
    post(engine, "TX-B", TransactionType.OUT, 2, ("2", 3, "pcs"))
    post(engine, "TX-C", TransactionType.OUT, 4, ("2", 1, "Box"))

    card = card_for(engine, "2")
    assert replay(card) == card.current_balance


def test_in_out_columns(engine):
    post(engine, "TX-A", TransactionType.IN, 1, ("2", 1, "Box"))
    post(engine, "TX-B", TransactionType.OUT, 2, ("2", 4, "pcs"))

    newest, oldest = card_for(engine, "2").entries
    assert (newest.quantity_in, newest.quantity_out) == (Decimal("0"), Decimal("4"))
    assert (oldest.quantity_in, oldest.quantity_out) == (Decimal("10"), Decimal("0"))


def test_same_timestamp_keeps_input_order(engine):
    post(engine, "TX-FIRST", TransactionType.IN, 1, ("4", 1, "pcs"))
    post(engine, "TX-SECOND", TransactionType.IN, 1, ("4", 2, "pcs"))

    card = card_for(engine, "4")
    assert [entry.transaction.id for entry in card.entries] == ["TX-FIRST", "TX-SECOND"]
    assert replay(card) == Decimal("23")


def test_card_ignores_other_items(engine):
    post(engine, "TX-A", TransactionType.IN, 1, ("4", 1, "pcs"))
    card = card_for(engine, "2")
    assert card.entries == []
    assert card.opening_balance == Decimal("45")


def test_window_filters_display_only(engine):
    post(engine, "TX-A", TransactionType.IN, 1, ("2", 1, "pcs"))
    post(engine, "TX-B", TransactionType.IN, 5, ("2", 1, "pcs"))
    post(engine, "TX-C", TransactionType.IN, 9, ("2", 1, "pcs"))

    card = card_for(engine, "2")
    visible = card.window(datetime(2024, 5, 4), datetime(2024, 5, 6))
    assert [entry.transaction.id for entry in visible] == ["TX-B"]
    assert visible[0].balance_after == Decimal("47")


def test_removed_conversion_is_flagged_stale(engine):
    post(engine, "TX-A", TransactionType.IN, 1, ("2", 1, "Box"))
    item = engine.registry.get("2")
    engine.registry.add(ItemSnapshot(id=item.id, base_unit=item.base_unit, stock=item.stock))

    card = card_for(engine, "2")
    assert card.entries[0].stale_units == ("Box",)
    assert card.entries[0].delta == Decimal("10")
