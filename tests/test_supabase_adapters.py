"""Tests for the Supabase ingredient store."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from kitchen_inventory.adapters.supabase_ingredient_store import (
    SupabaseIngredientStore,
)
from kitchen_inventory.domain.errors import StoreError
from kitchen_inventory.domain.purchases import BuyIngredientInput
from kitchen_inventory.services.purchases import PurchaseService
from tests.conftest import PURCHASE_TIME, FixedClock, make_ingredient


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None
    count: int | None = None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {
            "select": [],
            "insert": [],
            "update": [],
            "upsert": [],
            "delete": [],
        }
    )
    executed: list[tuple[str, object, list[tuple[str, object]]]] = field(
        default_factory=list
    )
    count_value: int | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def _start(self, action: str, payload: object = None) -> "FakeTable":
        self._action = action
        self._payload = payload
        self._filters: list[tuple[str, object]] = []
        return self

    def select(self, *_args, **_kwargs) -> "FakeTable":  # type: ignore[no-untyped-def]
        return self._start("select")

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        return self._start("insert", payload)

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        return self._start("update", payload)

    def upsert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        return self._start("upsert", payload)

    def delete(self) -> "FakeTable":
        return self._start("delete")

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._filters.append((column, value))
        return self

    def in_(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, _column: str, desc: bool = False) -> "FakeTable":
        return self

    async def execute(self) -> FakeResponse:
        self.executed.append((self._action, self._payload, list(self._filters)))
        queue = self.response_queue.get(self._action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data, count=self.count_value)

    def actions(self) -> list[str]:
        return [action for action, _payload, _filters in self.executed]


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def _row(ingredient_id: str = "ing-1", **overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": ingredient_id,
        "name": "Milk",
        "unit": "L",
        "stock_qty": 2,
        "shelf_life_days": 7,
        "purchased_at": None,
    }
    row.update(overrides)
    return row


def _store(client: FakeSupabaseClient) -> SupabaseIngredientStore:
    return SupabaseIngredientStore(
        url="https://example.supabase.co", key="service-key", client=client
    )


def test_get_parses_rows() -> None:
    client = FakeSupabaseClient()
    table = client.table("ingredients")
    table.queue("select", [_row(purchased_at=PURCHASE_TIME.isoformat())])

    fetched = asyncio.run(_store(client).get("ing-1"))

    assert fetched is not None
    assert fetched.stock_qty == 2.0
    assert fetched.purchased_at == PURCHASE_TIME
    assert table.executed[0][2] == [("id", "ing-1")]


def test_get_keeps_unparseable_timestamp_raw() -> None:
    client = FakeSupabaseClient()
    client.table("ingredients").queue("select", [_row(purchased_at="yesterday")])

    fetched = asyncio.run(_store(client).get("ing-1"))

    assert fetched is not None
    assert fetched.purchased_at == "yesterday"


def test_get_missing_returns_none() -> None:
    client = FakeSupabaseClient()

    assert asyncio.run(_store(client).get("missing")) is None


def test_add_and_update_serialize_timestamps() -> None:
    client = FakeSupabaseClient()
    table = client.table("ingredients")
    table.queue("insert", [_row()])
    table.queue("update", [_row()])
    store = _store(client)

    asyncio.run(store.add(make_ingredient()))
    asyncio.run(store.update("ing-1", {"purchased_at": PURCHASE_TIME}))

    assert table.executed[0][1] == _row()
    assert table.executed[1][1] == {"purchased_at": PURCHASE_TIME.isoformat()}


def test_add_without_returned_row_raises() -> None:
    client = FakeSupabaseClient()

    with pytest.raises(StoreError):
        asyncio.run(_store(client).add(make_ingredient()))


def test_count_uses_exact_count() -> None:
    client = FakeSupabaseClient()
    client.table("ingredients").count_value = 12

    assert asyncio.run(_store(client).count()) == 12


def test_transaction_buffers_writes_until_commit() -> None:
    client = FakeSupabaseClient()
    table = client.table("ingredients")
    table.queue("select", [_row()])
    store = _store(client)

    async def body() -> float:
        await store.update("ing-1", {"stock_qty": 7.0, "purchased_at": PURCHASE_TIME})
        updated = await store.get("ing-1")
        assert updated is not None
        assert table.actions() == ["select"]
        return updated.stock_qty

    assert asyncio.run(store.transaction(body)) == 7.0
    assert table.actions() == ["select", "upsert"]
    upserted = table.executed[-1][1]
    assert upserted == [
        _row(stock_qty=7.0, purchased_at=PURCHASE_TIME.isoformat())
    ]


def test_transaction_discards_writes_when_body_raises() -> None:
    client = FakeSupabaseClient()
    table = client.table("ingredients")
    table.queue("select", [_row()])
    store = _store(client)

    async def body() -> None:
        await store.update("ing-1", {"stock_qty": 7.0})
        await store.delete("ing-2")
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        asyncio.run(store.transaction(body))

    assert table.actions() == ["select"]


def test_transaction_reads_see_pending_deletes_and_inserts() -> None:
    client = FakeSupabaseClient()
    table = client.table("ingredients")
    table.queue("select", [_row("a"), _row("b")])
    store = _store(client)

    async def body() -> list[str]:
        await store.delete("a")
        added_at = datetime(2026, 1, 1, tzinfo=UTC)
        await store.add(make_ingredient("c", purchased_at=added_at))
        return [item.id for item in await store.get_all()]

    assert asyncio.run(store.transaction(body)) == ["b", "c"]
    assert table.actions() == ["select", "upsert", "delete"]
    assert table.executed[-1][2] == [("id", ["a"])]


def test_update_missing_row_inside_transaction_raises() -> None:
    client = FakeSupabaseClient()
    store = _store(client)

    async def body() -> None:
        await store.update("missing", {"stock_qty": 1})

    with pytest.raises(StoreError):
        asyncio.run(store.transaction(body))


def test_closed_store_raises_store_error() -> None:
    store = SupabaseIngredientStore(url="https://example.supabase.co", key="key")

    with pytest.raises(StoreError):
        asyncio.run(store.get("ing-1"))


@dataclass
class RowTable:
    """Fake table that keeps rows and yields to the loop on every request."""

    rows: dict[str, dict[str, object]] = field(default_factory=dict)

    def _start(
        self, action: str, payload: list[dict[str, object]] | None = None
    ) -> "RowTable":
        self._action = action
        self._payload = payload or []
        self._ids: list[str] | None = None
        return self

    def select(self, *_args, **_kwargs) -> "RowTable":  # type: ignore[no-untyped-def]
        return self._start("select")

    def upsert(self, payload: list[dict[str, object]]) -> "RowTable":
        return self._start("upsert", payload)

    def delete(self) -> "RowTable":
        return self._start("delete")

    def eq(self, _column: str, value: str) -> "RowTable":
        self._ids = [value]
        return self

    def in_(self, _column: str, values: list[str]) -> "RowTable":
        self._ids = list(values)
        return self

    def limit(self, _count: int) -> "RowTable":
        return self

    def order(self, _column: str, desc: bool = False) -> "RowTable":
        return self

    async def execute(self) -> FakeResponse:
        action, payload, ids = self._action, self._payload, self._ids
        await asyncio.sleep(0)
        if action == "upsert":
            for row in payload:
                self.rows[str(row["id"])] = dict(row)
            return FakeResponse(data=list(payload))
        if action == "delete":
            for ingredient_id in ids or []:
                self.rows.pop(ingredient_id, None)
            return FakeResponse(data=[])
        if ids is None:
            ids = list(self.rows)
        return FakeResponse(
            data=[dict(self.rows[item]) for item in ids if item in self.rows]
        )


@dataclass
class RowClient:
    table_: RowTable

    def table(self, _name: str) -> RowTable:
        return self.table_


def test_concurrent_buys_are_serialized() -> None:
    table = RowTable(rows={"ing-1": _row(stock_qty=2)})
    store = SupabaseIngredientStore(
        url="https://example.supabase.co", key="service-key", client=RowClient(table)
    )
    service = PurchaseService(store, clock=FixedClock())

    async def buy_five_times() -> list[bool]:
        results = await asyncio.gather(
            *(
                service.buy_ingredient(
                    BuyIngredientInput(ingredient_id="ing-1", purchased_qty=1)
                )
                for _ in range(5)
            )
        )
        return [result.success for result in results]

    successes = asyncio.run(buy_five_times())

    assert successes == [True] * 5
    assert table.rows["ing-1"]["stock_qty"] == 7


def test_plain_delete_waits_for_running_transaction() -> None:
    table = RowTable(rows={"ing-1": _row(stock_qty=2)})
    store = SupabaseIngredientStore(
        url="https://example.supabase.co", key="service-key", client=RowClient(table)
    )

    async def restock() -> None:
        current = await store.get("ing-1")
        assert current is not None
        await asyncio.sleep(0)
        await store.update("ing-1", {"stock_qty": current.stock_qty + 1})

    async def scenario() -> None:
        await asyncio.gather(store.transaction(restock), store.delete("ing-1"))

    asyncio.run(scenario())

    assert "ing-1" not in table.rows
