import copy
from types import SimpleNamespace
from typing import Any

import pytest
from pymongo import DeleteOne, ReplaceOne
from pymongo.errors import OperationFailure

import database
from config import settings


def _matches(doc: dict[str, Any], filter_dict: dict[str, Any] | None) -> bool:
    return all(doc.get(key) == value for key, value in (filter_dict or {}).items())


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    def limit(self, count: int) -> "FakeCursor":
        self._docs = self._docs[:count]
        return self

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self) -> dict[str, Any]:
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    """Just enough of a motor collection for the storefront gateway."""

    def __init__(self, owner: "FakeDatabase", name: str) -> None:
        self.owner = owner
        self.name = name
        self.docs: dict[Any, dict[str, Any]] = {}
        self.bulk_calls: list[list[Any]] = []

    def _check(self, kind: str) -> None:
        if kind in self.owner.failing:
            raise OperationFailure(f"{kind} failed on {self.name}")

    def find(self, filter_dict: dict[str, Any] | None = None, projection: dict[str, Any] | None = None) -> FakeCursor:
        self._check("read")
        docs = [copy.deepcopy(d) for d in self.docs.values() if _matches(d, filter_dict)]
        if projection:
            docs = [{k: v for k, v in d.items() if k in projection or k == "_id"} for d in docs]
        return FakeCursor(docs)

    async def find_one(self, filter_dict: dict[str, Any] | None = None) -> dict[str, Any] | None:
        self._check("read")
        for doc in self.docs.values():
            if _matches(doc, filter_dict):
                return copy.deepcopy(doc)
        return None

    async def count_documents(self, filter_dict: dict[str, Any]) -> int:
        self._check("read")
        return sum(1 for d in self.docs.values() if _matches(d, filter_dict))

    def _replace(self, filter_dict: dict[str, Any], doc: dict[str, Any], upsert: bool) -> None:
        existing = next((k for k, d in self.docs.items() if _matches(d, filter_dict)), None)
        new_doc = copy.deepcopy(doc)
        if existing is not None:
            new_doc["_id"] = existing
        elif not upsert:
            return
        else:
            new_doc.setdefault("_id", filter_dict.get("_id"))
        self.docs[new_doc["_id"]] = new_doc

    async def replace_one(self, filter_dict: dict[str, Any], doc: dict[str, Any], upsert: bool = False):
        self._check("write")
        self._replace(filter_dict, doc, upsert)
        return SimpleNamespace(acknowledged=True)

    async def update_one(self, filter_dict: dict[str, Any], update: dict[str, Any], upsert: bool = False):
        self._check("write")
        doc = next((d for d in self.docs.values() if _matches(d, filter_dict)), None)
        if doc is None:
            if not upsert:
                return SimpleNamespace(matched_count=0)
            doc = dict(filter_dict)
            self.docs[doc["_id"]] = doc
        for key, amount in update.get("$inc", {}).items():
            doc[key] = doc.get(key, 0) + amount
        doc.update(update.get("$set", {}))
        return SimpleNamespace(matched_count=1)

    async def delete_many(self, filter_dict: dict[str, Any]):
        self._check("write")
        doomed = [k for k, d in self.docs.items() if _matches(d, filter_dict)]
        for key in doomed:
            del self.docs[key]
        return SimpleNamespace(deleted_count=len(doomed))

    async def bulk_write(self, ops: list[Any], ordered: bool = True):
        self._check("write")
        self.bulk_calls.append(list(ops))
        for op in ops:
            if isinstance(op, DeleteOne):
                doomed = [k for k, d in self.docs.items() if _matches(d, op._filter)]
                for key in doomed[:1]:
                    del self.docs[key]
            elif isinstance(op, ReplaceOne):
                self._replace(op._filter, op._doc, op._upsert)
            else:
                raise TypeError(f"unsupported op {op!r}")
        return SimpleNamespace(acknowledged=True)


class FakeDatabase:
    def __init__(self, name: str = "test_store") -> None:
        self.name = name
        self.collections: dict[str, FakeCollection] = {}
        self.failing: set[str] = set()

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]

    async def list_collection_names(self) -> list[str]:
        return list(self.collections)

    def seed(self, name: str, docs: list[dict[str, Any]]) -> None:
        collection = self[name]
        for doc in docs:
            collection.docs[doc["_id"]] = copy.deepcopy(doc)

    def ids(self, name: str) -> set[Any]:
        return set(self[name].docs)


def product_doc(product_id: str, name: str, price: float, **extra: Any) -> dict[str, Any]:
    return {
        "_id": product_id,
        "name": name,
        "description": "",
        "price": price,
        "category": extra.pop("category", "Cupcakes"),
        "image": "",
        **extra,
    }


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDatabase()
    monkeypatch.setattr(database, "_db", db)
    return db


@pytest.fixture
def fast_timers(monkeypatch):
    monkeypatch.setattr(settings, "LOGIN_DELAY_SECONDS", 0)
    monkeypatch.setattr(settings, "SAVE_INDICATOR_SECONDS", 0.05)
    monkeypatch.setattr(settings, "NOTIFICATION_DURATION_SECONDS", 0.2)
    monkeypatch.setattr(settings, "NOTIFICATION_INTERVAL_SECONDS", 0.01)
    return settings
