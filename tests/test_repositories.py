from datetime import timedelta

import pytest

from conftest import BASE_TIME, make_settings, todo_fields
from todo_api.db import SQLiteRepository
from todo_api.query import ListQuery, TodoFilter
from todo_api.repositories import InMemoryRepository, create_repository


def at(minutes):
    return BASE_TIME + timedelta(minutes=minutes)


class TestUsers:
    def test_add_and_list_sorted(self, store):
        store.add_user("zed", "Zed")
        store.add_user("amy", "Amy")
        assert [u["username"] for u in store.list_users()] == ["amy", "zed"]

    def test_find_by_ids_skips_unknown(self, store):
        a = store.add_user("amy", "Amy")
        b = store.add_user("ben", "Ben")
        found = store.find_users_by_ids([a["id"], "ghost", b["id"], a["id"]])
        assert {u["id"] for u in found} == {a["id"], b["id"]}
        assert store.find_users_by_ids([]) == []

    def test_explicit_id_and_lookup_by_username(self, store):
        store.add_user("amy", "Amy", user_id="u-amy")
        assert store.get_user_by_username("amy") == {"id": "u-amy", "username": "amy", "name": "Amy"}
        assert store.get_user_by_username("nobody") is None


class TestTodoDocuments:
    def test_insert_and_get_roundtrip(self, store):
        created = store.insert_todo(
            todo_fields("u1", "Plan trip", description="Book flights", priority="high", tags=["travel"],
                        assigned_users=["u2", "u3"])
        )
        assert len(created["id"]) == 32
        fetched = store.get_todo(created["id"])
        assert fetched == created
        assert fetched["created_at"] == BASE_TIME
        assert fetched["assigned_users"] == ["u2", "u3"]
        assert fetched["notes"] == []
        assert store.get_todo("missing") is None

    def test_update_sets_only_given_fields(self, store):
        created = store.insert_todo(todo_fields("u1", "Old", description="keep", tags=["a"]))
        updated = store.update_todo(created["id"], {"title": "New", "completed": True, "updated_at": at(5)})
        assert updated["title"] == "New"
        assert updated["completed"] is True
        assert updated["description"] == "keep"
        assert updated["tags"] == ["a"]
        assert updated["updated_at"] == at(5)
        assert updated["created_at"] == BASE_TIME

    def test_update_missing(self, store):
        assert store.update_todo("missing", {"title": "x", "updated_at": at(1)}) is None

    @pytest.mark.parametrize("field", ["user_id", "notes", "id", "created_at"])
    def test_update_rejects_protected_fields(self, store, field):
        created = store.insert_todo(todo_fields("u1", "t"))
        with pytest.raises(ValueError):
            store.update_todo(created["id"], {field: "x"})

    def test_delete(self, store):
        created = store.insert_todo(todo_fields("u1", "t"))
        assert store.delete_todo(created["id"]) is True
        assert store.get_todo(created["id"]) is None
        assert store.delete_todo(created["id"]) is False

    def test_push_note_appends(self, store):
        created = store.insert_todo(todo_fields("u1", "t"))
        store.push_note(created["id"], {"id": "n1", "content": "first", "user_id": None, "created_at": at(1)})
        updated = store.push_note(created["id"], {"id": "n2", "content": "second", "user_id": "u2", "created_at": at(2)})
        assert [n["content"] for n in updated["notes"]] == ["first", "second"]
        assert updated["notes"][1] == {"id": "n2", "content": "second", "user_id": "u2", "created_at": at(2)}
        assert store.push_note("missing", {"id": "n3", "content": "x", "user_id": None, "created_at": at(3)}) is None

    def test_returned_documents_are_copies(self, store):
        created = store.insert_todo(todo_fields("u1", "t", tags=["a"]))
        created["tags"].append("mutated")
        assert store.get_todo(created["id"])["tags"] == ["a"]


class TestFindTodos:
    @pytest.fixture
    def seeded(self, store):
        specs = [
            ("u1", "Alpha report", "high", ["a", "b"], "Quarterly numbers"),
            ("u1", "Beta", "low", ["b"], None),
            ("u1", "Gamma", "medium", [], "write the REPORT summary"),
            ("u1", "Delta", "high", ["c"], None),
            ("u2", "Alpha for u2", "high", ["a"], None),
        ]
        ids = []
        for minute, (owner, title, priority, tags, desc) in enumerate(specs):
            ids.append(
                store.insert_todo(
                    todo_fields(owner, title, created_at=at(minute), priority=priority, tags=tags, description=desc)
                )["id"]
            )
        return store, ids

    def titles(self, items):
        return [t["title"] for t in items]

    def test_owner_filter_newest_first(self, seeded):
        store, _ = seeded
        items, total = store.find_todos(ListQuery(TodoFilter("u1")))
        assert total == 4
        assert self.titles(items) == ["Delta", "Gamma", "Beta", "Alpha report"]

    def test_priority_membership(self, seeded):
        store, _ = seeded
        items, total = store.find_todos(ListQuery(TodoFilter("u1", priorities=("high",))))
        assert total == 2
        assert self.titles(items) == ["Delta", "Alpha report"]

    def test_tag_intersection(self, seeded):
        store, _ = seeded
        items, total = store.find_todos(ListQuery(TodoFilter("u1", tags=("b", "c"))))
        assert total == 3
        assert self.titles(items) == ["Delta", "Beta", "Alpha report"]

    def test_search_title_or_description(self, seeded):
        store, _ = seeded
        items, total = store.find_todos(ListQuery(TodoFilter("u1", search="report")))
        assert total == 2
        assert self.titles(items) == ["Gamma", "Alpha report"]

    def test_search_treats_wildcards_literally(self, seeded):
        store, _ = seeded
        for needle in ("%", "_", ".*"):
            items, total = store.find_todos(ListQuery(TodoFilter("u1", search=needle)))
            assert (items, total) == ([], 0)

    def test_combined_filters(self, seeded):
        store, _ = seeded
        f = TodoFilter("u1", priorities=("high", "low"), tags=("b",), search="alpha")
        items, total = store.find_todos(ListQuery(f))
        assert total == 1
        assert self.titles(items) == ["Alpha report"]

    def test_total_is_independent_of_page(self, seeded):
        store, _ = seeded
        f = TodoFilter("u1")
        page1, total1 = store.find_todos(ListQuery(f, page=1, limit=3))
        page2, total2 = store.find_todos(ListQuery(f, page=2, limit=3))
        page3, total3 = store.find_todos(ListQuery(f, page=3, limit=3))
        assert total1 == total2 == total3 == 4
        assert self.titles(page1) == ["Delta", "Gamma", "Beta"]
        assert self.titles(page2) == ["Alpha report"]
        assert page3 == []

    def test_page_far_past_the_end_is_empty(self, seeded):
        store, _ = seeded
        items, total = store.find_todos(ListQuery(TodoFilter("u1"), page=10**19, limit=3))
        assert (items, total) == ([], 4)

    def test_ties_on_created_at_put_later_insertions_first(self, store):
        first = store.insert_todo(todo_fields("u9", "first"))
        second = store.insert_todo(todo_fields("u9", "second"))
        items, _ = store.find_todos(ListQuery(TodoFilter("u9")))
        assert [t["id"] for t in items] == [second["id"], first["id"]]

    def test_find_all(self, seeded):
        store, _ = seeded
        assert self.titles(store.find_all_todos(TodoFilter("u2"))) == ["Alpha for u2"]
        assert len(store.find_all_todos(TodoFilter("u1"))) == 4

    def test_distinct_tags(self, seeded):
        store, _ = seeded
        assert store.distinct_tags("u1") == ["a", "b", "c"]
        assert store.distinct_tags("u2") == ["a"]
        assert store.distinct_tags("nobody") == []


class TestCreateRepository:
    def test_memory_backend(self):
        assert isinstance(create_repository(make_settings()), InMemoryRepository)

    def test_sqlite_backend(self, tmp_path):
        path = tmp_path / "nested" / "todos.db"
        repo = create_repository(make_settings(persistence_backend="sqlite", sqlite_db_path=str(path)))
        assert isinstance(repo, SQLiteRepository)
        assert path.exists()

    def test_sqlite_data_survives_reopen(self, tmp_path):
        path = str(tmp_path / "todos.db")
        first = SQLiteRepository(path)
        user = first.add_user("amy", "Amy")
        todo = first.insert_todo(todo_fields(user["id"], "Persisted", tags=["x"]))
        second = SQLiteRepository(path)
        assert second.get_todo(todo["id"])["tags"] == ["x"]
        assert second.list_users() == [user]
