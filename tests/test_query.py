import pytest

from conftest import todo_fields
from todo_api.errors import ValidationFailed
from todo_api.query import ListQuery, TodoFilter, TodoPage, build_todo_filter, page_count, split_csv_param


class TestBuildTodoFilter:
    def test_owner_only(self):
        f = build_todo_filter("u1")
        assert f == TodoFilter(user_id="u1")

    @pytest.mark.parametrize("owner", [None, "", "   "])
    def test_owner_required(self, owner):
        with pytest.raises(ValidationFailed) as exc:
            build_todo_filter(owner)
        assert exc.value.code == "MISSING_USER_ID"
        assert exc.value.status_code == 400

    def test_lists_are_split_trimmed_and_deduped(self):
        f = build_todo_filter(" u1 ", priority="high, low,,high", tags="a , b,a,", search="  Milk ")
        assert f.user_id == "u1"
        assert f.priorities == ("high", "low")
        assert f.tags == ("a", "b")
        assert f.search == "Milk"

    def test_blank_filters_are_absent(self):
        f = build_todo_filter("u1", priority=" , ", tags="", search="   ")
        assert f == TodoFilter(user_id="u1")

    def test_unknown_priority_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            build_todo_filter("u1", priority="high,urgent")
        assert exc.value.code == "INVALID_PRIORITY"
        assert "urgent" in exc.value.details


class TestTodoFilterMatches:
    def test_all_conditions_are_anded(self):
        todo = todo_fields("u1", "Write report", priority="high", tags=["work", "q3"], description="Quarterly")
        assert TodoFilter("u1").matches(todo)
        assert TodoFilter("u1", priorities=("high", "low"), tags=("q3", "x"), search="REPORT").matches(todo)
        assert not TodoFilter("u2").matches(todo)
        assert not TodoFilter("u1", priorities=("low",)).matches(todo)
        assert not TodoFilter("u1", tags=("home",)).matches(todo)
        assert not TodoFilter("u1", search="invoice").matches(todo)

    def test_search_checks_description(self):
        todo = todo_fields("u1", "Errands", description="Pick up MILK")
        assert TodoFilter("u1", search="milk").matches(todo)

    def test_search_with_no_description(self):
        todo = todo_fields("u1", "Errands", description=None)
        assert not TodoFilter("u1", search="milk").matches(todo)

    def test_tag_filter_is_intersection_not_subset(self):
        todo = todo_fields("u1", "t", tags=["b"])
        assert TodoFilter("u1", tags=("a", "b")).matches(todo)


class TestPaging:
    @pytest.mark.parametrize(
        "page,limit,offset",
        [(1, 10, 0), (2, 10, 10), (3, 7, 14)],
    )
    def test_offset(self, page, limit, offset):
        assert ListQuery(TodoFilter("u1"), page=page, limit=limit).offset == offset

    @pytest.mark.parametrize(
        "total,limit,pages",
        [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (7, 3, 3)],
    )
    def test_page_count(self, total, limit, pages):
        assert page_count(total, limit) == pages

    def test_todo_page_total_pages(self):
        assert TodoPage(items=[], total=21, page=1, limit=10).total_pages == 3

    def test_split_csv_param(self):
        assert split_csv_param(None) == []
        assert split_csv_param("a, b ,,c") == ["a", "b", "c"]
