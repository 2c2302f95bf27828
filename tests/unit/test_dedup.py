from __future__ import annotations

from tableshard.engine.dedup import DEFAULT_DEDUPLICATE_FIELDS, deduplicate_results, generate_result_key


class TestGenerateResultKey:
    def test_first_complete_group_wins(self):
        row = {"user_id": 1, "order_id": 7, "amount": 10}
        assert generate_result_key(row, [["id"], ["user_id", "order_id"], ["user_id"]]) == (("user_id", "1"), ("order_id", "7"))

    def test_group_with_null_field_is_skipped(self):
        row = {"user_id": 1, "order_id": None}
        assert generate_result_key(row, [["user_id", "order_id"], ["user_id"]]) == (("user_id", "1"),)

    def test_empty_string_counts_as_missing(self):
        row = {"id": "", "user_id": 3}
        assert generate_result_key(row, [["id"], ["user_id"]]) == (("user_id", "3"),)

    def test_fallback_uses_all_non_null_fields_sorted(self):
        row = {"b": 2, "a": 1, "c": None}
        assert generate_result_key(row, [["id"]]) == (("a", "1"), ("b", "2"))

    def test_fallback_is_independent_of_column_order(self):
        assert generate_result_key({"x": 1, "y": 2}, []) == generate_result_key({"y": 2, "x": 1}, [])


class TestDeduplicateResults:
    def test_first_seen_row_is_kept(self):
        rows = [
            {"user_id": 1, "name": "first"},
            {"user_id": 2, "name": "other"},
            {"user_id": 1, "name": "second"},
        ]
        unique = deduplicate_results(rows, [["user_id"]])
        assert unique == [{"user_id": 1, "name": "first"}, {"user_id": 2, "name": "other"}]

    def test_default_groups_are_used_when_none_given(self):
        rows = [{"id": 1, "v": "a"}, {"id": 1, "v": "b"}]
        assert deduplicate_results(rows) == [{"id": 1, "v": "a"}]
        assert DEFAULT_DEDUPLICATE_FIELDS[0] == ["id"]

    def test_idempotent(self):
        rows = [{"user_id": i % 3, "order_id": i % 2} for i in range(12)]
        once = deduplicate_results(rows, [["user_id", "order_id"]])
        assert deduplicate_results(once, [["user_id", "order_id"]]) == once
        assert len(once) == 6

    def test_no_two_survivors_share_a_key(self):
        groups = [["user_id", "order_id"], ["user_id"]]
        rows = [{"user_id": i % 4, "order_id": None if i % 3 == 0 else i % 5} for i in range(40)]
        keys = [generate_result_key(row, groups) for row in deduplicate_results(rows, groups)]
        assert len(keys) == len(set(keys))

    def test_separators_inside_values_do_not_merge_rows(self):
        rows = [{"a": "x|b:y", "b": "z"}, {"a": "x", "b": "y|b:z"}]
        assert deduplicate_results(rows, [["a", "b"]]) == rows

    def test_empty_input(self):
        assert deduplicate_results([]) == []
