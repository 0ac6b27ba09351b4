from relflow.core.structured import (
    as_obj_list,
    as_str_dict,
    get_bool,
    get_int,
    get_str,
    get_str_list,
    get_table,
)


def test_as_str_dict_rejects_non_string_keys() -> None:
    assert as_str_dict({"a": 1}) == {"a": 1}
    assert as_str_dict({1: "a"}) is None
    assert as_str_dict([1]) is None


def test_as_obj_list() -> None:
    assert as_obj_list([1, "a"]) == [1, "a"]
    assert as_obj_list("a") is None


def test_get_str_strips_and_drops_empty() -> None:
    table: dict[str, object] = {"a": "  x ", "b": "   ", "c": 3}
    assert get_str(table, "a") == "x"
    assert get_str(table, "b") is None
    assert get_str(table, "c") is None
    assert get_str(table, "missing") is None


def test_get_int_rejects_bool() -> None:
    table: dict[str, object] = {"n": 2, "flag": True}
    assert get_int(table, "n") == 2
    assert get_int(table, "flag") is None


def test_get_bool() -> None:
    assert get_bool({"x": False}, "x") is False
    assert get_bool({"x": "yes"}, "x") is None


def test_get_table() -> None:
    assert get_table({"t": {"k": 1}}, "t") == {"k": 1}
    assert get_table({"t": [1]}, "t") is None


def test_get_str_list_accepts_single_string() -> None:
    assert get_str_list({"v": "alice"}, "v") == ["alice"]
    assert get_str_list({"v": ["alice", " ", 3, "bob "]}, "v") == ["alice", "bob"]
    assert get_str_list({"v": 3}, "v") is None
    assert get_str_list({}, "v") is None
