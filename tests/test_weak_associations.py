from __future__ import annotations

import random

from catalog_crawler.crawl.models import SchemaReference, Table, TableKey
from catalog_crawler.crawl.weak_associations import TableMatchKeys

PUBLIC = SchemaReference(None, "public")


def _tables(*names: str) -> list[Table]:
    return [Table(key=TableKey.of(PUBLIC, name)) for name in names]


def _keys_by_name(match_keys: TableMatchKeys) -> dict[str, list[str]]:
    return {key.table_name: keys for key, keys in match_keys.as_dict().items()}


def test_module_prefix_is_stripped() -> None:
    match_keys = TableMatchKeys(_tables("app_user", "app_role", "app_role_user"))

    assert match_keys.prefixes == ["app_", ""]
    assert _keys_by_name(match_keys) == {
        "app_user": ["user", "app_user"],
        "app_role": ["role", "app_role"],
        "app_role_user": ["role_user", "app_role_user"],
    }


def test_keys_are_singularized() -> None:
    match_keys = TableMatchKeys(_tables("app_users", "app_roles", "app_user_roles"))
    keys = _keys_by_name(match_keys)

    assert keys["app_users"] == ["user", "app_user"]
    assert keys["app_user_roles"] == ["user_role", "app_user_role"]


def test_only_shortest_prefix_of_a_family_survives() -> None:
    match_keys = TableMatchKeys(_tables("crm_sales_orders", "crm_sales_leads", "crm_contacts"))

    assert match_keys.prefixes == ["crm_", ""]
    assert match_keys.get(TableKey.of(PUBLIC, "crm_sales_orders")) == [
        "sales_order",
        "crm_sales_order",
    ]


def test_rare_prefixes_beyond_the_top_are_dropped() -> None:
    tables = _tables("a_x", "a_y", "b_x", "b_y", "b_z", "c_x", "c_y")
    match_keys = TableMatchKeys(tables, top_prefixes=1)

    # counts: a_ = 1, c_ = 1, b_ = 3; only a_ is in the top 1 and b_ exceeds half of 3
    assert match_keys.prefixes == ["a_", "b_", ""]
    assert match_keys.get(TableKey.of(PUBLIC, "c_x")) == ["c_x"]
    assert match_keys.get(TableKey.of(PUBLIC, "b_z")) == ["z", "b_z"]


def test_keys_are_lower_case_and_never_blank() -> None:
    match_keys = TableMatchKeys(_tables("APP_USER", "APP_ROLE", "app_"))

    for keys in match_keys.as_dict().values():
        for key in keys:
            assert key == key.lower()
            assert key.strip()
    assert _keys_by_name(match_keys)["APP_USER"] == ["user", "app_user"]
    assert _keys_by_name(match_keys)["app_"] == ["app_"]


def test_match_keys_do_not_depend_on_input_order() -> None:
    names = [
        "app_user",
        "app_role",
        "app_role_user",
        "crm_contacts",
        "crm_leads",
        "orders",
        "order_items",
    ]
    expected = TableMatchKeys(_tables(*names)).as_dict()

    rng = random.Random(7)
    for _ in range(5):
        shuffled = names[:]
        rng.shuffle(shuffled)
        assert TableMatchKeys(_tables(*shuffled)).as_dict() == expected


def test_candidate_groups_collect_tables_sharing_a_key() -> None:
    match_keys = TableMatchKeys(_tables("app_user", "app_role", "user"))

    assert match_keys.candidate_groups() == {
        "user": [TableKey.of(PUBLIC, "app_user"), TableKey.of(PUBLIC, "user")]
    }


def test_unknown_table_has_no_keys() -> None:
    match_keys = TableMatchKeys(_tables("orders"))
    assert match_keys.prefixes == [""]
    assert match_keys.get(TableKey.of(PUBLIC, "missing")) == []
    assert match_keys.get(TableKey.of(PUBLIC, "orders")) == ["order"]
