import pytest

from range_reader.domain.models import KeyRange
from range_reader.queries import aggregate_query, preview_query, quote_table, range_query


def test_aggregate_query_aliases_columns():
    assert aggregate_query("users") == 'SELECT COUNT(*) AS count, MAX(id) AS max_id FROM "users"'


def test_quote_table_with_schema():
    assert quote_table("public.users") == '"public"."users"'


@pytest.mark.parametrize("name", ["users; DROP TABLE users", 'us"ers', "a.b.c", "", "1users"])
def test_quote_table_rejects_bad_identifiers(name):
    with pytest.raises(ValueError):
        quote_table(name)


def test_first_partition_psycopg_style():
    sql, params = range_query("users", KeyRange(None, 10), 3, "format")
    assert sql == 'SELECT * FROM "users" WHERE id <= %s ORDER BY id LIMIT %s'
    assert params == [10, 3]


def test_middle_partition_asyncpg_style():
    sql, params = range_query("users", KeyRange(10, 20), 3, "numeric")
    assert sql == 'SELECT * FROM "users" WHERE id > $1 AND id <= $2 ORDER BY id LIMIT $3'
    assert params == [10, 20, 3]


def test_last_partition_without_cap():
    sql, params = range_query("users", KeyRange(20, None), None, "qmark")
    assert sql == 'SELECT * FROM "users" WHERE id > ? ORDER BY id'
    assert params == [20]


def test_unbounded_range_has_no_where_clause():
    sql, params = range_query("users", KeyRange(), 5, "numeric")
    assert sql == 'SELECT * FROM "users" ORDER BY id LIMIT $1'
    assert params == [5]


def test_preview_query():
    assert preview_query("users") == 'SELECT * FROM "users" ORDER BY id LIMIT %s'


def test_unknown_paramstyle():
    with pytest.raises(ValueError):
        range_query("users", KeyRange(1, 2), None, "pyformat")  # type: ignore[arg-type]
