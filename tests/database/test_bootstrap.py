from field_attendance.database.bootstrap import (
    _strip_create_db_and_use,
    _strip_line_comments,
    iter_sql_statements,
)


def test_splits_on_semicolons_outside_quotes():
    sql = "INSERT INTO t VALUES ('a;b'); CREATE TABLE x (id INT);\nSELECT 1"
    assert list(iter_sql_statements(sql)) == [
        "INSERT INTO t VALUES ('a;b')",
        "CREATE TABLE x (id INT)",
        "SELECT 1",
    ]


def test_schema_header_is_removed():
    sql = "-- comment\nCREATE DATABASE IF NOT EXISTS foo;\nUSE foo;\nCREATE TABLE a (id INT);"
    cleaned = _strip_line_comments(_strip_create_db_and_use(sql))
    assert list(iter_sql_statements(cleaned)) == ["CREATE TABLE a (id INT)"]


def test_shipped_schema_parses(request):
    schema = request.config.rootpath / "database" / "schema.sql"
    text = _strip_line_comments(_strip_create_db_and_use(schema.read_text(encoding="utf-8")))
    statements = list(iter_sql_statements(text))
    tables = [s.split("(")[0].split()[-1].strip("`") for s in statements if s.upper().startswith("CREATE TABLE")]
    assert tables == ["users", "attendance_logs", "employee_locations", "daily_work_summary"]
