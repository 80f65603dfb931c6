"""MySQL / MariaDB query builder."""

from multidb_mcp.builders.base import QueryBuilder
from multidb_mcp.errors import UnsupportedDialectError
from multidb_mcp.models.capabilities import (
    ConstraintsParams,
    IndexesParams,
    SchemasParams,
    StatsParams,
    TableStatsParams,
    TypesParams,
    ViewsParams,
)
from multidb_mcp.models.config import Dialect
from multidb_mcp.models.statement import SQLStatement

SYSTEM_SCHEMAS = ("information_schema", "mysql", "performance_schema", "sys")


class MySQLBuilder(QueryBuilder):
    """Catalog queries against information_schema and SHOW STATUS."""

    dialect = Dialect.MYSQL
    identifier_quote = "`"
    random_function = "RAND()"

    def quote_literal(self, value: str) -> str:
        # Backslash is an escape character in MySQL string literals by default
        escaped = value.replace("\\", "\\\\").replace("'", "''")
        return f"'{escaped}'"

    def database_stats(self, params: StatsParams) -> list[SQLStatement]:
        statements = [
            self._query(
                """
                SELECT
                    table_schema AS database_name,
                    ROUND(SUM(data_length + index_length) / 1024 / 1024, 2) AS size_mb
                FROM information_schema.tables
                WHERE table_schema = DATABASE()
                GROUP BY table_schema
                """,
                label="Database size",
            ),
            self._query(
                """
                SHOW STATUS WHERE Variable_name IN ('Threads_connected', 'Threads_running', 'Max_used_connections')
                """,
                label="Connections",
            ),
            self._query(
                """
                SELECT
                    table_name,
                    engine,
                    table_rows,
                    ROUND((data_length + index_length) / 1024 / 1024, 2) AS size_mb,
                    ROUND(data_length / 1024 / 1024, 2) AS data_size_mb,
                    ROUND(index_length / 1024 / 1024, 2) AS index_size_mb
                FROM information_schema.tables
                WHERE table_schema = DATABASE()
                ORDER BY (data_length + index_length) DESC
                LIMIT 10
                """,
                label="Largest tables",
            ),
        ]

        if params.detailed:
            statements.extend(
                [
                    self._query(
                        """
                        SHOW GLOBAL STATUS WHERE Variable_name LIKE 'Innodb_buffer_pool%'
                        """,
                        label="Buffer pool",
                    ),
                    self._query(
                        """
                        SHOW GLOBAL STATUS WHERE Variable_name LIKE 'Qcache%'
                        """,
                        label="Query cache",
                    ),
                    self._query(
                        """
                        SELECT
                            table_schema,
                            table_name,
                            rows_read,
                            rows_changed,
                            rows_changed_x_indexes
                        FROM information_schema.table_statistics
                        WHERE table_schema = DATABASE()
                        ORDER BY rows_read DESC
                        LIMIT 10
                        """,
                        label="Table I/O",
                    ),
                    self._query(
                        """
                        SELECT
                            table_schema,
                            table_name,
                            index_name,
                            rows_read
                        FROM information_schema.index_statistics
                        WHERE table_schema = DATABASE()
                        ORDER BY rows_read DESC
                        LIMIT 10
                        """,
                        label="Index usage",
                    ),
                ]
            )

        return statements

    def table_stats(self, params: TableStatsParams) -> list[SQLStatement]:
        table = self.quote_literal(params.table)

        statements = [
            self._query(
                f"""
                SELECT
                    table_name,
                    engine,
                    table_rows,
                    avg_row_length,
                    ROUND(data_length / 1024 / 1024, 2) AS data_size_mb,
                    ROUND(index_length / 1024 / 1024, 2) AS index_size_mb,
                    ROUND((data_length + index_length) / 1024 / 1024, 2) AS total_size_mb
                FROM information_schema.tables
                WHERE table_schema = DATABASE()
                  AND table_name = {table}
                """,
                label="Table size",
            ),
            self._query(
                f"""
                SELECT
                    column_name,
                    column_type,
                    is_nullable,
                    column_key,
                    column_default,
                    extra
                FROM information_schema.columns
                WHERE table_schema = DATABASE()
                  AND table_name = {table}
                ORDER BY ordinal_position
                """,
                label="Columns",
            ),
            self._query(
                f"""
                SELECT
                    index_name,
                    column_name,
                    seq_in_index,
                    non_unique,
                    CASE
                        WHEN index_type = 'FULLTEXT' THEN 'FULLTEXT'
                        WHEN index_name = 'PRIMARY' THEN 'PRIMARY'
                        WHEN non_unique = 0 THEN 'UNIQUE'
                        ELSE 'INDEX'
                    END AS index_type
                FROM information_schema.statistics
                WHERE table_schema = DATABASE()
                  AND table_name = {table}
                ORDER BY index_name, seq_in_index
                """,
                label="Indexes",
            ),
        ]

        if params.detailed:
            statements.extend(
                [
                    self._query(
                        f"""
                        SHOW TABLE STATUS WHERE Name = {table}
                        """,
                        label="Table status",
                    ),
                    self._query(
                        f"""
                        SELECT
                            index_name,
                            stat_name,
                            stat_value
                        FROM mysql.innodb_index_stats
                        WHERE database_name = DATABASE()
                          AND table_name = {table}
                        ORDER BY index_name, stat_name
                        """,
                        label="Index statistics",
                    ),
                    self._query(
                        f"""
                        SELECT
                            table_schema,
                            table_name,
                            rows_read,
                            rows_changed,
                            rows_changed_x_indexes
                        FROM information_schema.table_statistics
                        WHERE table_schema = DATABASE()
                          AND table_name = {table}
                        """,
                        label="Table I/O",
                    ),
                ]
            )

        return statements

    def indexes(self, params: IndexesParams) -> list[SQLStatement]:
        conditions = ["table_schema = DATABASE()"]
        if params.table:
            conditions.append(f"table_name = {self.quote_literal(params.table)}")

        columns = [
            "table_name",
            "index_name",
            "GROUP_CONCAT(column_name ORDER BY seq_in_index) AS column_names",
            "CASE WHEN index_name = 'PRIMARY' THEN 'PRIMARY KEY' "
            "WHEN non_unique = 0 THEN 'UNIQUE' ELSE 'INDEX' END AS constraint_type",
            "index_type",
        ]
        if params.detailed:
            columns.extend(
                [
                    "CASE WHEN index_name = 'PRIMARY' THEN 'YES' ELSE 'NO' END AS is_primary",
                    "CASE WHEN non_unique = 0 THEN 'YES' ELSE 'NO' END AS is_unique",
                    "CASE WHEN index_type = 'FULLTEXT' THEN 'YES' ELSE 'NO' END AS is_fulltext",
                    "CASE WHEN index_comment != '' THEN index_comment ELSE NULL END AS comment",
                ]
            )

        select_list = ",\n    ".join(columns)
        where = self._where(conditions)
        return [
            self._query(
                f"""
SELECT
    {select_list}
FROM information_schema.statistics
{where}
GROUP BY table_name, index_name, non_unique, index_type, index_comment
ORDER BY table_name, index_name
""",
                label="Indexes",
            )
        ]

    def constraints(self, params: ConstraintsParams) -> list[SQLStatement]:
        conditions = ["tc.table_schema = DATABASE()"]
        if params.table:
            conditions.append(f"tc.table_name = {self.quote_literal(params.table)}")
        constraint_type = (
            params.constraint_type.strip().upper() if params.constraint_type else None
        )
        if constraint_type:
            conditions.append(
                f"tc.constraint_type = {self.quote_literal(constraint_type)}"
            )

        # check_constraints only exists from MySQL 8.0.16
        if constraint_type in (None, "CHECK"):
            definition = "cc.check_clause"
            check_join = (
                "LEFT JOIN information_schema.check_constraints cc\n"
                "    ON cc.constraint_schema = tc.constraint_schema\n"
                "    AND cc.constraint_name = tc.constraint_name\n"
                "    AND tc.constraint_type = 'CHECK'"
            )
            group_definition = ", cc.check_clause"
        else:
            definition = "NULL"
            check_join = ""
            group_definition = ""

        where = self._where(conditions)
        return [
            self._query(
                f"""
SELECT
    tc.table_schema,
    tc.table_name,
    tc.constraint_name,
    tc.constraint_type,
    GROUP_CONCAT(kcu.column_name ORDER BY kcu.ordinal_position) AS column_names,
    kcu.referenced_table_name AS referenced_table,
    GROUP_CONCAT(kcu.referenced_column_name ORDER BY kcu.ordinal_position) AS referenced_columns,
    {definition} AS definition
FROM information_schema.table_constraints tc
LEFT JOIN information_schema.key_column_usage kcu
    ON tc.constraint_name = kcu.constraint_name
    AND tc.table_schema = kcu.table_schema
    AND tc.table_name = kcu.table_name
{check_join}
{where}
GROUP BY tc.table_schema, tc.table_name, tc.constraint_name, tc.constraint_type,
    kcu.referenced_table_name{group_definition}
ORDER BY tc.table_name, tc.constraint_name
""",
                label="Constraints",
            )
        ]

    def views(self, params: ViewsParams) -> list[SQLStatement]:
        conditions = ["table_schema = DATABASE()"]
        if params.view:
            conditions.append(f"table_name = {self.quote_literal(params.view)}")

        definition = (
            "view_definition"
            if params.include_definition
            else "'Definition not included' AS view_definition"
        )
        where = self._where(conditions)
        return [
            self._query(
                f"""
SELECT
    table_schema AS schema_name,
    table_name AS view_name,
    {definition}
FROM information_schema.views
{where}
ORDER BY table_schema, table_name
""",
                label="Views",
            )
        ]

    def types(self, params: TypesParams) -> list[SQLStatement]:
        raise UnsupportedDialectError(
            self.dialect.value,
            "custom data types",
            reason="MySQL does not support custom data types; it only has built-in data types",
        )

    def schemas(self, params: SchemasParams) -> list[SQLStatement]:
        conditions = []
        if not params.include_system_schemas:
            excluded = ", ".join(f"'{name}'" for name in SYSTEM_SCHEMAS)
            conditions.append(f"s.schema_name NOT IN ({excluded})")
        if params.schema_name:
            conditions.append(f"s.schema_name = {self.quote_literal(params.schema_name)}")

        where = self._where(conditions)
        return [
            self._query(
                f"""
SELECT
    s.schema_name,
    s.default_character_set_name AS character_set,
    s.default_collation_name AS collation,
    (SELECT COUNT(*) FROM information_schema.tables t WHERE t.table_schema = s.schema_name AND t.table_type = 'BASE TABLE') AS tables_count,
    (SELECT COUNT(*) FROM information_schema.tables t WHERE t.table_schema = s.schema_name AND t.table_type = 'VIEW') AS views_count,
    (SELECT COUNT(*) FROM information_schema.routines r WHERE r.routine_schema = s.schema_name) AS routines_count
FROM information_schema.schemata s
{where}
ORDER BY s.schema_name
""",
                label="Schemas",
            )
        ]
