"""PostgreSQL query builder."""

from multidb_mcp.builders.base import QueryBuilder
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

# Schemas hidden from schema listings unless system schemas are requested
SYSTEM_SCHEMAS = (
    "pg_catalog",
    "information_schema",
    "pg_toast",
    "pg_temp_1",
    "pg_toast_temp_1",
)


class PostgresBuilder(QueryBuilder):
    """Catalog queries against pg_catalog, information_schema and pg_stat views."""

    dialect = Dialect.POSTGRES
    identifier_quote = '"'
    random_function = "RANDOM()"

    def database_stats(self, params: StatsParams) -> list[SQLStatement]:
        statements = [
            self._query(
                """
                SELECT
                    pg_size_pretty(pg_database_size(current_database())) AS database_size,
                    current_database() AS database_name
                """,
                label="Database size",
            ),
            self._query(
                """
                SELECT
                    count(*) AS total_connections,
                    sum(CASE WHEN state = 'active' THEN 1 ELSE 0 END) AS active_connections,
                    sum(CASE WHEN state = 'idle' THEN 1 ELSE 0 END) AS idle_connections
                FROM pg_stat_activity
                WHERE datname = current_database()
                """,
                label="Connections",
            ),
            self._query(
                """
                SELECT
                    schemaname AS schema_name,
                    relname AS table_name,
                    pg_size_pretty(pg_total_relation_size(relid)) AS total_size,
                    pg_size_pretty(pg_relation_size(relid)) AS table_size,
                    pg_size_pretty(pg_total_relation_size(relid) - pg_relation_size(relid)) AS index_size,
                    n_live_tup AS row_count
                FROM pg_stat_user_tables
                ORDER BY pg_total_relation_size(relid) DESC
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
                        SELECT
                            schemaname AS schema_name,
                            relname AS table_name,
                            indexrelname AS index_name,
                            idx_scan AS index_scans,
                            idx_tup_read AS tuples_read,
                            idx_tup_fetch AS tuples_fetched,
                            pg_size_pretty(pg_relation_size(indexrelid)) AS index_size
                        FROM pg_stat_user_indexes
                        ORDER BY idx_scan DESC
                        LIMIT 20
                        """,
                        label="Index usage",
                    ),
                    self._query(
                        """
                        SELECT
                            c.relname AS relation_name,
                            count(*) AS buffers,
                            pg_size_pretty(count(*) * 8192) AS buffered_size,
                            round(100.0 * count(*) / (SELECT setting FROM pg_settings WHERE name = 'shared_buffers')::integer, 2) AS buffer_percent
                        FROM pg_buffercache b
                        JOIN pg_class c ON b.relfilenode = pg_relation_filenode(c.oid)
                        WHERE b.reldatabase = (SELECT oid FROM pg_database WHERE datname = current_database())
                        GROUP BY c.relname
                        ORDER BY count(*) DESC
                        LIMIT 10
                        """,
                        label="Buffer cache usage",
                    ),
                    self._query(
                        """
                        SELECT
                            datname AS database_name,
                            blks_read AS blocks_read,
                            blks_hit AS blocks_hit,
                            round(100.0 * blks_hit / nullif(blks_hit + blks_read, 0), 2) AS cache_hit_ratio,
                            tup_returned AS tuples_returned,
                            tup_fetched AS tuples_fetched,
                            tup_inserted AS tuples_inserted,
                            tup_updated AS tuples_updated,
                            tup_deleted AS tuples_deleted
                        FROM pg_stat_database
                        WHERE datname = current_database()
                        """,
                        label="I/O statistics",
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
                    pg_size_pretty(pg_total_relation_size(relid)) AS total_size,
                    pg_size_pretty(pg_relation_size(relid)) AS table_size,
                    pg_size_pretty(pg_total_relation_size(relid) - pg_relation_size(relid)) AS index_size,
                    n_live_tup AS row_count,
                    n_dead_tup AS dead_tuples,
                    last_vacuum,
                    last_autovacuum,
                    last_analyze,
                    last_autoanalyze
                FROM pg_stat_user_tables
                WHERE relname = {table}
                  AND schemaname = 'public'
                """,
                label="Table size",
            ),
            self._query(
                f"""
                SELECT
                    a.attname AS column_name,
                    format_type(a.atttypid, a.atttypmod) AS data_type,
                    CASE WHEN a.attnotnull THEN 'NO' ELSE 'YES' END AS is_nullable,
                    pg_get_expr(d.adbin, d.adrelid) AS default_value,
                    col_description(c.oid, a.attnum) AS description
                FROM pg_attribute a
                JOIN pg_class c ON a.attrelid = c.oid
                JOIN pg_namespace n ON c.relnamespace = n.oid
                LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
                WHERE c.relname = {table}
                  AND n.nspname = 'public'
                  AND a.attnum > 0
                  AND NOT a.attisdropped
                ORDER BY a.attnum
                """,
                label="Columns",
            ),
            self._query(
                f"""
                SELECT
                    i.relname AS index_name,
                    pg_size_pretty(pg_relation_size(i.oid)) AS index_size,
                    ui.idx_scan AS index_scans,
                    ui.idx_tup_read AS tuples_read,
                    ui.idx_tup_fetch AS tuples_fetched,
                    a.amname AS index_type,
                    array_to_string(array_agg(pg_get_indexdef(idx.indexrelid, k + 1, true) ORDER BY k), ', ') AS column_names
                FROM pg_stat_user_indexes ui
                JOIN pg_index idx ON ui.indexrelid = idx.indexrelid
                JOIN pg_class i ON idx.indexrelid = i.oid
                JOIN pg_class c ON idx.indrelid = c.oid
                JOIN pg_namespace n ON c.relnamespace = n.oid
                JOIN pg_am a ON i.relam = a.oid,
                generate_series(0, idx.indnkeyatts - 1) AS k
                WHERE c.relname = {table}
                  AND n.nspname = 'public'
                GROUP BY i.relname, i.oid, ui.idx_scan, ui.idx_tup_read, ui.idx_tup_fetch, a.amname
                ORDER BY i.relname
                """,
                label="Indexes",
            ),
        ]

        if params.detailed:
            statements.extend(
                [
                    self._query(
                        f"""
                        SELECT
                            seq_scan AS sequential_scans,
                            seq_tup_read AS sequential_tuples_read,
                            idx_scan AS index_scans,
                            idx_tup_fetch AS index_tuples_fetched,
                            n_tup_ins AS tuples_inserted,
                            n_tup_upd AS tuples_updated,
                            n_tup_del AS tuples_deleted,
                            n_tup_hot_upd AS tuples_hot_updated
                        FROM pg_stat_user_tables
                        WHERE relname = {table}
                          AND schemaname = 'public'
                        """,
                        label="I/O statistics",
                    ),
                    self._query(
                        f"""
                        SELECT
                            current_database() AS database_name,
                            schemaname AS schema_name,
                            tblname AS table_name,
                            bs * tblpages AS real_size,
                            (tblpages - est_tblpages) * bs AS extra_size,
                            CASE WHEN tblpages > 0
                                THEN round(100.0 * (tblpages - est_tblpages) / tblpages, 2)
                                ELSE 0
                            END AS extra_ratio,
                            fillfactor,
                            CASE WHEN tblpages - est_tblpages_ff > 0
                                THEN (tblpages - est_tblpages_ff) * bs
                                ELSE 0
                            END AS bloat_size,
                            CASE WHEN tblpages > 0 AND tblpages - est_tblpages_ff > 0
                                THEN round(100.0 * (tblpages - est_tblpages_ff) / tblpages, 2)
                                ELSE 0
                            END AS bloat_ratio
                        FROM (
                            SELECT
                                ceil(reltuples / ((bs - page_hdr) / tpl_size)) + ceil(toasttuples / 4) AS est_tblpages,
                                ceil(reltuples / ((bs - page_hdr) * fillfactor / (tpl_size * 100))) + ceil(toasttuples / 4) AS est_tblpages_ff,
                                tblpages, fillfactor, bs, schemaname, tblname
                            FROM (
                                SELECT
                                    (4 + tpl_hdr_size + tpl_data_size + (2 * ma)
                                        - CASE WHEN tpl_hdr_size % ma = 0 THEN ma ELSE tpl_hdr_size % ma END
                                        - CASE WHEN ceil(tpl_data_size)::int % ma = 0 THEN ma ELSE ceil(tpl_data_size)::int % ma END
                                    ) AS tpl_size,
                                    bs - page_hdr AS size_per_block,
                                    heappages + toastpages AS tblpages,
                                    reltuples, toasttuples, bs, page_hdr, schemaname, tblname, fillfactor
                                FROM (
                                    SELECT
                                        ns.nspname AS schemaname,
                                        tbl.relname AS tblname,
                                        tbl.reltuples,
                                        tbl.relpages AS heappages,
                                        coalesce(toast.relpages, 0) AS toastpages,
                                        coalesce(toast.reltuples, 0) AS toasttuples,
                                        coalesce(substring(array_to_string(tbl.reloptions, ' ') FROM 'fillfactor=([0-9]+)')::smallint, 100) AS fillfactor,
                                        current_setting('block_size')::numeric AS bs,
                                        CASE WHEN version() ~ 'mingw32' OR version() ~ '64-bit|x86_64|ppc64|ia64|amd64' THEN 8 ELSE 4 END AS ma,
                                        24 AS page_hdr,
                                        23 + CASE WHEN max(coalesce(s.null_frac, 0)) > 0 THEN (7 + count(s.attname)) / 8 ELSE 0 END AS tpl_hdr_size,
                                        sum((1 - coalesce(s.null_frac, 0)) * coalesce(s.avg_width, 0)) AS tpl_data_size
                                    FROM pg_attribute att
                                    JOIN pg_class tbl ON att.attrelid = tbl.oid
                                    JOIN pg_namespace ns ON ns.oid = tbl.relnamespace
                                    LEFT JOIN pg_stats s ON s.schemaname = ns.nspname
                                        AND s.tablename = tbl.relname
                                        AND s.inherited = false
                                        AND s.attname = att.attname
                                    LEFT JOIN pg_class toast ON tbl.reltoastrelid = toast.oid
                                    WHERE NOT att.attisdropped
                                      AND tbl.relkind = 'r'
                                      AND att.attnum > 0
                                      AND tbl.relname = {table}
                                      AND ns.nspname = 'public'
                                    GROUP BY 1, 2, 3, 4, 5, 6, 7, 8, 9, 10
                                ) AS s
                            ) AS s2
                        ) AS s3
                        """,
                        label="Bloat estimate",
                    ),
                ]
            )

        return statements

    def indexes(self, params: IndexesParams) -> list[SQLStatement]:
        conditions = ["n.nspname = 'public'"]
        if params.table:
            conditions.append(f"t.relname = {self.quote_literal(params.table)}")

        columns = [
            "t.relname AS table_name",
            "i.relname AS index_name",
            "a.amname AS index_type",
            "CASE WHEN ix.indisprimary THEN 'PRIMARY KEY' "
            "WHEN ix.indisunique THEN 'UNIQUE' ELSE 'INDEX' END AS constraint_type",
            "array_to_string(array_agg(pg_get_indexdef(ix.indexrelid, k + 1, true) ORDER BY k), ', ') AS column_names",
        ]
        if params.detailed:
            columns.extend(
                [
                    "pg_size_pretty(pg_relation_size(i.oid)) AS index_size",
                    "pg_get_indexdef(ix.indexrelid) AS index_definition",
                    "CASE WHEN ix.indpred IS NOT NULL THEN 'Yes' ELSE 'No' END AS is_partial",
                    "CASE WHEN ix.indoption[0] & 1 = 1 THEN 'DESC' ELSE 'ASC' END AS sort_order",
                ]
            )

        select_list = ",\n    ".join(columns)
        where = self._where(conditions)
        return [
            self._query(
                f"""
SELECT
    {select_list}
FROM pg_index ix
JOIN pg_class i ON i.oid = ix.indexrelid
JOIN pg_class t ON t.oid = ix.indrelid
JOIN pg_namespace n ON n.oid = t.relnamespace
JOIN pg_am a ON a.oid = i.relam,
generate_series(0, ix.indnkeyatts - 1) AS k
{where}
GROUP BY t.relname, i.relname, i.oid, a.amname, ix.indexrelid, ix.indisprimary,
    ix.indisunique, (ix.indpred IS NOT NULL), ix.indoption[0]
ORDER BY t.relname, i.relname
""",
                label="Indexes",
            )
        ]

    def constraints(self, params: ConstraintsParams) -> list[SQLStatement]:
        conditions = ["tc.table_schema = 'public'"]
        if params.table:
            conditions.append(f"tc.table_name = {self.quote_literal(params.table)}")
        if params.constraint_type:
            conditions.append(
                f"tc.constraint_type = {self.quote_literal(params.constraint_type.strip().upper())}"
            )

        where = self._where(conditions)
        return [
            self._query(
                f"""
SELECT
    tc.table_schema,
    tc.table_name,
    tc.constraint_name,
    tc.constraint_type,
    (SELECT string_agg(kcu.column_name, ', ' ORDER BY kcu.ordinal_position)
       FROM information_schema.key_column_usage kcu
      WHERE kcu.constraint_schema = tc.constraint_schema
        AND kcu.constraint_name = tc.constraint_name
        AND kcu.table_name = tc.table_name) AS column_names,
    CASE WHEN tc.constraint_type = 'FOREIGN KEY'
        THEN pgc.confrelid::regclass::text
    END AS referenced_table,
    CASE WHEN tc.constraint_type = 'FOREIGN KEY' THEN
        (SELECT string_agg(att.attname, ', ' ORDER BY u.ord)
           FROM unnest(pgc.confkey) WITH ORDINALITY AS u(attnum, ord)
           JOIN pg_attribute att ON att.attrelid = pgc.confrelid AND att.attnum = u.attnum)
    END AS referenced_columns,
    pg_get_constraintdef(pgc.oid) AS definition
FROM information_schema.table_constraints tc
LEFT JOIN pg_namespace nsp ON nsp.nspname = tc.constraint_schema
LEFT JOIN pg_constraint pgc ON pgc.conname = tc.constraint_name
    AND pgc.connamespace = nsp.oid
    AND pgc.conrelid = (quote_ident(tc.table_schema) || '.' || quote_ident(tc.table_name))::regclass
{where}
ORDER BY tc.table_name, tc.constraint_type, tc.constraint_name
""",
                label="Constraints",
            )
        ]

    def views(self, params: ViewsParams) -> list[SQLStatement]:
        conditions = ["schemaname NOT IN ('pg_catalog', 'information_schema')"]
        if params.view:
            conditions.append(f"viewname = {self.quote_literal(params.view)}")

        definition = (
            "definition" if params.include_definition else "'Definition not included'"
        )
        where = self._where(conditions)
        return [
            self._query(
                f"""
SELECT
    schemaname AS schema_name,
    viewname AS view_name,
    viewowner AS view_owner,
    {definition} AS view_definition
FROM pg_views
{where}
ORDER BY schemaname, viewname
""",
                label="Views",
            )
        ]

    def types(self, params: TypesParams) -> list[SQLStatement]:
        conditions = [
            "n.nspname NOT IN ('pg_catalog', 'information_schema')",
            "n.nspname NOT LIKE 'pg_toast%'",
            "t.typname NOT LIKE '\\_%'",
            "(t.typrelid = 0 OR (SELECT c.relkind FROM pg_class c WHERE c.oid = t.typrelid) = 'c')",
            "t.typtype IN ('e', 'c', 'd', 'r', 'b')",
        ]
        if params.type_name:
            conditions.append(f"t.typname = {self.quote_literal(params.type_name)}")

        where = self._where(conditions)
        return [
            self._query(
                f"""
SELECT
    n.nspname AS schema_name,
    t.typname AS type_name,
    CASE t.typtype
        WHEN 'e' THEN 'enum'
        WHEN 'c' THEN 'composite'
        WHEN 'd' THEN 'domain'
        WHEN 'r' THEN 'range'
        WHEN 'b' THEN 'base'
        ELSE t.typtype::text
    END AS type_category,
    CASE
        WHEN t.typtype = 'e' THEN
            (SELECT string_agg(quote_literal(e.enumlabel), ', ' ORDER BY e.enumsortorder)
               FROM pg_enum e
              WHERE e.enumtypid = t.oid)
        WHEN t.typtype = 'c' THEN
            (SELECT string_agg(a.attname || ' ' || format_type(a.atttypid, a.atttypmod), ', ' ORDER BY a.attnum)
               FROM pg_attribute a
              WHERE a.attrelid = t.typrelid
                AND a.attnum > 0
                AND NOT a.attisdropped)
        WHEN t.typtype = 'd' THEN
            format_type(t.typbasetype, t.typtypmod)
            || CASE WHEN t.typnotnull THEN ' NOT NULL' ELSE '' END
            || coalesce(' DEFAULT ' || t.typdefault, '')
        WHEN t.typtype = 'r' THEN
            (SELECT format_type(r.rngsubtype, NULL)
               FROM pg_range r
              WHERE r.rngtypid = t.oid)
        ELSE NULL
    END AS definition,
    obj_description(t.oid, 'pg_type') AS description
FROM pg_type t
JOIN pg_namespace n ON n.oid = t.typnamespace
{where}
ORDER BY n.nspname, t.typname
""",
                label="Custom types",
            )
        ]

    def schemas(self, params: SchemasParams) -> list[SQLStatement]:
        conditions = []
        if not params.include_system_schemas:
            excluded = ", ".join(f"'{name}'" for name in SYSTEM_SCHEMAS)
            conditions.append(f"n.nspname NOT IN ({excluded})")
        if params.schema_name:
            conditions.append(f"n.nspname = {self.quote_literal(params.schema_name)}")

        where = self._where(conditions)
        return [
            self._query(
                f"""
SELECT
    n.nspname AS schema_name,
    pg_get_userbyid(n.nspowner) AS schema_owner,
    array_to_string(n.nspacl, ', ') AS access_privileges,
    obj_description(n.oid, 'pg_namespace') AS description,
    (SELECT count(*) FROM pg_class c WHERE c.relnamespace = n.oid AND c.relkind IN ('r', 'p')) AS table_count,
    (SELECT count(*) FROM pg_class c WHERE c.relnamespace = n.oid AND c.relkind IN ('v', 'm')) AS view_count,
    (SELECT count(*) FROM pg_proc p WHERE p.pronamespace = n.oid) AS function_count
FROM pg_namespace n
{where}
ORDER BY n.nspname
""",
                label="Schemas",
            )
        ]
