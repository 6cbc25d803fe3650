"""
Function name tables used by the dialect function classifier.

Names are uppercase. Each dialect sees the common set merged with its own
additions.
"""

from sqlflow_analyzer.dialects.dialect import SqlDialect

COMMON_AGGREGATES = frozenset(
    {
        "COUNT",
        "SUM",
        "AVG",
        "MIN",
        "MAX",
        "STDDEV",
        "STDDEV_POP",
        "STDDEV_SAMP",
        "VARIANCE",
        "VAR_POP",
        "VAR_SAMP",
        "ARRAY_AGG",
        "BOOL_AND",
        "BOOL_OR",
        "EVERY",
        "CORR",
        "COVAR_POP",
        "COVAR_SAMP",
        "PERCENTILE_CONT",
        "PERCENTILE_DISC",
        "APPROX_COUNT_DISTINCT",
    }
)

COMMON_WINDOWS = frozenset(
    {
        "ROW_NUMBER",
        "RANK",
        "DENSE_RANK",
        "PERCENT_RANK",
        "CUME_DIST",
        "NTILE",
        "LAG",
        "LEAD",
        "FIRST_VALUE",
        "LAST_VALUE",
        "NTH_VALUE",
    }
)

COMMON_TABLE_FUNCTIONS = frozenset({"UNNEST"})

DIALECT_AGGREGATES = {
    SqlDialect.MYSQL: {"GROUP_CONCAT", "BIT_AND", "BIT_OR", "BIT_XOR", "JSON_ARRAYAGG", "JSON_OBJECTAGG", "STD"},
    SqlDialect.MARIADB: {"GROUP_CONCAT", "BIT_AND", "BIT_OR", "BIT_XOR", "JSON_ARRAYAGG", "JSON_OBJECTAGG", "STD"},
    SqlDialect.POSTGRESQL: {"STRING_AGG", "JSON_AGG", "JSONB_AGG", "JSON_OBJECT_AGG", "BIT_AND", "BIT_OR", "MODE"},
    SqlDialect.TRANSACTSQL: {"STRING_AGG", "CHECKSUM_AGG", "COUNT_BIG", "GROUPING", "STDEV", "STDEVP", "VAR", "VARP"},
    SqlDialect.SNOWFLAKE: {"LISTAGG", "ARRAY_UNIQUE_AGG", "OBJECT_AGG", "MEDIAN", "HLL", "ANY_VALUE", "COUNT_IF", "MODE"},
    SqlDialect.BIGQUERY: {"STRING_AGG", "ANY_VALUE", "COUNTIF", "LOGICAL_AND", "LOGICAL_OR", "APPROX_QUANTILES", "APPROX_TOP_COUNT"},
    SqlDialect.REDSHIFT: {"LISTAGG", "MEDIAN", "APPROXIMATE", "BIT_AND", "BIT_OR"},
    SqlDialect.HIVE: {"COLLECT_LIST", "COLLECT_SET", "PERCENTILE", "PERCENTILE_APPROX", "HISTOGRAM_NUMERIC"},
    SqlDialect.ATHENA: {"ARBITRARY", "APPROX_DISTINCT", "APPROX_PERCENTILE", "MAP_AGG", "COUNT_IF", "BOOL_AND", "LISTAGG"},
    SqlDialect.TRINO: {"ARBITRARY", "APPROX_DISTINCT", "APPROX_PERCENTILE", "MAP_AGG", "COUNT_IF", "LISTAGG", "ANY_VALUE"},
    SqlDialect.SQLITE: {"GROUP_CONCAT", "TOTAL"},
}

DIALECT_WINDOWS = {
    SqlDialect.SNOWFLAKE: {"RATIO_TO_REPORT", "CONDITIONAL_TRUE_EVENT", "CONDITIONAL_CHANGE_EVENT"},
    SqlDialect.REDSHIFT: {"RATIO_TO_REPORT"},
    SqlDialect.BIGQUERY: {"PERCENTILE_CONT", "PERCENTILE_DISC"},
}

DIALECT_TABLE_FUNCTIONS = {
    SqlDialect.POSTGRESQL: {
        "GENERATE_SERIES",
        "JSON_EACH",
        "JSONB_EACH",
        "JSON_ARRAY_ELEMENTS",
        "JSONB_ARRAY_ELEMENTS",
        "JSON_TO_RECORDSET",
        "JSONB_TO_RECORDSET",
        "REGEXP_SPLIT_TO_TABLE",
    },
    SqlDialect.TRANSACTSQL: {"OPENJSON", "OPENROWSET", "OPENQUERY", "OPENXML", "STRING_SPLIT", "GENERATE_SERIES"},
    SqlDialect.SNOWFLAKE: {"FLATTEN", "SPLIT_TO_TABLE", "GENERATOR", "RESULT_SCAN", "STRTOK_SPLIT_TO_TABLE"},
    SqlDialect.BIGQUERY: {"GENERATE_ARRAY", "GENERATE_DATE_ARRAY", "EXTERNAL_QUERY"},
    SqlDialect.HIVE: {"EXPLODE", "POSEXPLODE", "INLINE", "JSON_TUPLE", "PARSE_URL_TUPLE", "STACK"},
    SqlDialect.MYSQL: {"JSON_TABLE"},
    SqlDialect.MARIADB: {"JSON_TABLE", "SEQUENCE_TABLE"},
    SqlDialect.ATHENA: {"SEQUENCE"},
    SqlDialect.TRINO: {"SEQUENCE"},
    SqlDialect.SQLITE: {"JSON_EACH", "JSON_TREE", "GENERATE_SERIES", "PRAGMA_TABLE_INFO"},
}
