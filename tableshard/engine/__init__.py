"""
Cross-shard engine for tableshard.

Fans logical queries, counts, joins and paginated requests out over the
physical shard tables of one or more strategies, sequentially, and merges
the results. Import from `tableshard.engine` directly.
"""

from tableshard.engine.cross_table import cross_table_count, cross_table_query
from tableshard.engine.dedup import (
    DEFAULT_DEDUPLICATE_FIELDS,
    deduplicate_results,
    generate_result_key,
)
from tableshard.engine.join import (
    cross_table_join,
    generate_table_combinations,
    multi_join,
    multi_join_optimized,
    replace_table_names_in_condition,
)
from tableshard.engine.pagination import (
    cross_table_paginate,
    multi_join_count,
    multi_join_count_with_time_range,
    multi_join_paginate,
    multi_join_paginate_optimized,
    multi_join_paginate_with_time_range,
    paginate_records,
)
from tableshard.engine.tables import resolve_table_names

__all__ = [
    "DEFAULT_DEDUPLICATE_FIELDS",
    "cross_table_count",
    "cross_table_join",
    "cross_table_paginate",
    "cross_table_query",
    "deduplicate_results",
    "generate_result_key",
    "generate_table_combinations",
    "multi_join",
    "multi_join_count",
    "multi_join_count_with_time_range",
    "multi_join_optimized",
    "multi_join_paginate",
    "multi_join_paginate_optimized",
    "multi_join_paginate_with_time_range",
    "paginate_records",
    "replace_table_names_in_condition",
    "resolve_table_names",
]
