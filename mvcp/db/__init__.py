"""Database access layer -- domain-organized package.

Connection helpers are re-exported here (``from mvcp.db import connect,
execute``); domain stores are imported from their own modules.
"""

from .core import (
    connect,
    execute,
    executemany,
    fetch_dicts,
    fetch_one_dict,
    table_exists,
    init_db,
    assert_tables_exist,
    SCHEMA_PATH,
)
from .helpers import (
    _utc_now_iso,
    new_id,
    scope_clause,
)
