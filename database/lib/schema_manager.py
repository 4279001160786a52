"""Database schema management module.

Schema versions live in ``database/schema/vN.py``, each exporting a ``schema``
dict with ``version``, ``tables``, optional ``triggers`` and optional
``migrations`` (raw SQL statements). A fresh database gets the latest full
definition; an existing one gets the migrations of every newer version.
Statements use IF NOT EXISTS so the Supabase-managed tables that already
exist (auth, storage) are never touched.
"""
import importlib
import logging
from pathlib import Path
from typing import Dict, Any, List

from ..exceptions import DatabaseSchemaError

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent.parent / 'schema'


def column_sql(col: Dict[str, Any]) -> str:
    """Render a single column definition."""
    col_def = f"{col['name']} {col['type']}"
    if 'default' in col:
        col_def += f" DEFAULT {col['default']}"
    if col.get('nullable') is False:
        col_def += " NOT NULL"
    return col_def


def create_table_sql(table: Dict[str, Any]) -> str:
    """Render CREATE TABLE for a table definition, without foreign keys."""
    parts = [column_sql(col) for col in table['columns']]

    primary = [col['name'] for col in table['columns'] if col.get('primary_key')]
    if isinstance(table.get('primary_key'), list):
        primary = table['primary_key']
    if primary:
        parts.append(f"PRIMARY KEY ({', '.join(primary)})")

    return (
        f"CREATE TABLE IF NOT EXISTS {table['name']} (\n    "
        + ",\n    ".join(parts)
        + "\n)"
    )


def constraint_sql(table: Dict[str, Any]) -> List[str]:
    """Render foreign keys, checks and indexes for a table definition."""
    statements = []

    for fk in table.get('foreign_keys', []):
        name = f"fk_{table['name']}_{fk['columns'][0]}"
        statements.append(
            f"ALTER TABLE {table['name']} "
            f"ADD CONSTRAINT {name} "
            f"FOREIGN KEY ({', '.join(fk['columns'])}) "
            f"REFERENCES {fk['references']}"
        )

    for check in table.get('checks', []):
        statements.append(
            f"ALTER TABLE {table['name']} "
            f"ADD CONSTRAINT {check['name']} CHECK ({check['expression']})"
        )

    for idx in table.get('indexes', []):
        unique = 'UNIQUE ' if idx.get('unique') else ''
        where = f" WHERE {idx['where']}" if 'where' in idx else ''
        statements.append(
            f"CREATE {unique}INDEX IF NOT EXISTS {idx['name']} "
            f"ON {table['name']}({', '.join(idx['columns'])}){where}"
        )

    return statements


def trigger_sql(trigger: Dict[str, Any]) -> List[str]:
    """Render the function and trigger statements for a trigger definition."""
    return [
        f"CREATE OR REPLACE FUNCTION {trigger['function_name']}() "
        f"RETURNS TRIGGER AS $${trigger['function_body']}$$ LANGUAGE plpgsql",
        f"DROP TRIGGER IF EXISTS {trigger['name']} ON {trigger['table']}",
        f"CREATE TRIGGER {trigger['name']} "
        f"{trigger['timing']} {trigger['event']} ON {trigger['table']} "
        f"FOR EACH ROW EXECUTE FUNCTION {trigger['function_name']}()",
    ]


def load_schema_files(schema_dir: Path = SCHEMA_DIR) -> Dict[int, Dict[str, Any]]:
    """Load all schema version files keyed by version number.

    Raises:
        DatabaseSchemaError: If a file's declared version does not match its name
    """
    schema_files = {}

    for file in sorted(schema_dir.glob('v*.py')):
        try:
            version = int(file.stem[1:])
        except ValueError:
            logger.warning(f"Invalid schema filename: {file}")
            continue

        module = importlib.import_module(f"database.schema.{file.stem}")
        schema = getattr(module, 'schema', None)
        if schema is None:
            raise DatabaseSchemaError(f"Schema file {file} missing 'schema' definition")
        if schema['version'] != version:
            raise DatabaseSchemaError(
                f"Schema version mismatch in {file}: "
                f"Expected v{version}, got v{schema['version']}"
            )
        schema_files[version] = schema

    return dict(sorted(schema_files.items()))


class SchemaManager:
    """Manages database schema versioning and migrations."""

    def __init__(self, pool, schema_dir: Path = SCHEMA_DIR) -> None:
        self.pool = pool
        self._schema_dir = Path(schema_dir)
        self.current_version = 0

    async def initialize(self) -> None:
        """Create the version table and bring the schema up to date.

        Raises:
            DatabaseSchemaError: If no schema files exist or applying them fails
        """
        schema_files = load_schema_files(self._schema_dir)
        if not schema_files:
            raise DatabaseSchemaError("No valid schema files found in schema directory")

        try:
            async with self.pool.acquire() as conn:
                await conn.execute('''
                    CREATE TABLE IF NOT EXISTS schema_version (
                        version INT8 PRIMARY KEY,
                        applied_at TIMESTAMP NOT NULL DEFAULT now()
                    )
                ''')
                self.current_version = await conn.fetchval(
                    'SELECT COALESCE(MAX(version), 0) FROM schema_version'
                )

                latest_version = max(schema_files)
                if self.current_version >= latest_version:
                    logger.info("Schema is up to date")
                    return

                logger.info(
                    f"Updating schema from version {self.current_version} to {latest_version}"
                )
                async with conn.transaction():
                    if self.current_version == 0:
                        await self._create_schema(conn, schema_files[latest_version])
                    else:
                        for version in range(self.current_version + 1, latest_version + 1):
                            if version in schema_files:
                                await self._migrate(conn, schema_files[version])

                self.current_version = latest_version

        except DatabaseSchemaError:
            raise
        except Exception as e:
            logger.error(f"Schema initialization failed: {e}")
            raise DatabaseSchemaError(f"Failed to initialize schema: {e}")

    async def _create_schema(self, conn, schema: Dict[str, Any]) -> None:
        """Create every table, then constraints, then triggers."""
        for table in schema.get('tables', []):
            await conn.execute(create_table_sql(table))
            logger.info(f"Created table {table['name']}")

        for table in schema.get('tables', []):
            for statement in constraint_sql(table):
                await self._execute_idempotent(conn, statement)

        for trigger in schema.get('triggers', []):
            for statement in trigger_sql(trigger):
                await conn.execute(statement)

        await conn.execute(
            'INSERT INTO schema_version (version) VALUES ($1)',
            schema['version']
        )
        logger.info(f"Created schema version {schema['version']}")

    async def _migrate(self, conn, schema: Dict[str, Any]) -> None:
        """Apply the migrations of a single version."""
        for migration in schema.get('migrations', []):
            await self._execute_idempotent(conn, migration)

        await conn.execute(
            'INSERT INTO schema_version (version) VALUES ($1)',
            schema['version']
        )
        logger.info(f"Migrated to schema version {schema['version']}")

    async def _execute_idempotent(self, conn, statement: str) -> None:
        """Execute a statement, tolerating objects that already exist."""
        try:
            async with conn.transaction():
                await conn.execute(statement)
        except Exception as e:
            if 'already exists' not in str(e):
                raise
            logger.debug(f"Skipping existing object: {e}")
