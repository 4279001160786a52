"""Tests for SQL rendering helpers and the v1 schema definition."""

import pytest

from database import build_update
from database.lib.schema_manager import column_sql, create_table_sql, constraint_sql, trigger_sql
from database.schema.v1 import schema
from roles import VALID_ROLES


def test_build_update_binds_values():
    query, params = build_update('products', {'name': 'Kit', 'price': 10}, {'name', 'price'})
    assert 'SET name = $2, price = $3' in query
    assert 'WHERE id = $1' in query
    assert params == ['Kit', 10]

def test_build_update_rejects_unknown_columns():
    with pytest.raises(ValueError):
        build_update('products', {'creator_id': 'x'}, {'name'})
    with pytest.raises(ValueError):
        build_update('products', {}, {'name'})

def test_column_sql():
    assert column_sql({'name': 'roles', 'type': 'TEXT[]', 'nullable': False, 'default': "ARRAY['customer']"}) == \
        "roles TEXT[] DEFAULT ARRAY['customer'] NOT NULL"

def test_schema_tables():
    names = [table['name'] for table in schema['tables']]
    assert names == [
        'profiles', 'auth_sessions', 'products', 'product_variants',
        'product_files', 'purchases', 'contact_messages', 'product_reports',
    ]
    for table in schema['tables']:
        assert create_table_sql(table).startswith(f"CREATE TABLE IF NOT EXISTS {table['name']} (")

def test_unique_username_index_is_partial():
    profiles = schema['tables'][0]
    statements = constraint_sql(profiles)
    assert any('UNIQUE INDEX IF NOT EXISTS idx_profiles_username' in s and 'WHERE username IS NOT NULL' in s
               for s in statements)

def test_updated_at_triggers():
    tables = {trigger['table'] for trigger in schema['triggers']}
    assert tables == {'profiles', 'products', 'product_variants', 'purchases'}
    statements = trigger_sql(schema['triggers'][0])
    assert statements[0].startswith('CREATE OR REPLACE FUNCTION touch_updated_at()')
    assert statements[-1].endswith('EXECUTE FUNCTION touch_updated_at()')

def test_profile_roles_check_constraint():
    profiles = schema['tables'][0]
    statements = constraint_sql(profiles)
    check = next(s for s in statements if 'chk_profiles_roles' in s)
    assert check.startswith('ALTER TABLE profiles ADD CONSTRAINT chk_profiles_roles CHECK (')
    assert 'cardinality(roles) > 0' in check
    for role in VALID_ROLES:
        assert f"'{role}'" in check
