"""Tests for role sets."""

import pytest

from roles import (
    RoleSet, InvalidRoleError, VALID_ROLES, has_role, is_admin, is_creator
)


def test_default_role():
    assert RoleSet().to_list() == ['customer']
    assert RoleSet.from_list(None).to_list() == ['customer']
    assert RoleSet.from_list([]).to_list() == ['customer']

def test_from_list_deduplicates_in_order():
    roles = RoleSet.from_list(['seller', 'customer', 'seller'])
    assert roles.to_list() == ['seller', 'customer']

def test_invalid_roles_are_listed():
    with pytest.raises(InvalidRoleError) as exc_info:
        RoleSet.from_list(['customer', 'superuser', 'root'])
    assert exc_info.value.roles == ['superuser', 'root']
    assert 'superuser' in str(exc_info.value)
    assert 'root' in str(exc_info.value)

def test_add_existing_role_is_noop():
    roles = RoleSet.from_list(['customer', 'creator'])
    assert roles.add('creator') is roles
    assert roles.add('creator').to_list() == ['customer', 'creator']

def test_add_new_role():
    roles = RoleSet().add('seller')
    assert roles.to_list() == ['customer', 'seller']

def test_add_invalid_role():
    with pytest.raises(InvalidRoleError):
        RoleSet().add('owner')

def test_remove_last_role_falls_back_to_customer():
    roles = RoleSet.from_list(['admin'])
    assert roles.remove('admin').to_list() == ['customer']

def test_remove_keeps_other_roles():
    roles = RoleSet.from_list(['customer', 'seller', 'admin'])
    assert roles.remove('seller').to_list() == ['customer', 'admin']

@pytest.mark.parametrize('ops', [
    [('add', 'admin'), ('remove', 'customer'), ('remove', 'admin')],
    [('remove', 'customer'), ('remove', 'customer'), ('add', 'seller')],
    [('add', 'creator'), ('add', 'creator'), ('remove', 'creator'), ('remove', 'customer')],
])
def test_role_set_never_empty_and_valid(ops):
    roles = RoleSet()
    for op, role in ops:
        roles = getattr(roles, op)(role)
        assert len(roles) >= 1
        assert all(r in VALID_ROLES for r in roles)
        assert len(set(roles)) == len(roles)

def test_equality_ignores_order():
    assert RoleSet(['admin', 'customer']) == RoleSet(['customer', 'admin'])

def test_profile_helpers():
    profile = {'roles': ['customer', 'seller']}
    assert has_role(profile, 'admin', 'seller')
    assert is_creator(profile)
    assert not is_admin(profile)
    assert not is_creator({'roles': None})

def test_unknown_stored_role_is_ignored_on_reads():
    profile = {'roles': ['customer', 'moderator']}
    assert not is_admin(profile)
    assert not is_creator(profile)
    assert has_role(profile, 'customer')
    assert is_admin({'roles': ['moderator', 'admin']})
