"""Tests for role ordering and the deletion gate."""

import pytest

from devwars.users.roles import UserRole, can_be_deleted


class TestRoleOrdering:
    def test_ranks_increase(self):
        ordered = [UserRole.BANNED, UserRole.PENDING, UserRole.USER, UserRole.MODERATOR, UserRole.ADMIN]
        assert [r.rank for r in ordered] == sorted(r.rank for r in ordered)
        assert len({r.rank for r in ordered}) == len(ordered)

    def test_at_least(self):
        assert UserRole.ADMIN.at_least(UserRole.MODERATOR)
        assert UserRole.MODERATOR.at_least(UserRole.MODERATOR)
        assert not UserRole.USER.at_least(UserRole.MODERATOR)

    @pytest.mark.parametrize("name", ["admin", "Admin", " ADMIN "])
    def test_parse_case_insensitive(self, name):
        assert UserRole.parse(name) is UserRole.ADMIN

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown role"):
            UserRole.parse("owner")


class TestDeletionGate:
    @pytest.mark.parametrize("role", [UserRole.BANNED, UserRole.PENDING, UserRole.USER])
    def test_deletable(self, role):
        assert can_be_deleted(role)

    @pytest.mark.parametrize("role", [UserRole.MODERATOR, UserRole.ADMIN, "moderator"])
    def test_protected(self, role):
        assert not can_be_deleted(role)
