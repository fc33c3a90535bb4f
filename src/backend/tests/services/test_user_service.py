"""
Tests for login-time user provisioning.
"""

import pytest

from core.exceptions import InvalidArgumentError, NotFoundError
from services.user_service import UserService, default_display_name


@pytest.fixture
def user_service(ledger) -> UserService:
    return UserService(ledger)


@pytest.mark.unit
class TestDefaultDisplayName:
    def test_local_part(self) -> None:
        assert default_display_name("rudolph@northpole.org") == "rudolph"

    def test_missing_email(self) -> None:
        assert default_display_name(None) == ""


@pytest.mark.unit
class TestLogin:
    """Tests for UserService.login."""

    async def test_first_login_creates_user(self, user_service) -> None:
        """Test a new identity gets a user with an empty allowance map."""
        user, created = await user_service.login("sub-1", email="Jingle@Bells.com")

        assert created is True
        assert user.id == "sub-1"
        assert user.email == "jingle@bells.com"
        assert user.name == "Jingle"
        assert user.votes_remaining_per_address == {}

    async def test_second_login_returns_existing(self, user_service, ledger) -> None:
        """Test later logins leave the stored user unchanged."""
        await user_service.login("sub-1", name="Original")
        stored = await ledger.get_user("sub-1")

        user, created = await user_service.login("sub-1", name="Changed", email="x@y.z")

        assert created is False
        assert user == stored
        assert user.name == "Original"

    async def test_existing_allowance_preserved(self, user_service, make_user) -> None:
        """Test logging in again does not reset the allowance map."""
        await make_user("sub-1", votes_remaining_per_address={"S1": 3})

        user, _ = await user_service.login("sub-1")

        assert user.votes_remaining_per_address == {"S1": 3}

    async def test_empty_identity(self, user_service) -> None:
        with pytest.raises(InvalidArgumentError):
            await user_service.login("")


@pytest.mark.unit
class TestGetUser:
    async def test_get_existing(self, user_service, make_user) -> None:
        await make_user("sub-1")

        assert (await user_service.get_user("sub-1")).id == "sub-1"

    async def test_get_missing(self, user_service) -> None:
        with pytest.raises(NotFoundError):
            await user_service.get_user("nobody")
