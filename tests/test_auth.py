import asyncio

import pytest

import auth
from errors import LoginError
from store import AppState


@pytest.fixture
def credentials(monkeypatch, fast_timers):
    monkeypatch.setattr(fast_timers, "ADMIN_USERNAME", "baker")
    monkeypatch.setattr(fast_timers, "ADMIN_PASSWORD", "s3cret")
    return fast_timers


def test_login_sets_admin_flag_and_navigates(credentials) -> None:
    state = AppState()
    state.navigate("/login")

    asyncio.run(auth.login(state, "baker", "s3cret"))

    assert state.is_admin
    assert state.current_path == "/admin"


def test_wrong_credentials_raise_generic_error(credentials) -> None:
    state = AppState()

    for username, password in [("baker", "nope"), ("nope", "s3cret"), ("", ""), ("bäker", "s3cret")]:
        with pytest.raises(LoginError, match="Invalid username or password"):
            asyncio.run(auth.login(state, username, password))

    assert not state.is_admin


def test_logout_clears_flag_and_goes_home(credentials) -> None:
    state = AppState()
    asyncio.run(auth.login(state, "baker", "s3cret"))

    auth.logout(state)

    assert not state.is_admin
    assert state.current_path == "/"
