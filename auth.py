from __future__ import annotations
import asyncio
import logging
import secrets

from config import settings
from errors import LoginError
from store import AppState

logger = logging.getLogger(__name__)

def check_credentials(username: str, password: str) -> bool:
    # evaluate both so timing does not reveal which one was wrong
    user_ok = secrets.compare_digest(username.encode(), settings.ADMIN_USERNAME.encode())
    password_ok = secrets.compare_digest(password.encode(), settings.ADMIN_PASSWORD.encode())
    return user_ok and password_ok

async def login(state: AppState, username: str, password: str) -> None:
    await asyncio.sleep(settings.LOGIN_DELAY_SECONDS)
    if not check_credentials(username, password):
        logger.info("Rejected admin login for %r", username)
        raise LoginError("Invalid username or password")
    state.login_admin()
    state.navigate("/admin")

def logout(state: AppState) -> None:
    state.logout_admin()
    state.navigate("/")
