import importlib.util
import os
from pathlib import Path

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./growthtubes-test.db"
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret-0123456789abcdef"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-0123456789abcdef"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["RESEND_API_KEY"] = ""

from typing import Optional

import httpx
import pytest
from sqlalchemy import update

from app.core.database import session_manager
from app.main import app as fastapi_app
from app.main import build_token_issuer
from app.constants.constants import UserRole
from app.models.user import User

STRONG_PASSWORD = "Sup3r$ecret"
REFRESH_PATH = "/api/v1/auth/refresh"
SCRIPT_PATH = Path(__file__).resolve().parent.parent / "scripts" / "promote_user.py"


class FakeMailer:
    """Records the codes that would have been emailed."""

    def __init__(self):
        self.otp_codes = {}
        self.reset_codes = {}
        self.welcomed = []
        self.otp_sends = 0
        self.reset_sends = 0

    async def send_otp_email(self, email: str, code: str):
        self.otp_codes[email] = code
        self.otp_sends += 1

    async def send_password_reset_email(self, email: str, code: str):
        self.reset_codes[email] = code
        self.reset_sends += 1

    async def send_welcome_email(self, email: str, name: Optional[str] = None):
        self.welcomed.append((email, name))


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def token_issuer():
    return build_token_issuer()


@pytest.fixture
async def app(tmp_path, mailer, token_issuer):
    await session_manager.init(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    fastapi_app.state.tokens = token_issuer
    fastapi_app.state.mailer = mailer
    yield fastapi_app
    await session_manager.close()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def refresh_cookie_from(response: httpx.Response) -> Optional[str]:
    """Value of the refresh cookie set by ``response``, or None if it sets none."""
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name.strip() == "refreshToken":
            return rest.split(";", 1)[0]
    return None


def refresh_cookie_header(response: httpx.Response) -> str:
    for header in response.headers.get_list("set-cookie"):
        if header.startswith("refreshToken="):
            return header
    raise AssertionError("response sets no refresh cookie")


async def post_with_refresh_cookie(client: httpx.AsyncClient, path: str, token: Optional[str]):
    client.cookies.clear()
    headers = {"Cookie": f"refreshToken={token}"} if token else {}
    return await client.post(path, headers=headers)


async def update_account(email: str, **values):
    """Write account columns directly, bypassing the API."""
    async with session_manager.get_session() as db:
        await db.execute(update(User).where(User.email == email).values(**values))


async def load_account(email: str):
    async with session_manager.get_session() as db:
        result = await db.execute(
            User.__table__.select().where(User.email == email)
        )
        return result.mappings().one()


async def signup(client, email: str, password: str = STRONG_PASSWORD, full_name: Optional[str] = None):
    body = {"email": email, "password": password}
    if full_name:
        body["fullName"] = full_name
    return await client.post("/api/v1/auth/signup", json=body)


async def signup_and_verify(client, mailer, email: str, password: str = STRONG_PASSWORD, full_name=None):
    """Create a verified account and return the verification response."""
    resp = await signup(client, email, password, full_name)
    assert resp.status_code == 201, resp.text
    resp = await client.post(
        "/api/v1/auth/verify-otp",
        json={"email": email, "otp": mailer.otp_codes[email]},
    )
    assert resp.status_code == 200, resp.text
    return resp


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def wrong_code(code: str) -> str:
    """A six-digit code guaranteed to differ from ``code``."""
    return str((int(code) + 1) % 1_000_000).zfill(6)


def load_promote_script():
    spec = importlib.util.spec_from_file_location("promote_user", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


async def access_token_for(client, mailer, email, full_name=None):
    resp = await signup_and_verify(client, mailer, email, full_name=full_name)
    return resp.json()["data"]["accessToken"]


async def login_token(client, email, password: str = STRONG_PASSWORD):
    resp = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["accessToken"]


async def token_with_role(client, mailer, email, role: UserRole):
    """Sign up ``email``, give it ``role`` and return an access token carrying that role."""
    await access_token_for(client, mailer, email)
    assert await load_promote_script().promote_user(email, role)
    return await login_token(client, email)


@pytest.fixture
async def admin_token(client, mailer):
    return await token_with_role(client, mailer, "admin@example.com", UserRole.ADMIN)
