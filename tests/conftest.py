# tests/conftest.py
from __future__ import annotations

import os
import sys
import logging
from typing import Callable, Dict, Optional, Tuple

import httpx
import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from services.scan_history.services.history_service import ScanHistoryService
from services.ticket_admission.services.admission_client import TicketAdmissionClient
from services.usher.services.session import UsherSession
from shared.storage.secure_store import FileStore

BASE_URL = "https://tickets.test/api/tickets"


# =========================
# Logging -> stdout
# =========================
@pytest.fixture(scope="session", autouse=True)
def _tests_log_to_stdout():
    root = logging.getLogger()
    if not any(getattr(h, "stream", None) is sys.stdout for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    root.setLevel(os.getenv("TEST_LOG_LEVEL", "INFO").upper())


# Make anyio run on asyncio
@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


class MemoryKeyring(KeyringBackend):
    """Keyring en memoria para no tocar el llavero real del SO"""
    priority = 1

    def __init__(self):
        super().__init__()
        self.passwords: Dict[Tuple[str, str], str] = {}

    def get_password(self, service, username):
        return self.passwords.get((service, username))

    def set_password(self, service, username, password):
        self.passwords[(service, username)] = password

    def delete_password(self, service, username):
        try:
            del self.passwords[(service, username)]
        except KeyError:
            raise PasswordDeleteError("not found")


@pytest.fixture
def memory_keyring():
    previous = keyring.get_keyring()
    backend = MemoryKeyring()
    keyring.set_keyring(backend)
    yield backend
    keyring.set_keyring(previous)


@pytest.fixture
def file_store(tmp_path) -> FileStore:
    return FileStore(tmp_path / "store.json")


@pytest.fixture
def history(tmp_path) -> ScanHistoryService:
    return ScanHistoryService(FileStore(tmp_path / "local_store.json"))


Handler = Callable[[httpx.Request], httpx.Response]


def make_client(handler: Handler, timeout: float = 15.0) -> TicketAdmissionClient:
    return TicketAdmissionClient(
        base_url=BASE_URL,
        timeout=timeout,
        user_agent="Usher-Test/1.0",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def api_calls():
    """Requests recibidos por el servidor falso"""
    return []


@pytest.fixture
def fake_api(api_calls):
    """
    Servidor de tickets falso: admite cualquier UUID salvo 'used-*' (ya admitido)
    y 'offline-*' (falla de conexión).
    """
    state: Dict[str, Optional[Handler]] = {"override": None}

    def handler(request: httpx.Request) -> httpx.Response:
        api_calls.append(request)
        if state["override"] is not None:
            return state["override"](request)

        path = request.url.path
        if path.endswith("/on-door/info"):
            return httpx.Response(200, json={
                "prices": 350,
                "paymentMethods": [{"identifier": "instapay", "to": "tedx@instapay"}],
            })
        if path.endswith("/on-door"):
            return httpx.Response(200, json={
                "applicant": {"full_name": "Walk Up", "admitted_at": None},
            })

        uuid = path.rsplit("/", 1)[-1]
        if uuid.startswith("offline-"):
            raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)
        if uuid.startswith("used-"):
            return httpx.Response(409, json={"error": "Ticket already admitted"})
        return httpx.Response(200, json={
            "applicant": {"full_name": "Jane Doe", "admitted_at": "2026-10-18T18:00:00Z"},
        })

    handler.state = state
    return handler


@pytest.fixture
async def session(file_store, history, fake_api) -> UsherSession:
    usher = UsherSession(file_store, history, make_client(fake_api))
    await usher.load()
    await usher.set_app_key("event-key")
    return usher
