# tests/test_admission_client.py
import asyncio
import json

import httpx
import pytest
from pydantic import TypeAdapter, ValidationError

from services.ticket_admission.models.ticket import (
    OnDoorTicketPayload,
    PaymentMethod,
    TicketError,
    TicketResponse,
    TicketSuccess,
)
from services.ticket_admission.services.admission_client import (
    INVALID_RESPONSE_MESSAGE,
    NO_CONNECTION_MESSAGE,
    TIMEOUT_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
)
from tests.conftest import make_client

pytestmark = pytest.mark.anyio


APPLICANT = {
    "full_name": "Jane Doe",
    "admitted_at": "2026-10-18T18:00:00Z",
    "ticket_type": "student",
    "seat": {"row": "C", "number": 12},
}


async def test_admit_success_returns_applicant_unchanged():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"applicant": APPLICANT})

    result = await make_client(handler).admit("abc-123", "key", "dev001")

    assert isinstance(result, TicketSuccess)
    assert result.applicant.model_dump() == APPLICANT
    assert result.applicant.full_name == "Jane Doe"

    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/api/tickets/admit/abc-123"
    assert request.headers["Accept"] == "application/json"
    assert request.headers["User-Agent"] == "Usher-Test/1.0"


async def test_admit_percent_encodes_key_and_device():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"applicant": APPLICANT})

    await make_client(handler).admit("abc-123", "k&y=1 /x", "d#1")

    raw = seen[0].url.raw_path.decode()
    assert "key=k%26y%3D1%20%2Fx" in raw
    assert "device=d%231" in raw
    assert seen[0].url.params["key"] == "k&y=1 /x"
    assert seen[0].url.params["device"] == "d#1"


@pytest.mark.parametrize("status_code", [400, 403, 404, 409, 500])
async def test_admit_business_rejection_uses_server_error(status_code):
    client = make_client(lambda request: httpx.Response(status_code, json={"error": "Ticket already admitted"}))

    result = await client.admit("abc-123", "key", "dev001")

    assert isinstance(result, TicketError)
    assert result.error == "Ticket already admitted"
    assert result.is_network_error is False


async def test_admit_rejection_without_error_field():
    client = make_client(lambda request: httpx.Response(404, text="<html>Not Found</html>"))

    result = await client.admit("abc-123", "key", "dev001")

    assert isinstance(result, TicketError)
    assert result.error == UNKNOWN_ERROR_MESSAGE
    assert result.is_network_error is False


async def test_admit_200_without_applicant_is_invalid_response():
    client = make_client(lambda request: httpx.Response(200, json={"ok": True}))

    result = await client.admit("abc-123", "key", "dev001")

    assert isinstance(result, TicketError)
    assert result.error == INVALID_RESPONSE_MESSAGE
    assert result.is_network_error is False


async def test_admit_times_out_and_aborts_call():
    side_effects = []

    async def slow_handler(request):
        await asyncio.sleep(1)
        side_effects.append("late")
        return httpx.Response(200, json={"applicant": APPLICANT})

    result = await make_client(slow_handler, timeout=0.05).admit("abc-123", "key", "dev001")

    assert isinstance(result, TicketError)
    assert result.error == TIMEOUT_MESSAGE
    assert result.is_network_error is True

    await asyncio.sleep(1.1)
    assert side_effects == []


async def test_admit_httpx_timeout_is_timeout_message():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = await make_client(handler).admit("abc-123", "key", "dev001")

    assert result.error == TIMEOUT_MESSAGE
    assert result.is_network_error is True


async def test_admit_connection_failure_is_no_internet():
    def handler(request):
        raise httpx.ConnectError("[Errno 101] Network is unreachable", request=request)

    result = await make_client(handler).admit("abc-123", "key", "dev001")

    assert isinstance(result, TicketError)
    assert result.error == NO_CONNECTION_MESSAGE
    assert result.is_network_error is True


async def test_admit_other_transport_error_keeps_raw_message():
    def handler(request):
        raise httpx.RemoteProtocolError("Server disconnected without sending a response.", request=request)

    result = await make_client(handler).admit("abc-123", "key", "dev001")

    assert result.error == "Server disconnected without sending a response."
    assert result.is_network_error is True


async def test_admit_never_raises_on_unexpected_errors():
    def handler(request):
        raise RuntimeError("boom")

    result = await make_client(handler).admit("abc-123", "key", "dev001")

    assert isinstance(result, TicketError)
    assert result.error == "boom"
    assert result.is_network_error is True


async def test_sell_on_door_posts_payload_with_credentials():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"applicant": {"full_name": "Walk Up", "admitted_at": None}})

    payload = OnDoorTicketPayload(
        name="Walk Up",
        email="walk@up.test",
        phone="+20 100 000 0000",
        payment_method=PaymentMethod.INSTAPAY,
        sender_username="walkup",
    )
    result = await make_client(handler).sell_on_door(payload, "key", "dev001")

    assert isinstance(result, TicketSuccess)
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/tickets/on-door"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == {
        "name": "Walk Up",
        "email": "walk@up.test",
        "phone": "+20 100 000 0000",
        "paymentMethod": "instapay",
        "senderUsername": "walkup",
        "key": "key",
        "device": "dev001",
    }


async def test_sell_on_door_cash_omits_sender_username():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(400, json={"error": "Sold out"})

    payload = OnDoorTicketPayload(name="A", email="a@b.c", phone="1", payment_method=PaymentMethod.CASH)
    result = await make_client(handler).sell_on_door(payload, "key", "dev001")

    assert "senderUsername" not in json.loads(seen[0].content)
    assert isinstance(result, TicketError)
    assert result.error == "Sold out"
    assert result.is_network_error is False


async def test_get_on_door_info():
    client = make_client(lambda request: httpx.Response(200, json={
        "prices": 350,
        "paymentMethods": [{"identifier": "telda", "to": "@tedx"}],
    }))

    info = await client.get_on_door_info()

    assert info.prices == 350
    assert info.payment_methods[0].identifier == "telda"
    assert info.payment_methods[0].to == "@tedx"


async def test_get_on_door_info_raises_on_http_error():
    client = make_client(lambda request: httpx.Response(500, json={"error": "down"}))

    with pytest.raises(httpx.HTTPStatusError):
        await client.get_on_door_info()


@pytest.mark.parametrize("admitted_at", [1760800000, None, {"date": "2026-10-18"}])
async def test_admit_success_with_any_admitted_at_format(admitted_at):
    applicant = {"full_name": "Jane", "admitted_at": admitted_at}
    client = make_client(lambda request: httpx.Response(200, json={"applicant": applicant}))

    result = await client.admit("abc-123", "key", "dev001")

    assert isinstance(result, TicketSuccess)
    assert result.applicant.model_dump() == applicant


def test_ticket_response_is_tagged_by_success():
    adapter = TypeAdapter(TicketResponse)

    ok = adapter.validate_python({"success": True, "applicant": {"full_name": "Jane", "admitted_at": None}})
    failed = adapter.validate_python({"success": False, "error": "Ticket already admitted"})

    assert isinstance(ok, TicketSuccess)
    assert isinstance(failed, TicketError)
    assert failed.is_network_error is False

    # success=False nunca se interpreta como admisión aunque traiga applicant
    with pytest.raises(ValidationError):
        adapter.validate_python({"success": False, "applicant": {"full_name": "Jane"}})
