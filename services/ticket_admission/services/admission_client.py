"""Cliente HTTP de la API de admisión y venta en puerta - Async con httpx"""
import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from app.core.config import settings
from services.ticket_admission.models.ticket import (
    Applicant,
    OnDoorInfo,
    OnDoorTicketPayload,
    TicketError,
    TicketResponse,
    TicketSuccess,
)

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timed out. Please check your connection and try again."
NO_CONNECTION_MESSAGE = "No internet connection. Please check your network and try again."
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"
INVALID_RESPONSE_MESSAGE = "Invalid response from server"

# Frases típicas de fallas de conectividad (DNS, red caída)
CONNECTIVITY_PHRASES = (
    "network request failed",
    "network is unreachable",
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
)


def classify_transport_error(error: BaseException) -> TicketError:
    """Convertir una excepción de transporte en TicketError (siempre is_network_error=True)"""
    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return TicketError(error=TIMEOUT_MESSAGE, is_network_error=True)

    message = str(error)
    lowered = message.lower()
    if isinstance(error, httpx.ConnectError) or any(p in lowered for p in CONNECTIVITY_PHRASES):
        return TicketError(error=NO_CONNECTION_MESSAGE, is_network_error=True)

    return TicketError(error=message or type(error).__name__, is_network_error=True)


class TicketAdmissionClient:
    """
    Cliente para la API de tickets del evento.

    admit() y sell_on_door() nunca levantan excepciones: todo termina en
    TicketSuccess (admitido / vendido), TicketError de negocio (rechazo del
    servidor) o TicketError con is_network_error=True (timeout, sin red, etc).
    No hay reintentos automáticos; reintentar es decisión del usher.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.TICKETS_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self.user_agent = user_agent or settings.USER_AGENT
        # Permite inyectar un transporte (tests, proxies)
        self.transport = transport

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def build_admit_url(self, uuid: str, app_key: str, device_uid: str) -> str:
        return (
            f"{self.base_url}/admit/{quote(uuid, safe='')}"
            f"?key={quote(app_key, safe='')}&device={quote(device_uid, safe='')}"
        )

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.request(method, url, **kwargs)

    async def _send(self, method: str, url: str, **kwargs) -> TicketResponse:
        try:
            # wait_for cancela la llamada en vuelo si se pasa del límite total
            response = await asyncio.wait_for(
                self._request(method, url, **kwargs),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning(f"Timeout ({self.timeout}s) en {method} {url.split('?')[0]}: {e!r}")
            return classify_transport_error(e)
        except httpx.RequestError as e:
            logger.warning(f"Error de transporte en {method} {url.split('?')[0]}: {e}")
            return classify_transport_error(e)
        except Exception as e:
            logger.error(f"Error inesperado en {method} {url.split('?')[0]}: {e}")
            return classify_transport_error(e)

        logger.debug(f"Respuesta HTTP {response.status_code} para {method} {url.split('?')[0]}")
        return self._parse_response(response)

    @staticmethod
    def _parse_response(response: httpx.Response) -> TicketResponse:
        data: Any
        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code == 200:
            applicant = data.get("applicant") if isinstance(data, dict) else None
            if isinstance(applicant, dict):
                try:
                    return TicketSuccess(applicant=Applicant.model_validate(applicant))
                except ValidationError as e:
                    logger.error(f"Applicant inválido en respuesta 200: {e}")
            else:
                logger.error(f"Respuesta 200 sin applicant: {response.text[:200]}")
            return TicketError(error=INVALID_RESPONSE_MESSAGE)

        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, str) or not error:
            error = UNKNOWN_ERROR_MESSAGE

        logger.info(f"Servidor rechazó la solicitud - Status: {response.status_code}, Mensaje: {error}")
        return TicketError(error=error)

    async def admit(self, uuid: str, app_key: str, device_uid: str) -> TicketResponse:
        """
        Admitir un ticket por UUID

        Args:
            uuid: Identificador del ticket (segmento de path)
            app_key: Credencial del evento
            device_uid: Identificador corto de este dispositivo

        Returns:
            TicketSuccess con el applicant o TicketError
        """
        url = self.build_admit_url(uuid, app_key, device_uid)
        logger.info(f"Admitiendo ticket {uuid} desde dispositivo {device_uid}")
        return await self._send("GET", url, headers=self._headers())

    async def sell_on_door(
        self,
        payload: OnDoorTicketPayload,
        app_key: str,
        device_uid: str,
    ) -> TicketResponse:
        """
        Registrar una venta en puerta

        El método de pago ya viene validado por la capa que llama
        (usuario remitente obligatorio salvo efectivo); acá no se re-valida.
        """
        url = f"{self.base_url}/on-door"
        logger.info(f"Venta en puerta para {payload.email} ({payload.payment_method.value})")
        return await self._send(
            "POST",
            url,
            json=payload.to_request_body(app_key, device_uid),
            headers=self._headers(json_body=True),
        )

    async def get_on_door_info(self) -> OnDoorInfo:
        """
        Obtener precio y métodos de pago vigentes para la venta en puerta

        A diferencia de admit/sell_on_door, levanta excepción si falla
        (httpx.HTTPError, asyncio.TimeoutError o ValueError por respuesta inválida).
        """
        url = f"{self.base_url}/on-door/info"
        response = await asyncio.wait_for(
            self._request("GET", url, headers=self._headers()),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return OnDoorInfo.model_validate(response.json())
