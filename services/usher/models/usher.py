"""Modelos Pydantic de la sesión del usher (setup, escaneo, venta en puerta)"""
from pydantic import BaseModel
from typing import Optional

from services.ticket_admission.models.ticket import PaymentMethod, TicketResponse


class AppKeyRequest(BaseModel):
    app_key: str


class SetupStatus(BaseModel):
    configured: bool
    device_uid: Optional[str] = None


class ScanRequest(BaseModel):
    data: str  # Texto decodificado del QR (UUID o URL que termina en el UUID)


class ManualEntryRequest(BaseModel):
    uuid: str


class ScanResult(BaseModel):
    uuid: str
    result: TicketResponse


class OnDoorForm(BaseModel):
    """Formulario de venta en puerta tal como lo llena el usher"""
    name: str = ""
    email: str = ""
    phone: str = ""
    payment_method: PaymentMethod = PaymentMethod.CASH
    sender_username: Optional[str] = None


class OnDoorOutcome(BaseModel):
    success: bool
    message: str
    is_network_error: bool = False
