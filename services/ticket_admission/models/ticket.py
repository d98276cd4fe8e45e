"""Modelos Pydantic para admisión y venta en puerta"""
from enum import Enum
from pydantic import BaseModel, Discriminator, Field, Tag
from typing import Annotated, Optional, List, Dict, Any, Literal, Union


class Applicant(BaseModel):
    """Asistente devuelto por el servidor; los campos extra se conservan tal cual"""
    full_name: str
    admitted_at: Optional[Any] = None  # El formato lo define el servidor (ISO, epoch, ...)

    class Config:
        extra = "allow"


class TicketSuccess(BaseModel):
    success: Literal[True] = True
    applicant: Applicant


class TicketError(BaseModel):
    success: Literal[False] = False
    error: str
    is_network_error: bool = False  # True = timeout / sin conexión / falla de transporte


def _response_tag(value: Any) -> str:
    success = value.get("success") if isinstance(value, dict) else getattr(value, "success", None)
    return "success" if success is True else "error"


# Union etiquetada por `success`: siempre verificar el tipo antes de usar applicant
TicketResponse = Annotated[
    Union[
        Annotated[TicketSuccess, Tag("success")],
        Annotated[TicketError, Tag("error")],
    ],
    Discriminator(_response_tag),
]


class PaymentMethod(str, Enum):
    TELDA = "telda"
    INSTAPAY = "instapay"
    CASH = "cash"

    @property
    def requires_sender_username(self) -> bool:
        return self is not PaymentMethod.CASH

    @property
    def label(self) -> str:
        return {"telda": "Telda", "instapay": "InstaPay", "cash": "Cash"}[self.value]


class OnDoorTicketPayload(BaseModel):
    """Datos de una venta en puerta; solo vive durante el request"""
    name: str
    email: str
    phone: str
    payment_method: PaymentMethod
    sender_username: Optional[str] = None

    def to_request_body(self, app_key: str, device_uid: str) -> Dict[str, Any]:
        '''Body JSON con los nombres de campo que espera el servidor'''
        body: Dict[str, Any] = {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "paymentMethod": self.payment_method.value,
            "key": app_key,
            "device": device_uid,
        }
        if self.sender_username is not None:
            body["senderUsername"] = self.sender_username
        return body


class PaymentMethodInfo(BaseModel):
    identifier: str
    to: str  # Cuenta/usuario destino de la transferencia


class OnDoorInfo(BaseModel):
    """Precio vigente y métodos de pago para la venta en puerta"""
    prices: float
    payment_methods: List[PaymentMethodInfo] = Field(default_factory=list, alias="paymentMethods")

    class Config:
        populate_by_name = True
