"""Sesión del usher: credenciales en caché y orquestación de escaneo / venta en puerta"""
import logging
from typing import Optional

from services.scan_history.models.scan import ScanRecordCreate
from services.scan_history.services.history_service import ScanHistoryService
from services.ticket_admission.models.ticket import (
    OnDoorInfo,
    OnDoorTicketPayload,
    TicketSuccess,
)
from services.ticket_admission.services.admission_client import TicketAdmissionClient
from services.usher.models.usher import OnDoorForm, OnDoorOutcome, ScanResult, SetupStatus
from shared.exceptions import (
    AppKeyNotConfiguredError,
    DeviceUidUnavailableError,
    InvalidTicketInputError,
    OnDoorValidationError,
    ScanInProgressError,
    StorageError,
)
from shared.storage.credentials import (
    delete_app_key,
    get_app_key,
    get_device_uid,
    save_app_key,
)
from shared.storage.secure_store import SecureStore

logger = logging.getLogger(__name__)


def extract_ticket_uuid(qr_payload: str) -> str:
    """
    Obtener el UUID desde el contenido del QR

    Si el QR trae una URL, el UUID es el último segmento del path.
    """
    data = (qr_payload or "").strip()
    if "/" in data:
        data = data.rstrip("/").split("/")[-1]
    if not data:
        raise InvalidTicketInputError("Please enter a valid UUID")
    return data


def validate_on_door(form: OnDoorForm) -> OnDoorTicketPayload:
    '''
    Validar el formulario de venta en puerta antes de llamar a la API

    Nombre, email y teléfono obligatorios. Telda / InstaPay exigen el usuario
    remitente; en efectivo se descarta.
    '''
    name = form.name.strip()
    email = form.email.strip()
    phone = form.phone.strip()

    for field, value in (("name", name), ("email", email), ("phone", phone)):
        if not value:
            raise OnDoorValidationError(f"{field.capitalize()} is required", field=field)

    sender_username = None
    if form.payment_method.requires_sender_username:
        sender_username = (form.sender_username or "").strip()
        if not sender_username:
            label = form.payment_method.label
            raise OnDoorValidationError(
                f"{label} username is required for {label} payments",
                field="sender_username",
            )

    return OnDoorTicketPayload(
        name=name,
        email=email,
        phone=phone,
        payment_method=form.payment_method,
        sender_username=sender_username,
    )


class UsherSession:
    """
    Estado compartido por todas las pantallas del usher.

    Es el único dueño del app key y del device uid en caché, así las
    pantallas no releen el almacenamiento por su cuenta. El flag
    is_processing evita iniciar una admisión mientras otra está en vuelo
    (is_submitting hace lo mismo para la venta en puerta).
    """

    def __init__(
        self,
        secure_store: SecureStore,
        history: ScanHistoryService,
        client: TicketAdmissionClient,
    ):
        self.secure_store = secure_store
        self.history = history
        self.client = client

        self.app_key: Optional[str] = None
        self.device_uid: Optional[str] = None
        self.is_processing = False
        self.is_submitting = False
        self.last_scanned: Optional[str] = None
        self.last_result: Optional[ScanResult] = None

    @property
    def configured(self) -> bool:
        return bool(self.app_key)

    async def load(self) -> None:
        """Leer app key y device uid una sola vez al iniciar"""
        try:
            self.app_key = await get_app_key(self.secure_store)
        except StorageError as e:
            logger.error(f"No se pudo leer el app key: {e}")
            self.app_key = None

        try:
            self.device_uid = await get_device_uid(self.secure_store)
        except StorageError as e:
            logger.error(f"No se pudo obtener el device uid: {e}")
            self.device_uid = None

        logger.info(f"Sesión cargada - app key configurado: {self.configured}, dispositivo: {self.device_uid}")

    def status(self) -> SetupStatus:
        return SetupStatus(configured=self.configured, device_uid=self.device_uid)

    async def set_app_key(self, raw_key: str) -> None:
        key = (raw_key or "").strip()
        if not key:
            raise InvalidTicketInputError("Please enter an app key")

        await save_app_key(self.secure_store, key)
        self.app_key = key
        logger.info("App key guardado")

    async def clear_app_key(self) -> None:
        await delete_app_key(self.secure_store)
        self.app_key = None
        logger.info("App key eliminado")

    async def require_device_uid(self) -> str:
        if self.device_uid:
            return self.device_uid
        try:
            self.device_uid = await get_device_uid(self.secure_store)
        except StorageError as e:
            raise DeviceUidUnavailableError("Device ID not available. Please restart the app.") from e
        return self.device_uid

    # -------- Escaneo / entrada manual --------

    async def handle_scan(self, qr_payload: str) -> Optional[ScanResult]:
        '''
        Procesar un QR leído por la cámara

        Returns:
            ScanResult, o None si se ignoró (hay una admisión en curso, hay un
            resultado sin descartar o es el mismo QR que el anterior)
        '''
        if self.is_processing or self.last_result is not None:
            return None
        if qr_payload == self.last_scanned:
            return None

        self.last_scanned = qr_payload
        return await self.process_ticket(extract_ticket_uuid(qr_payload))

    async def submit_manual(self, raw_uuid: str) -> ScanResult:
        uuid = (raw_uuid or "").strip()
        if not uuid:
            raise InvalidTicketInputError("Please enter a valid UUID")
        return await self.process_ticket(uuid)

    async def process_ticket(self, uuid: str) -> ScanResult:
        """Admitir el ticket y registrar el intento en el historial"""
        if not self.app_key:
            raise AppKeyNotConfiguredError("Please set up your app key first.")
        if self.is_processing:
            raise ScanInProgressError("A ticket is already being processed")

        # El flag se marca antes del primer await
        self.is_processing = True
        try:
            device_uid = await self.require_device_uid()
            response = await self.client.admit(uuid, self.app_key, device_uid)

            if isinstance(response, TicketSuccess):
                record = ScanRecordCreate(uuid=uuid, name=response.applicant.full_name, success=True)
            else:
                record = ScanRecordCreate(uuid=uuid, name="Unknown", success=False, error=response.error)
            await self.history.append(record)

            self.last_result = ScanResult(uuid=uuid, result=response)
            return self.last_result
        finally:
            self.is_processing = False

    def dismiss_result(self) -> None:
        """Cerrar el resultado; permite volver a escanear el mismo código"""
        self.last_result = None
        self.last_scanned = None

    # -------- Venta en puerta --------

    async def get_on_door_info(self) -> OnDoorInfo:
        return await self.client.get_on_door_info()

    async def sell_on_door(self, form: OnDoorForm) -> OnDoorOutcome:
        payload = validate_on_door(form)

        if not self.app_key:
            raise AppKeyNotConfiguredError("Please set up your app key first.")
        if self.is_submitting:
            raise ScanInProgressError("A sale is already being submitted")

        self.is_submitting = True
        try:
            device_uid = await self.require_device_uid()
            response = await self.client.sell_on_door(payload, self.app_key, device_uid)
        finally:
            self.is_submitting = False

        if isinstance(response, TicketSuccess):
            return OnDoorOutcome(success=True, message=f"Ticket created for {response.applicant.full_name}")
        return OnDoorOutcome(
            success=False,
            message=response.error,
            is_network_error=response.is_network_error,
        )
