"""Servicio de historial de escaneos (log local acotado, lo más nuevo primero)"""
import logging
import secrets
import string
import time
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import TypeAdapter, ValidationError

from app.core.config import settings
from services.scan_history.models.scan import ScanRecord, ScanRecordCreate, TodayStats
from shared.exceptions import StorageError
from shared.storage.secure_store import SecureStore

logger = logging.getLogger(__name__)

SCAN_HISTORY_KEY = "tedx_scan_history"
_ID_ALPHABET = string.digits + string.ascii_lowercase
_records_adapter = TypeAdapter(List[ScanRecord])


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_record_id(now_ms: int) -> str:
    '''Id local "<ms>-<9 chars base36>"; no es criptográficamente único'''
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{now_ms}-{suffix}"


def local_midnight_ms(now: Optional[datetime] = None) -> int:
    """Epoch ms de la medianoche de hoy en hora local del dispositivo"""
    now = now or datetime.now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


class ScanHistoryService:
    """
    Historial de intentos de admisión.

    Todo el historial se guarda como un único blob JSON (read-modify-write).
    Es telemetría best-effort: los errores de almacenamiento se registran en
    el log y nunca se propagan. No está protegido contra escrituras
    concurrentes; la sesión del usher serializa las llamadas.
    """

    def __init__(
        self,
        store: SecureStore,
        max_items: Optional[int] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self.store = store
        self.max_items = max_items or settings.SCAN_HISTORY_MAX_ITEMS
        self.clock = clock

    async def list(self, limit: Optional[int] = None) -> List[ScanRecord]:
        """Registros guardados, más nuevo primero; [] si no hay o no se pueden leer"""
        try:
            blob = await self.store.get(SCAN_HISTORY_KEY)
        except StorageError as e:
            logger.error(f"No se pudo leer el historial de escaneos: {e}")
            return []

        if not blob:
            return []

        try:
            records = _records_adapter.validate_json(blob)
        except ValidationError as e:
            # Blob corrupto = historial vacío
            logger.warning(f"Historial de escaneos corrupto, se ignora: {e.error_count()} errores")
            return []

        records = records[: self.max_items]
        if limit is not None:
            records = records[:limit]
        return records

    async def append(self, record: ScanRecordCreate) -> Optional[ScanRecord]:
        """
        Agregar un intento al inicio del historial

        Returns:
            El registro creado, o None si no se pudo persistir
        """
        now = self.clock()
        new_record = ScanRecord(
            **record.model_dump(),
            id=generate_record_id(now),
            timestamp=now,
        )

        history = await self.list()
        updated = [new_record, *history][: self.max_items]

        try:
            await self.store.set(
                SCAN_HISTORY_KEY,
                _records_adapter.dump_json(updated).decode("utf-8"),
            )
        except StorageError as e:
            logger.error(f"No se pudo guardar el registro de escaneo {record.uuid}: {e}")
            return None

        return new_record

    async def clear(self) -> None:
        try:
            await self.store.delete(SCAN_HISTORY_KEY)
        except StorageError as e:
            logger.error(f"No se pudo limpiar el historial de escaneos: {e}")

    async def today_stats(self, now: Optional[datetime] = None) -> TodayStats:
        """Totales de hoy (desde medianoche local) separados por admitidos/rechazados"""
        today_start = local_midnight_ms(now)
        today_scans = [scan for scan in await self.list() if scan.timestamp >= today_start]
        admitted = sum(1 for scan in today_scans if scan.success)

        return TodayStats(
            total=len(today_scans),
            admitted=admitted,
            rejected=len(today_scans) - admitted,
        )
