"""App key e identificador de dispositivo guardados en el SecureStore"""
import logging
import secrets
import string
from typing import Optional

from shared.storage.secure_store import SecureStore

logger = logging.getLogger(__name__)

APP_KEY_STORAGE_KEY = "tedx_app_key"
DEVICE_UID_STORAGE_KEY = "tedx_device_uid"
DEVICE_UID_LENGTH = 6
DEVICE_UID_ALPHABET = string.ascii_lowercase + string.digits


async def save_app_key(store: SecureStore, key: str) -> None:
    await store.set(APP_KEY_STORAGE_KEY, key)


async def get_app_key(store: SecureStore) -> Optional[str]:
    return await store.get(APP_KEY_STORAGE_KEY)


async def delete_app_key(store: SecureStore) -> None:
    await store.delete(APP_KEY_STORAGE_KEY)


def generate_device_uid() -> str:
    """Identificador corto aleatorio, ej: 'k3x9a0'"""
    return "".join(secrets.choice(DEVICE_UID_ALPHABET) for _ in range(DEVICE_UID_LENGTH))


async def get_device_uid(store: SecureStore) -> str:
    '''
    Obtener el identificador del dispositivo, creándolo la primera vez.

    Lee y, si no existe, genera y guarda. Dos primeros arranques casi
    simultáneos pueden generar valores distintos y gana la última escritura;
    no se protege contra eso (el servidor usa el valor solo como señal).
    '''
    uid = await store.get(DEVICE_UID_STORAGE_KEY)
    if uid:
        return uid

    uid = generate_device_uid()
    await store.set(DEVICE_UID_STORAGE_KEY, uid)
    logger.info(f"Nuevo identificador de dispositivo generado: {uid}")
    return uid
