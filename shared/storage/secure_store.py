"""Almacenamiento clave-valor del dispositivo (keyring del SO o archivo JSON)"""
import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import keyring
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError

from app.core.config import settings
from shared.exceptions import StorageError

logger = logging.getLogger(__name__)


class SecureStore(ABC):
    """
    Contrato común de almacenamiento: set / get / delete asíncronos.

    get() devuelve None si la clave no existe; cualquier falla real del
    backend se levanta como StorageError.
    """

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class KeyringStore(SecureStore):
    """Backend seguro usando el llavero del sistema operativo"""

    def __init__(self, service_name: str):
        self.service_name = service_name

    async def set(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(keyring.set_password, self.service_name, key, value)
        except KeyringError as e:
            raise StorageError(f"No se pudo guardar '{key}' en keyring: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(keyring.get_password, self.service_name, key)
        except KeyringError as e:
            raise StorageError(f"No se pudo leer '{key}' desde keyring: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(keyring.delete_password, self.service_name, key)
        except PasswordDeleteError:
            # La clave no existía
            logger.debug(f"Clave '{key}' no encontrada en keyring, nada que borrar")
        except KeyringError as e:
            raise StorageError(f"No se pudo borrar '{key}' de keyring: {e}") from e


class FileStore(SecureStore):
    """
    Backend persistente sin cifrado: un archivo JSON con todas las claves.

    Se usa cuando no hay keyring disponible y también como almacenamiento
    plano para el historial de escaneos. Cada escritura reemplaza el archivo
    completo de forma atómica.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    def _read_all(self, strict: bool = True) -> Dict[str, str]:
        '''
        Leer todas las claves del archivo

        Con strict=False (antes de escribir) un archivo corrupto se trata
        como vacío, así la siguiente escritura lo reemplaza.
        '''
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise StorageError(f"No se pudo leer {self.path}: {e}") from e
        except ValueError as e:
            # JSONDecodeError / UnicodeDecodeError
            if strict:
                raise StorageError(f"No se pudo leer {self.path}: {e}") from e
            logger.warning(f"Archivo {self.path} corrupto, se sobrescribe: {e}")
            return {}
        if not isinstance(data, dict):
            if strict:
                raise StorageError(f"Contenido inválido en {self.path}")
            logger.warning(f"Contenido inválido en {self.path}, se sobrescribe")
            return {}
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"No se pudo escribir {self.path}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all, False)
            data[key] = value
            await asyncio.to_thread(self._write_all, data)

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read_all)
        value = data.get(key)
        return value if isinstance(value, str) else None

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all, False)
            if key not in data:
                return
            del data[key]
            await asyncio.to_thread(self._write_all, data)


def keyring_available() -> bool:
    """True si el SO ofrece un backend de keyring utilizable"""
    backend = keyring.get_keyring()
    if isinstance(backend, fail.Keyring):
        return False
    try:
        return backend.priority > 0
    except Exception as e:
        logger.warning(f"No se pudo evaluar el backend de keyring {backend!r}: {e}")
        return False


def create_secure_store(
    backend: Optional[str] = None,
    storage_dir: Optional[str] = None,
) -> SecureStore:
    """
    Elegir el backend de credenciales una sola vez al iniciar.

    Args:
        backend: "keyring", "file" o "auto" (por defecto settings.STORAGE_BACKEND)
        storage_dir: directorio del archivo de respaldo (por defecto settings.STORAGE_DIR)
    """
    backend = (backend or settings.STORAGE_BACKEND).lower()
    storage_dir = storage_dir or settings.STORAGE_DIR

    if backend not in ("auto", "keyring", "file"):
        raise ValueError(f"STORAGE_BACKEND inválido: {backend}. Usa auto, keyring o file")

    if backend == "keyring" or (backend == "auto" and keyring_available()):
        logger.info(f"Usando keyring del sistema ({settings.KEYRING_SERVICE_NAME}) para credenciales")
        return KeyringStore(settings.KEYRING_SERVICE_NAME)

    path = Path(storage_dir).expanduser() / "secure_store.json"
    if backend == "auto":
        logger.warning(f"Keyring no disponible, credenciales en archivo sin cifrar: {path}")
    else:
        logger.info(f"Credenciales en archivo sin cifrar (STORAGE_BACKEND=file): {path}")
    return FileStore(path)


def create_local_store(storage_dir: Optional[str] = None) -> FileStore:
    """Almacenamiento plano (no seguro) para datos como el historial"""
    storage_dir = storage_dir or settings.STORAGE_DIR
    return FileStore(Path(storage_dir).expanduser() / "local_store.json")
