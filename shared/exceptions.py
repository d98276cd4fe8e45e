"""Excepciones del dominio del usher"""


class UsherError(Exception):
    """Excepción base de la app de usher"""
    pass


class StorageError(UsherError):
    """Falla leyendo o escribiendo el almacenamiento local"""
    pass


class AppKeyNotConfiguredError(UsherError):
    """No hay app key guardada en el dispositivo"""
    pass


class DeviceUidUnavailableError(UsherError):
    """No se pudo obtener el identificador del dispositivo"""
    pass


class ScanInProgressError(UsherError):
    """Ya hay una admisión o venta en curso para esta sesión"""
    pass


class InvalidTicketInputError(UsherError):
    """Entrada vacía o inválida (UUID manual, payload QR, app key)"""
    pass


class OnDoorValidationError(UsherError):
    """El formulario de venta en puerta no cumple los requisitos"""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field
