"""Rutas de configuración del app key"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from services.usher.dependencies import get_session
from services.usher.models.usher import AppKeyRequest, SetupStatus
from services.usher.services.session import UsherSession
from shared.exceptions import InvalidTicketInputError, StorageError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=SetupStatus)
async def get_setup_status(session: UsherSession = Depends(get_session)):
    """Estado del app key y el identificador de este dispositivo"""
    return session.status()


@router.put("/app-key", response_model=SetupStatus)
async def save_app_key(
    request: AppKeyRequest,
    session: UsherSession = Depends(get_session)
):
    try:
        await session.set_app_key(request.app_key)
    except InvalidTicketInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageError as e:
        logger.error(f"Error guardando app key: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save app key",
        )
    return session.status()


@router.delete("/app-key", response_model=SetupStatus)
async def clear_app_key(session: UsherSession = Depends(get_session)):
    try:
        await session.clear_app_key()
    except StorageError as e:
        logger.error(f"Error eliminando app key: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to clear app key",
        )
    return session.status()
