"""Rutas de venta en puerta"""
import asyncio
import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, status

from services.ticket_admission.models.ticket import OnDoorInfo
from services.usher.dependencies import get_configured_session, get_session
from services.usher.models.usher import OnDoorForm, OnDoorOutcome
from services.usher.services.session import UsherSession
from shared.exceptions import (
    DeviceUidUnavailableError,
    OnDoorValidationError,
    ScanInProgressError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/info", response_model=OnDoorInfo)
async def get_on_door_info(session: UsherSession = Depends(get_session)):
    """Precio y métodos de pago vigentes"""
    try:
        return await session.get_on_door_info()
    except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as e:
        logger.error(f"No se pudo obtener info de venta en puerta: {e!r}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not load on-door ticket info",
        )


@router.post("", response_model=OnDoorOutcome)
async def sell_on_door(
    form: OnDoorForm,
    session: UsherSession = Depends(get_configured_session)
):
    '''
    Registrar una venta en puerta

    El usher ya confirmó haber visto la transferencia o recibido el efectivo.
    '''
    try:
        return await session.sell_on_door(form)
    except OnDoorValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "field": e.field},
        )
    except ScanInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except DeviceUidUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
