"""Rutas de escaneo QR y entrada manual"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from services.usher.dependencies import get_configured_session
from services.usher.models.usher import ManualEntryRequest, ScanRequest, ScanResult
from services.usher.services.session import UsherSession
from shared.exceptions import (
    DeviceUidUnavailableError,
    InvalidTicketInputError,
    ScanInProgressError,
    UsherError,
)


router = APIRouter()


def _raise_http(error: UsherError):
    if isinstance(error, InvalidTicketInputError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, ScanInProgressError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, DeviceUidUnavailableError):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
    raise HTTPException(status_code=status.HTTP_412_PRECONDITION_FAILED, detail=str(error))


@router.post("", response_model=Optional[ScanResult])
async def scan_qr(
    request: ScanRequest,
    session: UsherSession = Depends(get_configured_session)
):
    '''
    Procesar el contenido de un QR

    Devuelve 204 si el escaneo se ignoró (admisión en curso, resultado
    pendiente de descartar o el mismo QR que el anterior)
    '''
    try:
        result = await session.handle_scan(request.data)
    except UsherError as e:
        _raise_http(e)

    if result is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return result


@router.post("/manual", response_model=ScanResult)
async def scan_manual(
    request: ManualEntryRequest,
    session: UsherSession = Depends(get_configured_session)
):
    """Admitir un ticket ingresado a mano"""
    try:
        return await session.submit_manual(request.uuid)
    except UsherError as e:
        _raise_http(e)


@router.post("/dismiss", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_result(session: UsherSession = Depends(get_configured_session)):
    session.dismiss_result()
