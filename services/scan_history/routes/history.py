"""Rutas del historial de escaneos"""
from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from app.core.config import settings
from services.scan_history.models.scan import ScanRecord, TodayStats
from services.usher.dependencies import get_session
from services.usher.services.session import UsherSession


router = APIRouter()


@router.get("", response_model=List[ScanRecord])
async def list_history(
    limit: Optional[int] = Query(None, ge=1),
    session: UsherSession = Depends(get_session)
):
    '''Últimos escaneos, más nuevo primero (por defecto los que muestra la pantalla)'''
    return await session.history.list(limit=limit or settings.HISTORY_VIEW_LIMIT)


@router.get("/today", response_model=TodayStats)
async def today_stats(session: UsherSession = Depends(get_session)):
    return await session.history.today_stats()


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_history(session: UsherSession = Depends(get_session)):
    await session.history.clear()
