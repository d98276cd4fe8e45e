"""Modelos Pydantic para el historial de escaneos"""
from pydantic import BaseModel
from typing import Optional


class ScanRecordCreate(BaseModel):
    uuid: str
    name: str
    success: bool
    error: Optional[str] = None


class ScanRecord(ScanRecordCreate):
    id: str  # "<epoch ms>-<sufijo aleatorio>", único best-effort
    timestamp: int  # epoch en milisegundos


class TodayStats(BaseModel):
    total: int = 0
    admitted: int = 0
    rejected: int = 0
