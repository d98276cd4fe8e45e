"""Dependencies de FastAPI para la sesión del usher"""
from fastapi import HTTPException, Request, status

from services.usher.services.session import UsherSession


async def get_session(request: Request) -> UsherSession:
    '''Obtener la sesión creada en el lifespan de la app'''
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session not initialized",
        )
    return session


async def get_configured_session(request: Request) -> UsherSession:
    '''Sesión con app key configurado; si falta, el front debe ir a /setup'''
    session = await get_session(request)
    if not session.configured:
        raise HTTPException(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            detail="Please set up your app key first.",
        )
    return session
