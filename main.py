"""Servicio local del usher - Punto de entrada de la aplicación"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from contextlib import asynccontextmanager

from app.core.config import settings
from services.scan_history.services.history_service import ScanHistoryService
from services.ticket_admission.services.admission_client import TicketAdmissionClient
from services.usher.services.session import UsherSession
from shared.storage.secure_store import create_local_store, create_secure_store

# Configurar logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_session() -> UsherSession:
    """Armar la sesión con el backend de almacenamiento elegido al iniciar"""
    secure_store = create_secure_store()
    history = ScanHistoryService(create_local_store())
    client = TicketAdmissionClient()
    return UsherSession(secure_store, history, client)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events de la aplicación"""
    # Startup
    logger.info("Iniciando servicio del usher...")
    session = build_session()
    await session.load()
    app.state.session = session
    logger.info(f"Servicio iniciado - API de tickets: {settings.TICKETS_API_BASE_URL}")
    yield
    # Shutdown
    logger.info("Servicio del usher detenido")


# Crear aplicación FastAPI
app = FastAPI(
    title="Crodify Usher",
    description="Check-in de eventos: escaneo de QR, admisión de tickets y venta en puerta",
    version="1.0.0",
    lifespan=lifespan
)

# En desarrollo, permitir todos los orígenes para facilitar testing
if settings.APP_ENV == "development":
    logger.info("Modo desarrollo: CORS configurado para permitir todos los orígenes")
    allow_origins = ["*"]
    allow_credentials = False  # No se puede usar credentials con allow_origins=["*"]
else:
    allow_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
    allow_credentials = True
    logger.info(f"CORS origins configurados: {allow_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=allow_credentials,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Incluir routers de cada servicio
from services.usher.routes.setup import router as setup_router
from services.usher.routes.scan import router as scan_router
from services.usher.routes.on_door import router as on_door_router
from services.scan_history.routes.history import router as history_router

app.include_router(setup_router, prefix="/api/v1/setup", tags=["setup"])
app.include_router(scan_router, prefix="/api/v1/scan", tags=["scan"])
app.include_router(on_door_router, prefix="/api/v1/on-door", tags=["on-door"])
app.include_router(history_router, prefix="/api/v1/history", tags=["history"])


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "ok", "service": "crodify-usher"}


if __name__ == "__main__":
    import os
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()
    uvicorn.run(
        "main:app",
        host=os.getenv("APP_HOST", "127.0.0.1"),
        port=int(os.getenv("APP_PORT", "8000")),
        reload=os.getenv("APP_DEBUG", "False").lower() == "true"
    )
