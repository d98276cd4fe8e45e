from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # API de admisión (servidor del evento)
    TICKETS_API_BASE_URL: str = "https://www.tedxbedayia.com/api/tickets"
    REQUEST_TIMEOUT_SECONDS: float = 15.0
    USER_AGENT: str = "TEDxBedayia-Usher-App/1.0"

    # Almacenamiento local
    STORAGE_BACKEND: str = "auto"  # auto, keyring o file
    STORAGE_DIR: str = "~/.crodify-usher"
    KEYRING_SERVICE_NAME: str = "crodify-usher"

    # Historial de escaneos
    SCAN_HISTORY_MAX_ITEMS: int = 50
    HISTORY_VIEW_LIMIT: int = 20  # Lo que muestra la pantalla de historial

    LOG_LEVEL: str = "INFO"
    APP_ENV: str = "development"
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra en .env que no están en el modelo

settings = Settings()
