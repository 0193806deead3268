from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    BACKEND_BASE_URL: str = "http://localhost:8080/yuksi"
    BACKEND_TOKEN: Optional[str] = None
    BACKEND_TIMEOUT: float = 10.0

    ROUTING_BASE_URL: str = "https://router.project-osrm.org"
    ROUTING_PROFILE: str = "driving"
    ROUTING_TIMEOUT: float = 8.0

    REDIS_URL: str = "redis://localhost:6379/0"

    GEO_CACHE_TTL: int = 3600          # 1 hour
    COMMISSION_CACHE_TTL: int = 300    # 5 minutes
    QUOTE_CACHE_TTL: int = 60          # 60 seconds
    IDEMPOTENCY_TTL: int = 300         # 5 minutes

    GEO_STATES_LIMIT: int = 500
    GEO_CITIES_LIMIT: int = 1000

    API_TITLE: str = "Shipment Pricing Service"
    API_DESCRIPTION: str = "Prices dealer shipments from region rates, routing distance, extras and commission"
    API_VERSION: str = "1.0.0"

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
