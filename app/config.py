from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Supabase
    supabase_url: str
    supabase_service_key: str
    supabase_anon_key: str

    # Storage
    proposals_bucket: str = "proposals"
    pdf_url_expires_seconds: int = 3600

    # Pricing defaults
    default_tax_rate: float = 0.0
    currency: str = "USD"

    # App
    app_base_url: str = "http://localhost:3000"
    backend_url: str = "http://localhost:8000"
    company_name: str = "BidBuilder"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache()
def get_settings() -> Settings:
    return Settings()
