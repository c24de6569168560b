from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    eta_update_interval_seconds: float = 60
    base_speed_mps: float = 13.89  # 50 km/h
    geocoder_base_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "fleet-eta/0.1"
    geocode_timeout_seconds: float = 10.0
    geocode_max_retries: int = 3
    redis_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"

    model_config = {"env_prefix": "", "case_sensitive": False}


settings = Settings()
