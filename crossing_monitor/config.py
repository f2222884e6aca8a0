from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    tomtom_key: str = ""
    tomtom_base_url: str = "https://api.tomtom.com"
    weather_base_url: str = "https://api.open-meteo.com"
    interval_min: int = 5
    host: str = "0.0.0.0"
    port: int = 3000
    download_user: str = "admin"
    download_pass: str = ""
    log_dir: str = "."
    crossings_file: str | None = None
    history_limit: int = 1000
    request_timeout_seconds: float = 30.0
    # Weather applies to every crossing, sampled near central Nicosia
    weather_lat: float = 35.185
    weather_lon: float = 33.382
    weather_timezone: str = "Asia/Nicosia"
    weather_ttl_seconds: int = 600
    severity_low_max: int = 2
    severity_moderate_max: int = 10
    log_level: str = "INFO"

    model_config = {"env_prefix": "", "case_sensitive": False}


settings = Settings()
