# WORKFLOW: Core configuration management for the GAR feed ETL service.
# Used by: All modules throughout the application
# Configuration includes:
# - Feed download settings (URL, retries, timeouts)
# - Working directories (downloads, extracted XML, XSD schemas, CSV output)
# - Delimited output format (delimiter, quote, encoding, line terminator)
# - Conversion tuning (progress cadence, worker count)
# - API settings (prefix, CORS, host/port)
# - Logging configuration
#
# Loaded at startup and used by all services for consistent configuration.

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Feed download
    fias_url: str = "https://fias-file.nalog.ru/downloads/2025.01.10/gar_delta_xml.zip"
    download_path: str = "Downloads"
    archive_name: str = "gar_delta_xml.zip"
    max_retries: int = 5
    retry_delay_ms: int = 2000
    download_timeout_seconds: float = 600.0
    user_agent: str = "gar-feed-etl/1.0"

    # Working directories
    schema_path: str = "Schemas"
    extract_path: str = "Downloads/gar_delta_xml"
    csv_path: str = "Downloads/csv"

    # Delimited output
    csv_delimiter: str = ";"
    csv_quotechar: str = '"'
    csv_encoding: str = "utf-8-sig"
    csv_line_terminator: str = "\r\n"

    # Conversion
    progress_log_interval: int = 10000
    max_workers: int = 1

    # API
    api_v1_prefix: str = "/api/v1"
    project_name: str = "GAR Feed ETL API"
    version: str = "1.0.0"

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging
    log_level: str = "INFO"

    # CORS
    allowed_origins: list[str] = ["*"]
    allowed_methods: list[str] = ["*"]
    allowed_headers: list[str] = ["*"]

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8001

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
    )


settings = Settings()
