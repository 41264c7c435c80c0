"""
Drill-down engine configuration
Loads settings from environment variables (prefix DRILLDOWN_)
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_prefix="DRILLDOWN_", env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "sqlite:///./drilldown.db"
    echo_sql: bool = False

    # Table holding the JSON field schema of every drill-down table
    schema_table: str = "drilldown_tables"

    # Full-text search over page / file contents
    search_page_text: bool = True
    search_file_text: bool = True

    # Logging
    log_level: str = "info"


# Global settings instance
settings = Settings()
