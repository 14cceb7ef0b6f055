"""
Configuration settings for the Document Value Extraction Planning Engine
"""
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, ConfigDict

from .rule_table import DEFAULT_RULE_TABLE_VERSION


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017", env="MONGODB_URL")
    mongodb_db_name: str = Field(default="subsidy_portal", env="MONGODB_DB_NAME")

    # Collections shared with the forms subsystem
    user_data_collection: str = Field(default="user_data", env="USER_DATA_COLLECTION")
    financials_collection: str = Field(default="user_financials", env="FINANCIALS_COLLECTION")
    applications_collection: str = Field(default="applications", env="APPLICATIONS_COLLECTION")

    # Application Configuration
    app_name: str = Field(default="Document Value Extraction Planner", env="APP_NAME")
    app_version: str = Field(default="1.0.0", env="APP_VERSION")
    debug: bool = Field(default=False, env="DEBUG")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # API Configuration
    api_prefix: str = Field(default="/api/v1", env="API_PREFIX")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:8080",
        env="CORS_ORIGINS"
    )

    # Rule table version expected at startup
    rule_table_version: str = Field(default=DEFAULT_RULE_TABLE_VERSION, env="RULE_TABLE_VERSION")

    def get_cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list"""
        if ',' in self.cors_origins:
            return [origin.strip() for origin in self.cors_origins.split(',')]
        return [self.cors_origins.strip()]

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )


# Create global settings instance
settings = Settings()
