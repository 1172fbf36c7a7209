import sys

from pydantic_settings import BaseSettings

_ENV_FILE = None if "pytest" in sys.modules else ".env"


class Settings(BaseSettings):
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    COSMOS_DB_ENDPOINT: str = ""
    COSMOS_DB_KEY: str = ""
    COSMOS_DB_DATABASE: str = "activity-log"

    # Preferred container for new employees; probed before the built-in names.
    EMPLOYEE_COLLECTION: str = ""

    AZURE_AD_TENANT_ID: str = ""
    AZURE_AD_CLIENT_ID: str = ""
    AZURE_AD_CLIENT_SECRET: str = ""

    GRAPH_ENDPOINT: str = "https://graph.microsoft.com/v1.0"
    GRAPH_EXTENSION_APP_ID: str = ""
    GRAPH_INCLUDE_SIGN_IN_ACTIVITY: bool = False

    CORS_ORIGINS: list[str] = ["http://localhost:3100"]

    model_config = {
        "env_file": _ENV_FILE,
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }


settings = Settings()
