from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Database (MongoDB) ---
    DATABASE_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "rental"

    # --- HTTP ---
    API_PREFIX: str = "/api"
    CORS_ORIGINS: list[str] = ["*"]
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # --- Listings ---
    DEFAULT_IMAGE_URL: str = "https://via.placeholder.com/400x300"
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10MB

    # --- Accounts ---
    BCRYPT_ROUNDS: int = 10

    # --- Client helpers ---
    API_BASE_URL: str = "http://localhost:8000/api"


settings = Settings()
