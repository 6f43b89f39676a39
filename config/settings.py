import os
from pathlib import Path
from dotenv import load_dotenv

# Load biến môi trường trong .env
BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env")

class Settings:
    DUOMI_API_URL: str = os.getenv("DUOMI_API_URL", "https://duomiapi.com")
    DUOMI_API_KEY: str | None = os.getenv("DUOMI_API_KEY")

    DEEPSEEK_API_URL: str = os.getenv("DEEPSEEK_API_URL", "https://api.deepseek.com")
    DEEPSEEK_MODEL: str = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")
    DEEPSEEK_API_KEY: str | None = os.getenv("DEEPSEEK_API_KEY")

    SUPABASE_URL: str | None = os.getenv("SUPABASE_URL")
    SUPABASE_SERVICE_ROLE_KEY: str | None = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    STORAGE_BUCKET: str = os.getenv("STORAGE_BUCKET", "banana-ai-images")

    POLL_INTERVAL: float = float(os.getenv("POLL_INTERVAL", "2.0"))  # seconds
    MAX_POLL_ATTEMPTS: int = int(os.getenv("MAX_POLL_ATTEMPTS", "30"))
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "60"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
