import os
import tempfile
from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Remote job-portal API
    API_BASE_URL: str = "http://localhost:8080"
    API_ACCESS_TOKEN: str = ""
    REQUEST_TIMEOUT: float = 30.0

    # File paths
    BASE_DIR: str = str(Path(__file__).resolve().parent.parent)
    CACHE_DIR: str = ""

    # Chat
    MESSAGE_PAGE_SIZE: int = 100
    CHAT_LIST_PAGE_SIZE: int = 50

    # Push notifications
    PUSH_TOKEN_RETRY_DELAY: float = 2.0
    DEVICE_PLATFORM: str = "android"  # android, ios
    REGISTER_DEVICE_ON_STARTUP: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS
    FRONTEND_URL: str = "http://localhost:8081"

    class Config:
        env_file = os.path.join(
            os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
            "..",
            ".env",
        )
        env_file_encoding = "utf-8"

    def model_post_init(self, __context):
        if not self.CACHE_DIR:
            self.CACHE_DIR = os.path.join(tempfile.gettempdir(), "jobchat-cache")
        os.makedirs(self.CACHE_DIR, exist_ok=True)


settings = Settings()
