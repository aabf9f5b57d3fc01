"""
Bible Marathon Application Configuration
"""
import os
from typing import List
from pydantic import validator
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""
    APP_NAME: str = "Bible Marathon"
    LOG_LEVEL: str = "INFO"

    # db paths
    SQLITE_DB_FILE: str = "data/marathon.db"

    # realtime tracker windows
    ACTIVE_WINDOW_MINUTES: int = 60
    PACE_WINDOW_MINUTES: int = 60

    # reader defaults
    DEFAULT_AVATAR_COLOR: str = "#6366f1"
    DEFAULT_READING_SPEED_WPM: int = 200

    # marathon defaults
    DEFAULT_MARATHON_NAME: str = "Maratón Bíblico"
    DEFAULT_MARATHON_DESCRIPTION: str = "Maratón de lectura bíblica"
    DEFAULT_MARATHON_HOURS: int = 72

    SEARCH_RESULTS_LIMIT: int = 50
    MIN_SEARCH_TERM_LENGTH: int = 3

    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        """Pydantic config"""
        env_file = ".env"
        env_file_encoding = "utf-8"

    @validator("LOG_LEVEL")
    def normalise_log_level(cls, level):
        """Accept lower case level names"""
        return level.upper()

    @validator("ACTIVE_WINDOW_MINUTES", "PACE_WINDOW_MINUTES")
    def positive_window(cls, minutes):
        """Windows must cover some time"""
        if minutes <= 0:
            raise ValueError("window must be a positive number of minutes")
        return minutes

settings = Settings()

# db dir exists
db_dir = os.path.dirname(settings.SQLITE_DB_FILE)
if db_dir:
    os.makedirs(db_dir, exist_ok=True)
