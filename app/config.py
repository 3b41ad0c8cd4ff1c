from pydantic_settings import BaseSettings
from pydantic import SecretStr
from typing import List, Optional
import os
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    app_name: str = "Timed Quiz API"
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: List[str] = ["*"]

    # Database Configuration
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./quizzes.db")

    # Supabase Configuration (identity provider)
    supabase_url: Optional[str] = os.getenv("SUPABASE_URL")
    supabase_anon_key: SecretStr = os.getenv("SUPABASE_ANON_KEY", "")
    supabase_service_role_key: SecretStr = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # Ephemeral session store; in-process memory when unset
    redis_url: Optional[str] = os.getenv("REDIS_URL")

    # Upstream trivia source for instant trials
    trivia_api_url: str = os.getenv("TRIVIA_API_URL", "https://opentdb.com/api.php")
    trivia_timeout_seconds: float = float(os.getenv("TRIVIA_TIMEOUT_SECONDS", 10))

    # Publication
    access_code_length: int = int(os.getenv("ACCESS_CODE_LENGTH", 6))

    # Leaderboard
    leaderboard_size: int = int(os.getenv("LEADERBOARD_SIZE", 10))
    leaderboard_max_retries: int = int(os.getenv("LEADERBOARD_MAX_RETRIES", 5))

    # Instant trial
    trial_default_questions: int = int(os.getenv("TRIAL_DEFAULT_QUESTIONS", 5))
    trial_max_questions: int = int(os.getenv("TRIAL_MAX_QUESTIONS", 50))
    trial_anonymous_ttl: int = int(os.getenv("TRIAL_ANONYMOUS_TTL", 600))  # seconds
    trial_max_ttl: int = int(os.getenv("TRIAL_MAX_TTL", 3600))  # seconds
    trial_single_use: bool = os.getenv("TRIAL_SINGLE_USE", "false").lower() == "true"

    # Realtime broadcaster
    heartbeat_interval: int = int(os.getenv("HEARTBEAT_INTERVAL", 30))  # seconds
    cleanup_interval: int = int(os.getenv("CLEANUP_INTERVAL", 300))  # seconds
    max_connections_per_ip: int = int(os.getenv("MAX_CONNECTIONS_PER_IP", 100))
    rate_limit_window: int = int(os.getenv("RATE_LIMIT_WINDOW", 60))  # seconds
    max_requests_per_window: int = int(os.getenv("MAX_REQUESTS_PER_WINDOW", 30))

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

settings = Settings()
