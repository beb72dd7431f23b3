"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── MySQL ──────────────────────────────────────────────────────────────
    mysql_host: str = "mysql"
    mysql_port: int = 3306
    mysql_user: str = "root"
    mysql_password: str = ""
    mysql_database: str = "clipfeed"

    @property
    def database_url(self) -> str:
        return (
            f"mysql+aiomysql://{self.mysql_user}:{self.mysql_password}"
            f"@{self.mysql_host}:{self.mysql_port}/{self.mysql_database}"
        )

    # ── Auth ───────────────────────────────────────────────────────────────
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"

    # ── Explore feed ───────────────────────────────────────────────────────
    feed_default_limit: int = 20
    feed_max_limit: int = 50
    feed_timeframe: str = "week"          # recency window of the mixed feed
    feed_overfetch: int = 2               # trending videos read per slot (feed)
    explore_overfetch: int = 3            # trending videos read per slot (/explore)
    search_min_length: int = 2
    video_ratio: float = 0.65
    user_ratio: float = 0.25
    sound_ratio: float = 0.10
    priority_jitter: float = 100.0        # explore-mode jitter span

    # ── Grid layout thresholds ─────────────────────────────────────────────
    high_engagement_threshold: int = 50_000
    high_trending_threshold: float = 1000.0
    featured_follower_threshold: int = 100_000
    popular_sound_threshold: int = 1000

    # ── Observability ──────────────────────────────────────────────────────
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    tracing_enabled: bool = True
    service_name: str = "clipfeed-api"
    environment: str = "development"
    log_level: str = "INFO"

    # ── Server ─────────────────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
