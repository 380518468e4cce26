from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    LOG_LEVEL: str = "INFO"
    # Data sources (first configured wins: demo > feed URL > database > demo fallback)
    DEMO_MODE: bool = False
    VESSEL_FEED_URL: str | None = None
    DATABASE_URL: str | None = None
    VESSEL_FETCH_TIMEOUT: float = 10.0
    SNAPSHOT_MAX_AGE_HOURS: int = 12
    SNAPSHOT_LIMIT: int = 500
    DEMO_RANDOM_ALERT_PROBABILITY: float = 0.1
    # Coverage hubs (falls back to the built-in six when the file is missing)
    COVERAGE_HUBS_CONFIG: str = "config/coverage_hubs.yaml"
    COVERAGE_RADIUS_DEG: float = 1.0  # planar degrees, ~110 km at the equator
    # Dead reckoning horizon (hours)
    MAX_ESTIMATE_HOURS: float = 24.0
    # Dark detection and alert window (minutes)
    DARK_THRESHOLD_MINUTES: float = 15.0
    DARK_ALERT_WINDOW_MAX_MINUTES: float = 20.0
    # Alert feed caps
    MAX_ALERTS: int = 50
    MAX_ACTIVITY: int = 20
    ACTIVE_ALERT_HOURS: float = 24.0
    # Clustering / level of detail
    MAX_RENDER_VESSELS: int = 200
    CLUSTER_DISABLE_ZOOM: float = 8.0
    CLUSTER_FINE_ZOOM: float = 4.0
    CLUSTER_CELL_COARSE_DEG: float = 0.5
    CLUSTER_CELL_FINE_DEG: float = 0.2
    VIEWPORT_PADDING_DEG: float = 0.5
    RENDER_THROTTLE_MS: float = 100.0
    CLUSTER_WORKER_ENABLED: bool = True
    # Loop cadence
    INGEST_INTERVAL_SECONDS: float = 10.0
    RENDER_TARGET_FPS: int = 60
    BACKGROUND_LOOPS_ENABLED: bool = True
    # CORS origins (comma-separated string for env var support)
    CORS_ORIGINS: str = "http://localhost:3000"


settings = Settings()
