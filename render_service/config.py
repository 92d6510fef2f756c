"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Supabase (audit trail only)
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    audit_log_enabled: bool = False

    # Render output
    output_dir: str = "./output"
    output_ttl_hours: int = 24

    # Worker pool
    worker_pool_size: int = 3
    max_worker_pool_size: int = 6
    worker_growth_step: int = 2
    worker_idle_shrink_seconds: float = 300.0

    # Dispatch and retry
    dispatch_interval_seconds: float = 1.0
    max_retries: int = 3
    job_timeout_seconds: Optional[float] = None

    # Resource monitor
    monitor_interval_seconds: float = 30.0
    backlog_high_water: int = 10
    memory_threshold_mb: int = 500

    # Progress snapshots and finished job records
    status_ttl_hours: int = 24
    cleanup_interval_seconds: float = 3600.0

    # Multiplier for simulated stage durations (0 disables waiting)
    stage_time_scale: float = 1.0

    log_level: str = "INFO"
    port: int = 8001

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
