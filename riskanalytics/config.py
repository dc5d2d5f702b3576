"""
Risk Analytics Configuration.

Pydantic Settings v2 — loads from .env, environment variables.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "GRC Risk Analytics"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # ── API ───────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8002, alias="API_PORT")

    # ── Monte Carlo ───────────────────────────────────────────────────────
    simulation_default_iterations: int = Field(default=1000, alias="SIMULATION_DEFAULT_ITERATIONS")
    simulation_max_iterations: int = Field(default=1_000_000, alias="SIMULATION_MAX_ITERATIONS")
    simulation_confidence_interval: float = Field(default=0.95, alias="SIMULATION_CONFIDENCE_INTERVAL")
    simulation_seed: Optional[int] = Field(
        default=None, alias="SIMULATION_SEED",
        description="Seed the sampler for reproducible runs (tests, audits)",
    )
    operational_cost_per_hour: float = Field(default=1000.0, alias="OPERATIONAL_COST_PER_HOUR")
    risk_appetite_threshold: float = Field(default=5_000_000.0, alias="RISK_APPETITE_THRESHOLD")

    # ── Anomaly Detection ─────────────────────────────────────────────────
    anomaly_min_history: int = Field(default=5, alias="ANOMALY_MIN_HISTORY")
    anomaly_z_medium: float = Field(default=2.0, alias="ANOMALY_Z_MEDIUM")
    anomaly_z_high: float = Field(default=2.5, alias="ANOMALY_Z_HIGH")
    anomaly_z_critical: float = Field(default=3.0, alias="ANOMALY_Z_CRITICAL")
    count_spike_multiplier: float = Field(default=3.0, alias="COUNT_SPIKE_MULTIPLIER")
    count_critical_multiplier: float = Field(default=5.0, alias="COUNT_CRITICAL_MULTIPLIER")
    anomaly_recent_days: int = Field(default=7, alias="ANOMALY_RECENT_DAYS")
    anomaly_baseline_days: int = Field(default=90, alias="ANOMALY_BASELINE_DAYS")

    # ── Correlation ───────────────────────────────────────────────────────
    correlation_lookback_days: int = Field(default=180, alias="CORRELATION_LOOKBACK_DAYS")
    correlation_window_hours: float = Field(default=24.0, alias="CORRELATION_WINDOW_HOURS")
    correlation_min_strength: float = Field(default=0.3, alias="CORRELATION_MIN_STRENGTH")
    causality_dominance: float = Field(default=0.6, alias="CAUSALITY_DOMINANCE")
    cascade_threshold: float = Field(default=0.7, alias="CASCADE_THRESHOLD")

    # ── Predictive Scoring ────────────────────────────────────────────────
    score_weight_incident: float = Field(default=0.4, alias="SCORE_WEIGHT_INCIDENT")
    score_weight_kri: float = Field(default=0.4, alias="SCORE_WEIGHT_KRI")
    score_weight_control: float = Field(default=0.2, alias="SCORE_WEIGHT_CONTROL")
    historical_cutoff_days: int = Field(default=30, alias="HISTORICAL_CUTOFF_DAYS")
    recency_window_days: int = Field(default=90, alias="RECENCY_WINDOW_DAYS")
    trend_threshold: float = Field(default=0.1, alias="TREND_THRESHOLD")
    adjustment_validity_days: int = Field(default=90, alias="ADJUSTMENT_VALIDITY_DAYS")

    # ── Operational ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")


settings = Settings()
