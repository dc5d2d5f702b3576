"""
FastAPI dependencies for analytics routes.

The engine is built once from Settings and shared; it carries
configuration only, so sharing it across requests is safe. Tests swap it
through ``app.dependency_overrides[get_engine]``.
"""

from functools import lru_cache

from riskanalytics.config import settings
from riskanalytics.engine.analytics_engine import RiskAnalyticsEngine


@lru_cache(maxsize=1)
def get_engine() -> RiskAnalyticsEngine:
    return RiskAnalyticsEngine(settings)
