"""
GRC Risk Analytics — numerical core of the risk platform.

Architecture:
    riskanalytics/
    ├── api/             # FastAPI routers (thin call-style HTTP layer)
    ├── middleware/      # Request context, error handling
    ├── schemas/         # Pydantic request/response models
    └── engine/          # Simulation, anomaly, correlation, scoring

Module Boundaries:
    - The engine never touches persistence: records come in, results go out
    - Every call is a pure function of its inputs plus explicit configuration
    - "No anomaly" is None, "bad input" is an exception — never conflated
    - No NaN/inf ever reaches an output record

Data Flow:
    Persistence → Incidents / KRIs / Control tests → Engine → Results → Persistence / UI

Version: 1.0.0
"""

__version__ = "1.0.0"
