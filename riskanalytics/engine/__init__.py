"""
Risk Analytics Algorithm Engine.

Components:
- sampling: uniform impact sampling over validated ranges
- stats: mean, median, nearest-rank percentile, population std-dev, expected shortfall
- monte_carlo: scenario stress simulation with VaR95 / expected shortfall
- scenarios: OSFI E-21 regulatory scenario templates
- anomaly: z-score and daily-count spike detection
- correlation: temporal co-occurrence and causal direction across categories
- scoring: weighted incident / KRI / control composite with trend and confidence
- forecast: forward projection of category scores over a time horizon
- analytics_engine: facade wiring all of the above from Settings
"""
