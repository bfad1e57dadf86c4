"""
NutriAI vision analysis service.

Server-side pipeline that estimates meal nutrition from a photo through a
pluggable vision provider, degrading to a deterministic estimator when the
upstream provider fails recoverably.

Structure:
- domain/: Models, provider port, failure taxonomy
- application/: Error classification, fallback orchestration, envelopes
- infrastructure/: Vision providers, provider factory, image processing
- api/: FastAPI routes
- metrics/: In-memory counters and histograms
- tests/: Test suite
"""

__version__ = "0.3.0"
