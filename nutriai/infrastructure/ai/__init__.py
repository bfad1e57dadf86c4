"""Vision provider adapters (mock estimator, OpenAI) and their factory."""
