"""Resource kinds and the adapters that talk to their API endpoints."""
