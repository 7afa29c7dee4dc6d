"""
Unit tests for the render orchestrator.

Test individual components in isolation:
- Catalog models and loading
- Validation rules and the enhanced quality layer
- Prompt cache, hashing and storage backends
- Providers, error classification and prompt building
- Retry manager and circuit breaker
- Failover manager, orchestrator and wiring
- API routes and Celery cache tasks
"""
