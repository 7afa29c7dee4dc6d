"""
Integration tests for the render orchestrator.

Test components together or against real external services:
- Redis prompt cache store (real Redis, database 15)
- Full generation flow (validation, prompt building, failover, cache)
"""
