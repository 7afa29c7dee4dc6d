"""
Character Render Orchestrator.

Validates stylistic parameter sets (pose, outfit, footwear, prop, frame)
against a compatibility catalog and renders them through interchangeable
image-generation providers:
- Compatibility validation (blocking errors + advisory warnings)
- Deterministic prompt cache keyed by canonical parameter hash
- Retry with exponential backoff and per-provider circuit breaking
- Sticky failover across providers

Architecture: FastAPI surface + asyncio orchestration core + Redis prompt cache
"""

__version__ = "0.1.0"
