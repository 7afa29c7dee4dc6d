"""
Orchestration layer.

- failover.py: FailoverManager (sticky provider rotation, breaker registry)
- orchestrator.py: GenerationOrchestrator (validate -> cache -> dispatch -> write-back)
- factory.py: builds the component graph from Settings
"""

from render_orchestrator.orchestration.factory import (
    build_orchestrator,
    build_prompt_cache_store,
    build_providers,
    parse_provider_endpoint,
)
from render_orchestrator.orchestration.failover import FailoverManager, FailoverResult
from render_orchestrator.orchestration.orchestrator import GenerationOrchestrator

__all__ = [
    "FailoverManager",
    "FailoverResult",
    "GenerationOrchestrator",
    "build_orchestrator",
    "build_prompt_cache_store",
    "build_providers",
    "parse_provider_endpoint",
]
