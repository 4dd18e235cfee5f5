"""
Extraction Provider Factory.

Manages provider selection and initialization based on configuration.
Uses the Factory pattern to provide plug-and-play extraction backends.
"""
from typing import Callable, Dict, List, Optional

from ...core.config import (
    AI_PROVIDER,
    ANTHROPIC_API_KEY,
    EDGE_FUNCTION_KEY,
    EDGE_FUNCTION_URL,
    OPENROUTER_API_KEY,
)
from ...core.logging_config import get_logger
from .anthropic_provider import AnthropicProvider
from .base import ExtractionProvider
from .edge_provider import EdgeFunctionProvider
from .heuristic_provider import HeuristicProvider
from .openrouter_provider import OpenRouterProvider

logger = get_logger(__name__)

# Order in which remote backends are tried when the configured one is unusable
_REMOTE_ORDER = ["edge", "openrouter", "anthropic"]


class AIProviderFactory:
    """
    Factory for creating extraction provider instances.

    Automatically selects the appropriate provider based on:
    1. AI_PROVIDER configuration
    2. Available credentials
    3. Fallback to HeuristicProvider if no remote backend is usable
    """

    @staticmethod
    def _builders() -> Dict[str, Callable[[], Optional[ExtractionProvider]]]:
        return {
            "edge": lambda: EdgeFunctionProvider(url=EDGE_FUNCTION_URL, api_key=EDGE_FUNCTION_KEY) if EDGE_FUNCTION_URL else None,
            "openrouter": lambda: OpenRouterProvider(api_key=OPENROUTER_API_KEY) if OPENROUTER_API_KEY else None,
            "anthropic": lambda: AnthropicProvider(api_key=ANTHROPIC_API_KEY) if ANTHROPIC_API_KEY else None,
        }

    @staticmethod
    def get_provider(provider_type: Optional[str] = None) -> ExtractionProvider:
        """
        Get the appropriate extraction provider based on configuration.

        Returns:
            ExtractionProvider instance. HeuristicProvider only when configured
            explicitly or when no remote backend has credentials.
        """
        provider_type = (provider_type or AI_PROVIDER).lower()

        if provider_type == "heuristic":
            logger.info("Using HeuristicProvider (configured)")
            return HeuristicProvider()

        builders = AIProviderFactory._builders()

        if provider_type in builders:
            provider = builders[provider_type]()
            if provider is not None:
                logger.info(f"Using {provider.name} provider")
                return provider
            logger.warning(f"⚠️  {provider_type} provider not configured, checking other providers...")
            candidates: List[str] = [name for name in _REMOTE_ORDER if name != provider_type]
        else:
            logger.warning(f"⚠️  Unknown provider '{provider_type}', checking available credentials...")
            candidates = list(_REMOTE_ORDER)

        for name in candidates:
            provider = builders[name]()
            if provider is not None:
                logger.info(f"✓ Using {provider.name} provider as fallback")
                return provider

        logger.warning("⚠️  No extraction backend configured, using filename heuristics")
        return HeuristicProvider()
