"""
Extraction Providers Module - Modular extraction backend implementations.

This module provides a plug-and-play architecture for extraction backends
using the Strategy pattern.

To add a new provider:
1. Create a new provider class inheriting from ExtractionProvider
2. Implement analyze()
3. Register it in AIProviderFactory
"""
from .base import ExtractionProvider, ExtractionRequest, classify_status
from .factory import AIProviderFactory
from .edge_provider import EdgeFunctionProvider
from .openrouter_provider import OpenRouterProvider
from .anthropic_provider import AnthropicProvider
from .heuristic_provider import HeuristicProvider

__all__ = [
    "ExtractionProvider",
    "ExtractionRequest",
    "classify_status",
    "AIProviderFactory",
    "EdgeFunctionProvider",
    "OpenRouterProvider",
    "AnthropicProvider",
    "HeuristicProvider",
]
