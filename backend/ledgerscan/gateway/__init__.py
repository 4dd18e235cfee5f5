"""
API Gateway Module

Single entry point for the HTTP API: application setup, middleware,
rate limiting and health checks.
"""
from .gateway import APIGateway

__all__ = ["APIGateway"]
