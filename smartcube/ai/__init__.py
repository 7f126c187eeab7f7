"""
AI provider access for AI-backed cubes
"""
from .client import AIProviderClient, AIResponse, ImageResponse

__all__ = ['AIProviderClient', 'AIResponse', 'ImageResponse']
