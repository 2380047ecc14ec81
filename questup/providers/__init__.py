"""Generative endpoint provider integrations."""

from .base import BaseLLMProvider
from .google_provider import GoogleProvider

__all__ = ["BaseLLMProvider", "GoogleProvider"]
