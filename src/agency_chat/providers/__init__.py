"""Language-model provider implementations."""

from .anthropic import AnthropicProvider, AnthropicStream

__all__ = ["AnthropicProvider", "AnthropicStream"]
