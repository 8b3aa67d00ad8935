"""Client singletons for external API interactions."""
from bizlicense.clients.openai_client import OpenAIClient

__all__ = ["OpenAIClient"]
