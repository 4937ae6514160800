"""AI provider clients, a provider registry and layered caches for a chat bot."""

__version__ = "0.1.0"