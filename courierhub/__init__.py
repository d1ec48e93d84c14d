"""Order service for a courier delivery platform: models, storage, clients, logic and HTTP API."""

__version__ = "0.1.0"