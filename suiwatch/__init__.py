"""Store the Sui checkpoint transactions that call a chosen Move package in SQL tables."""

__version__ = "0.1.0"
__all__ = ["checkpoint", "models", "pipeline", "schema"]