"""Version information for mediasdk."""

__version__ = "0.1.0"
