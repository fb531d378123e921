"""Task marketplace backend: enterprises post tasks, individuals accept and deliver them."""

__version__ = "0.1.0"
