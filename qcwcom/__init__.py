"""Serial wire protocol for a QCW driver: byte buffer, parameter values and messages."""

__version__ = "0.1.0"
__all__ = ["serial_buffer", "values", "messages"]