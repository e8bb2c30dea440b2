"""M:N user-thread runtime with cooperative round-robin switching per kernel-thread group."""

__version__ = "0.1.0"
__all__ = ["threads", "runtime"]