"""Block polling with fork handling, chain configuration and block file comparison."""

__version__ = "0.1.0"