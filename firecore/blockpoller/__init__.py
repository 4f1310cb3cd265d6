"""Block poller that follows forks and fires blocks once they link to the LIB."""

__all__ = ["cursor", "handler", "model", "poller", "state_file"]