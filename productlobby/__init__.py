"""ProductLobby demand-signal API."""

__version__ = "0.1.0"
