"""envseal: at-rest encryption for credentials kept in stage .env files."""

__version__ = "0.1.0"
