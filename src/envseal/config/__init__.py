"""Stage settings, .env file I/O and master secret resolution."""
