"""Command-line entry points for ProductAI."""
