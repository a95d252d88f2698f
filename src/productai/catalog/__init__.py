"""Product catalogue and order handling.

Modules:
- constants: Languages, order statuses and limits
- models: Dataclasses for users, products and orders
- parser: Input validation and AI payload parsing
- storage: Storage protocol, in-memory backend, backend selection
- db: SQLite backend
- gateway: OpenAI-backed analysis, copywriting, chat and images
- documents: Confirmation scripts and printable HTML sheets
- service: Operations used by the HTTP layer and the CLI
- frontend: Starlette application
"""

__all__ = [
    "constants",
    "models",
    "parser",
    "storage",
    "db",
    "gateway",
    "documents",
    "service",
    "frontend",
]
