"""
ProductAI – product catalogue and order desk backed by a multimodal model.

Upload a product photo, let the model write multilingual copy, keep the
result, and manage customer orders with generated confirmation scripts and
printable HTML exports.
"""

__version__ = "0.3.0"

__all__ = [
    "config",
    "logging",
    "paths",
    "i18n",
]
