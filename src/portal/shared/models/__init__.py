"""Shared models for the reporting portal.

- Principal: authenticated identity and role attached to a request
"""

from src.portal.shared.models.principal import Principal

__all__ = [
    "Principal",
]
