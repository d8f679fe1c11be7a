"""Entity models used across storages and rules."""

from .core import IdentityStrategy, MetaData

__all__ = ["MetaData", "IdentityStrategy"]
