"""
Storage layer: the ``DatabaseStorage`` façade and its input schemas.
"""

from educentral.storage.repository import DatabaseStorage, attempt_percentage, get_storage

__all__ = ["DatabaseStorage", "attempt_percentage", "get_storage"]
