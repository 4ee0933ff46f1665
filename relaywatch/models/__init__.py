from relaywatch.models.base import Base
from relaywatch.models.entities import CrossData

__all__ = [
    "Base",
    "CrossData",
]
