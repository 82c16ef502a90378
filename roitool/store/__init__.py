"""Object store gateways."""

from .base import AnnotationParent, StoreGateway
from .memory import InMemoryStore
from .remote import RemoteStore

__all__ = ["AnnotationParent", "StoreGateway", "InMemoryStore", "RemoteStore"]
