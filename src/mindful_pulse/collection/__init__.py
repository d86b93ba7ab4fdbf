"""Collection sub-package — backends, gated service, and lifecycle controller."""

from mindful_pulse.collection.backends import CollectionBackend, StubBackend
from mindful_pulse.collection.controller import CollectionController, RuntimeCollectionState
from mindful_pulse.collection.service import CollectionService

__all__ = [
    "CollectionBackend",
    "CollectionController",
    "CollectionService",
    "RuntimeCollectionState",
    "StubBackend",
]
