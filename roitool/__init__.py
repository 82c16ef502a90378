"""
roitool Package - ROI metadata between OME-XML documents and an object store

Moves regions of interest, their shapes and their annotations from a store
image to an OME-XML file and back, keeping annotation links intact.

Main Components:
    - roitool.converter: RoiConverter, the import and export runs
    - roitool.linker: object-graph reconstruction for import
    - roitool.store: remote (HTTP) and in-memory store gateways
    - roitool.cli: the ``roitool`` command
"""

__version__ = "0.3.0"

from .converter import RoiConverter
from .linker import ObjectGraphLinker
from .lsid import LsidFormatter
from .store import InMemoryStore, RemoteStore

__all__ = [
    "__version__",
    "RoiConverter",
    "ObjectGraphLinker",
    "LsidFormatter",
    "InMemoryStore",
    "RemoteStore",
]
