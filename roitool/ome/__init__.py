"""OME-XML document reader and writer."""

from .reader import DocumentRecords, read_ome_xml
from .writer import build_document, write_ome_xml

__all__ = ["DocumentRecords", "build_document", "read_ome_xml", "write_ome_xml"]
