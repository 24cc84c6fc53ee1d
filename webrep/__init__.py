"""WebRep - website crawling, content extraction and embedding ingestion."""

from webrep.version import __version__

__all__ = ["__version__"]
