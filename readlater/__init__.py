"""Read-later article collector: web content extraction and paste ingestion."""

__version__ = "0.1.0"
