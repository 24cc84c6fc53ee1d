"""Website ingestion: crawling, chunking and embedding generation."""
