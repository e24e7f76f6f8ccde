"""Domain services: formatting, discovery, normalization, indexing and crawling."""
