"""Command-line interface for kvtree."""
