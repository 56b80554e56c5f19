"""Configuration for kvtree."""
