"""Chain access helpers for the gasless relay client."""
