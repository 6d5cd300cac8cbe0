"""Infrastructure layer: persistence, security and observability."""
