"""Application layer: services and mappers orchestrating the domain."""
