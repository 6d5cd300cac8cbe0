"""Mappers between domain entities and transfer objects."""
