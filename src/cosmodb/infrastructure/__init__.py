"""Infrastructure layer: adapters, collections and the database registry."""
