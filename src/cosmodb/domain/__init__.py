"""Domain layer: schemas, results, validation and query logic."""
