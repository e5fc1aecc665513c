"""Domain layer: value objects, entities and services of the table log."""
