"""Domain Layer: value objects, entities, interfaces and events."""
