"""Domain layer: request admission and scheduling."""
