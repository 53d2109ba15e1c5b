"""Domain layer: pure models, effect taxonomy, no I/O."""
