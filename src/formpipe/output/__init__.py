"""Output layer: Rich rendering and JSON serialization of ServiceResult."""
