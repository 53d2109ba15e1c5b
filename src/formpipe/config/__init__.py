"""Configuration: pydantic section models, settings, discovery and logging."""
