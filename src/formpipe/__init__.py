"""formpipe: rule-aware form section rendering pipeline."""

__version__ = "0.1.0"
