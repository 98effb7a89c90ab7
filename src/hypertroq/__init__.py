"""HypertroQ: AI hypertrophy coach."""

__version__ = "0.1.0"
