"""macrotrend: analytics for nutrition logs and body-weight history."""

__version__ = "0.1.0"
