"""Assistant Gateway - multi-provider AI request router for the portfolio assistant."""

__version__ = "0.1.0"
