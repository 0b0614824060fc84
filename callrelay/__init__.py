"""callrelay - telephony webhook to SSE relay with an upstream control proxy."""
__version__ = "0.1.0"
