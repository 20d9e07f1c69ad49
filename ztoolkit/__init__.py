"""Building blocks for streaming servers: base64, pools, ring buffers and tickers."""

__version__ = "0.1.0"
__all__ = ["base64", "once_token", "ticker", "resource_pool", "ring_buffer"]