"""EventBase core: ticket pipelines, verification and refunds on Base."""

__version__ = "0.3.0"
