"""Base model adapters and ensemble strategies."""
