"""Loading, splitting, encoding and normalizing article records."""
