"""Device file-transfer and preview core."""
