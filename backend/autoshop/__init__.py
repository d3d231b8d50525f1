"""Auto shop appointment scheduling service."""
