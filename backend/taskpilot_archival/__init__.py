"""Board archive/dearchive service."""
