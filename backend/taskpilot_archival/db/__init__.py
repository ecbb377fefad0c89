"""Engine, sessions, and generic persistence helpers."""
