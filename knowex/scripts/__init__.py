"""One-shot operational scripts (run out-of-band, never by the app)."""
