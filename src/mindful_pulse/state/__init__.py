"""Settings state — the persisted record of collection intent."""
