"""HTTP adapter for UI collaborators."""
