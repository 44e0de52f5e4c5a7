"""Service layer: credential store, preferences, auth and catalog access."""
