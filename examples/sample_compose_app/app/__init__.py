"""Sample declarative UI app used by the integration tests."""
