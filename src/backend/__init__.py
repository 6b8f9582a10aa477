"""Task board telemetry metrics engine."""
