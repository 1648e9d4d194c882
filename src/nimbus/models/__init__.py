"""Data models for Nimbus services and deployments."""
