"""Core building blocks: normalization, payloads, tracking, configuration."""
