"""Configuration loading (YAML + JSON schema + FONDANT_* environment overrides)."""
