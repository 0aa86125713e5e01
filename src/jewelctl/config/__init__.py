"""Configuration: section models, TOML discovery, unified settings and logging."""
