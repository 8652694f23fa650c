"""
Configuration module.

Default parameters, YAML overrides and validation for providers, polling,
synthetic fallback data, news sources and persistence.
"""
