"""
Data normalization module.

Canonical quote, statistics and news records plus the field-mapping
normalizer that converts each provider's raw payload into them.
"""
