"""
Utility functions module.

Time Semantics:
- Provider timestamps are authoritative for a quote when they parse
- Wall-clock time is the fallback and the clock for synthetic quotes
- All datetimes handed out by this package are timezone-aware UTC
"""
