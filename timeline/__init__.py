"""Multi-source timeline aggregation with tiered caching."""
