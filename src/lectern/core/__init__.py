"""Core components: catalog aggregation, section loading and search."""
