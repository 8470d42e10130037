"""Section cache."""
