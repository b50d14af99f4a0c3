"""Order-verified object gateway."""
