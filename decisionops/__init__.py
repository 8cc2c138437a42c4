"""DecisionOps: decision workflow core for product operations."""
