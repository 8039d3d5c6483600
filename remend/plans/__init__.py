"""Plan schema, stores and the plan service."""
