"""Domain models, canonical facts and error types for the decision-support engine."""
