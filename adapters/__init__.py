"""Adapters connecting the decision-support engine to record storage."""
