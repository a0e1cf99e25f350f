"""Core domain logic for school health decision support.

This package contains the business logic and domain models,
isolated from storage and delivery concerns for easy testing and reasoning.
"""
