"""
Domain layer - Business logic and domain models.

This layer contains:
- Value objects (immutable, self-validating)
- Domain entities
- Domain events
- The error taxonomy

No dependencies on infrastructure or frameworks.
"""
