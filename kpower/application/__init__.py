"""
Application layer - Use cases and business logic orchestration.

This layer contains:
- AuthService: the authenticate-or-register flow
- UserDirectory: paginated user listing

No direct dependencies on frameworks (FastAPI, etc.)
"""
