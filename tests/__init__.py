"""
Tests for the kpower referral service

Tests are organized by functionality:
- test_invite_codes.py: Invite code generation and uniqueness retries
- test_token_service.py: Token issuance and verification
- test_event_bus.py: Event fan-out and the SSE frame generator
- test_user_repository.py: User store queries and pagination
- test_auth_service.py: Authenticate-or-register flow
- test_api.py: HTTP endpoints and the access guard
- test_cli.py: User management CLI
"""
