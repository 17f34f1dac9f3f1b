"""
Services package: token signing, invite codes and the event bus.
"""
from kpower.services.event_bus import EventBus
from kpower.services.invite_code_service import InviteCodeGenerator
from kpower.services.token_service import TokenService

__all__ = ['EventBus', 'InviteCodeGenerator', 'TokenService']
