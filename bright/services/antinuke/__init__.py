"""
Bright Guard - Anti-Nuke Package
================================

Anti-nuke guard split into focused modules:
- constants.py: Dangerous permissions, action limits, scopes, threat rules
- state.py: Shared GuardState and its records
- whitelist.py: Scope parsing and checks
- attribution.py: Audit log executor lookup
- channels.py: Reserved guard channels
- counters.py / lockdown.py: Abuse counters and guild lockdown
- bot_review.py: Kick-first bot review gate
- role_strip.py: Human role-strip defense and admin-grant revert
- capsules.py: Restore capsules stored in guild channels
- threats.py: Threat text scanner
- service.py: AntiNukeService facade

Author: حَـــــنَّـــــا
"""

from .capsules import CapsuleStore, RestoreResult, decode_capsule, encode_capsule
from .constants import LIMITS, ActionKind
from .service import AntiNukeService
from .state import ActorKey, GuardState


__all__ = [
    "AntiNukeService",
    "GuardState",
    "ActorKey",
    "ActionKind",
    "LIMITS",
    "CapsuleStore",
    "RestoreResult",
    "encode_capsule",
    "decode_capsule",
]
