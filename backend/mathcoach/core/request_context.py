"""Request Context — explicit per-request identity passed into every service call.

Invariants:
    - Built once per request from the access token; immutable afterwards
    - No module-level "current user": services receive the context as an argument
"""

import uuid
from dataclasses import dataclass, field

from mathcoach.core.domain_types import UserId


@dataclass(frozen=True)
class RequestContext:
    user_id: UserId
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
