"""Session context - Pure data structure.

Every engine and store operation receives the user it acts for as an
explicit Session value instead of reading an ambient "current user".
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    """The signed-in user a set of operations acts for.

    Attributes:
        user_id: Identity provider user ID
    """
    user_id: str
