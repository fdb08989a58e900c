"""
Exceptions raised by the board engine.

Geometry queries never raise for missing or malformed references (they
return None and the caller skips the entity); these are reserved for
caller mistakes such as acting on an unknown id or starting a gesture
while another one is still active.
"""


class BoardError(Exception):
    """Base class for board engine errors."""


class EntityNotFoundError(BoardError):
    """Raised when an operation names an entity id the board does not hold."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class InteractionError(BoardError):
    """Raised when a gesture transition is not defined for the current mode."""
