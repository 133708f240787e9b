"""
Custom exceptions for the show simulation engine with caller-facing messages.

Two categories propagate to callers: invalid state transitions and violated
preconditions. Degraded inputs never raise; see ringside.utils.results.
"""

class RingsideException(Exception):
    """Base exception for simulation engine errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class InvalidTransitionError(RingsideException):
    """Raised when an operation targets an entity in the wrong state."""
    def __init__(self, entity: str, current: str, attempted: str):
        self.entity = entity
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"Cannot {attempted} {entity} with status '{current}'",
            f"❌ Cannot {attempted} a {entity} that is {current}."
        )

class PreconditionViolationError(RingsideException):
    """Raised when a structurally impossible state is requested."""
    def __init__(self, precondition: str, details: str = None):
        self.precondition = precondition
        super().__init__(
            f"Precondition violated: {precondition}" + (f" ({details})" if details else ""),
            f"❌ {precondition}"
        )

class EntityNotFoundError(RingsideException):
    """Raised when a company, wrestler, venue, show or title does not exist."""
    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} {entity_id} not found",
            f"❌ {entity} not found!"
        )

class CardValidationError(RingsideException):
    """Raised when a structural edit to a show card is rejected."""
    def __init__(self, reason: str):
        super().__init__(
            f"Invalid card edit: {reason}",
            f"❌ {reason}"
        )

class EligibilityError(RingsideException):
    """Raised when a wrestler cannot hold a championship."""
    def __init__(self, wrestler_id: int, championship_id: int):
        super().__init__(
            f"Wrestler {wrestler_id} is not under contract with the owner of championship {championship_id}",
            "❌ Wrestler must be under contract with the same company!"
        )
