"""Custom exception classes for the Skill Tree progress tracker.

Every error raised by the core carries a ``kind`` (``not_found``, ``conflict``,
``invalid_input``, ``forbidden``, ``partial_failure`` or ``unauthorized``) so
the calling layer can map it to a response without inspecting the concrete
class.
"""

from typing import Dict, Optional


class SkillTreeError(Exception):
    """Base exception for all Skill Tree errors."""

    kind: str = "error"


# --- Error kinds ---


class NotFoundError(SkillTreeError):
    """Raised when a user, node, tree, record or request does not exist."""

    kind = "not_found"


class ConflictError(SkillTreeError):
    """Raised when a write collides with existing state."""

    kind = "conflict"


class InvalidInputError(SkillTreeError):
    """Raised when caller supplied data fails validation."""

    kind = "invalid_input"


class ForbiddenError(SkillTreeError):
    """Raised when the acting user is not allowed to perform an operation."""

    kind = "forbidden"


class PartialFailureError(SkillTreeError):
    """Raised when one step of an atomic unit failed and the unit was undone."""

    kind = "partial_failure"


class ConfigurationError(SkillTreeError):
    """Raised when there is a configuration error."""

    pass


class AuthenticationError(SkillTreeError):
    """Raised when credentials do not match a user."""

    kind = "unauthorized"

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


# --- Not found ---


class UserNotFoundError(NotFoundError):
    """Raised when a requested user cannot be found."""

    def __init__(self, user_id: str):
        """Initialize the exception.

        Args:
            user_id: The ID of the user that was not found.
        """
        self.user_id = user_id
        super().__init__(f"User '{user_id}' not found")


class TreeNotFoundError(NotFoundError):
    """Raised when a requested skill tree cannot be found."""

    def __init__(self, tree_id: int):
        self.tree_id = tree_id
        super().__init__(f"Skill tree '{tree_id}' not found")


class NodeNotFoundError(NotFoundError):
    """Raised when a requested skill node cannot be found."""

    def __init__(self, node_id: int):
        self.node_id = node_id
        super().__init__(f"Skill node '{node_id}' not found")


class ProgressNotFoundError(NotFoundError):
    """Raised when a progress record cannot be found."""

    def __init__(self, progress_id: int):
        self.progress_id = progress_id
        super().__init__(f"Progress record '{progress_id}' not found")


class PromotionRequestNotFoundError(NotFoundError):
    """Raised when no pending promotion request has the given id."""

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(
            f"Promotion request '{request_id}' not found or already resolved"
        )


# --- Conflict ---


class UserAlreadyExistsError(ConflictError):
    """Raised when a username or email is already registered."""

    pass


class AlreadyAdminError(ConflictError):
    """Raised when a promotion is requested for a user who is already admin."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User '{user_id}' is already an admin")


class DuplicatePendingRequestError(ConflictError):
    """Raised when a pending promotion request already exists for a target."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(
            f"A pending promotion request already exists for user '{user_id}'"
        )


# --- Invalid input ---


class InvalidRoleError(InvalidInputError):
    """Raised when a role outside the allowed set is requested."""

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"Invalid role: {role}")


class InvalidSubmissionError(InvalidInputError):
    """Raised when a submission carries neither a link nor notes."""

    def __init__(self, message: str = "Either submission link or notes are required"):
        super().__init__(message)


class MissingReviewNotesError(InvalidInputError):
    """Raised when a review is submitted without notes."""

    def __init__(self, message: str = "Review notes are required"):
        super().__init__(message)


class InvalidReviewStatusError(InvalidInputError):
    """Raised when a review targets a status reviewers cannot set."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Invalid review status: {status}")


class InvalidPasswordError(InvalidInputError):
    """Raised when a new password does not meet the length requirement."""

    pass


# --- Forbidden ---


class NotAdminError(ForbiddenError):
    """Raised when a non-admin attempts an admin-only operation."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User '{user_id}' is not an admin")


class SelfRoleChangeError(ForbiddenError):
    """Raised when an admin tries to change their own role."""

    def __init__(self, message: str = "You cannot change your own role"):
        super().__init__(message)


class AdminPromotionRequiresWorkflowError(ForbiddenError):
    """Raised when admin is assigned directly instead of via two-admin approval."""

    def __init__(
        self,
        message: str = (
            "Admin promotions require a two-admin approval. "
            "Use the promotion request workflow instead."
        ),
    ):
        super().__init__(message)


class SelfApprovalForbiddenError(ForbiddenError):
    """Raised when the requesting admin tries to resolve their own request."""

    def __init__(
        self,
        message: str = (
            "You cannot approve your own promotion request. "
            "Another admin must approve it."
        ),
    ):
        super().__init__(message)


class ReviewerNotAuthorizedError(ForbiddenError):
    """Raised when a user without a reviewer role reviews a submission."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User '{user_id}' is not allowed to review submissions")


# --- Partial failure ---


class PromotionPartialFailureError(PartialFailureError):
    """Raised when approving a promotion could not update the target's role.

    The request is left pending; the transaction was rolled back.
    """

    def __init__(self, request_id: int, cause: Optional[str] = None):
        self.request_id = request_id
        message = f"Promotion request '{request_id}' could not be applied"
        if cause:
            message = f"{message}: {cause}"
        super().__init__(message)


# HTTP status a calling layer would use for each kind
KIND_STATUS_CODES: Dict[str, int] = {
    NotFoundError.kind: 404,
    ConflictError.kind: 409,
    InvalidInputError.kind: 400,
    ForbiddenError.kind: 403,
    PartialFailureError.kind: 500,
    AuthenticationError.kind: 401,
}
