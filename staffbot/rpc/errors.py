"""Error taxonomy for RPC action dispatch."""

from __future__ import annotations


class RPCError(Exception):
    """Base class for every user-visible RPC failure."""

    code: str = "rpc_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(RPCError):
    """A raw field value could not be parsed into its declared type."""

    code = "validation_error"

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Error parsing `{field}`: {reason}")
        self.field = field
        self.reason = reason


class Unauthorized(RPCError):
    """Caller is not allowed to invoke RPC actions."""

    code = "unauthorized"

    def __init__(self, user_id: str) -> None:
        super().__init__("You must be a staff member to perform RPC actions")
        self.user_id = user_id


class UnknownAction(RPCError):
    """Requested action name is not part of the catalog."""

    code = "unknown_action"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown RPC method: {name}")
        self.name = name


class NotFound(RPCError):
    """Target bot, team or user does not exist."""

    code = "not_found"


class ActionRejected(RPCError):
    """Target exists but is not in a state the action accepts."""

    code = "action_rejected"


class ConsistencyFault(RPCError):
    """Built action disagrees with the requested action name (internal bug)."""

    code = "consistency_fault"

    def __init__(self, requested: str, built: str) -> None:
        super().__init__(f"Internal error: method ({built}) != variant ({requested})")
        self.requested = requested
        self.built = built


class PersistenceError(RPCError):
    """Store transaction or connectivity failure."""

    code = "persistence_error"
