"""Staff RPC action dispatch: catalog, guard, front-ends and execution engine."""

from staffbot.rpc.actions import Action, ActionCatalog, ActionSpec, FieldKind, FieldSpec, RPCMethod
from staffbot.rpc.contracts import AuditNotice, PlatformPort, RPCActor, RPCHandle, RPCOutcome, RPCReport
from staffbot.rpc.direct import DirectInvoker
from staffbot.rpc.engine import RPCEngine
from staffbot.rpc.errors import (
    ActionRejected,
    ConsistencyFault,
    NotFound,
    PersistenceError,
    RPCError,
    Unauthorized,
    UnknownAction,
    ValidationError,
)
from staffbot.rpc.guard import StaffGuard
from staffbot.rpc.interactive import FlowResult, FlowState, InteractionSurface, InteractiveFlow
from staffbot.rpc.reporting import AuditNotifier

__all__ = [
    "Action",
    "ActionCatalog",
    "ActionRejected",
    "ActionSpec",
    "AuditNotice",
    "AuditNotifier",
    "ConsistencyFault",
    "DirectInvoker",
    "FieldKind",
    "FieldSpec",
    "FlowResult",
    "FlowState",
    "InteractionSurface",
    "InteractiveFlow",
    "NotFound",
    "PersistenceError",
    "PlatformPort",
    "RPCActor",
    "RPCError",
    "RPCEngine",
    "RPCHandle",
    "RPCMethod",
    "RPCOutcome",
    "RPCReport",
    "StaffGuard",
    "Unauthorized",
    "UnknownAction",
    "ValidationError",
]
