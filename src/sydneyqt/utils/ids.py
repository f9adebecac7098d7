"""Identifier helpers for sydneyqt."""

import uuid

__all__ = [
    "legacy_reference_uuid",
    "new_reference_uuid",
]

_LEGACY_NAMESPACE = uuid.UUID("6f1f3c8e-2f1a-4d7e-9a4b-5b0c9d3e8a21")


def new_reference_uuid() -> str:
    """Generate a fresh reference uuid."""
    return str(uuid.uuid4())


def legacy_reference_uuid(workspace_id: int, index: int) -> str:
    """Generate a deterministic uuid for a legacy reference without one.

    The same (workspace, position) pair always maps to the same uuid, so
    re-running the migration on the same document is stable.
    """
    return str(uuid.uuid5(_LEGACY_NAMESPACE, f"{workspace_id}|{index}"))
