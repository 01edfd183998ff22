"""
Domain models — Pydantic types for provisioning runs.

All models are re-exported here for convenient access:

    from gvm_provision.core.models import Component, ServiceDescriptor, HostRole
"""

from gvm_provision.core.models.component import (
    BuildKind,
    Component,
    ComponentSpec,
    DependencySet,
    SignatureNaming,
)
from gvm_provision.core.models.run import (
    AdminCredential,
    HostRole,
    HostTarget,
    InstallationStep,
    WorkspaceLayout,
)
from gvm_provision.core.models.service import ServiceDescriptor

__all__ = [
    # component.py
    "BuildKind",
    "Component",
    "ComponentSpec",
    "DependencySet",
    "SignatureNaming",
    # run.py
    "AdminCredential",
    "HostRole",
    "HostTarget",
    "InstallationStep",
    "WorkspaceLayout",
    # service.py
    "ServiceDescriptor",
]
