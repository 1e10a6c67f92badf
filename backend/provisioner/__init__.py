"""Fargate service provisioner.

Builds an ECS Fargate service together with the network stack it runs in,
checkpointing state after every step so deploy and remove can be re-run
safely:
- Idempotent, resumable network provisioning
- Reverse-order teardown with child-entry cleanup
- Bounded polling for task convergence
- Attribute reconciliation for SNS subscriptions
"""

from provisioner.attributes import AttributeChange, AttributeReconciler, diff_attributes
from provisioner.errors import (
    MissingResourcePrecondition,
    ProviderCallError,
    ProvisionerError,
    UnknownComponentError,
)
from provisioner.models import FargateServiceInputs, FargateServiceOutputs
from provisioner.poller import ConvergencePoller, ConvergenceResult
from provisioner.state import ProvisioningState, StateStore, get_state_store

__all__ = [
    "AttributeChange",
    "AttributeReconciler",
    "ConvergencePoller",
    "ConvergenceResult",
    "FargateServiceInputs",
    "FargateServiceOutputs",
    "MissingResourcePrecondition",
    "ProviderCallError",
    "ProvisionerError",
    "ProvisioningState",
    "StateStore",
    "UnknownComponentError",
    "diff_attributes",
    "get_state_store",
]
