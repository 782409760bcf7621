# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Durable Functions orchestration management client for Python"""

from durablefunctions.client import (
    DurableOrchestrationClient,
    DurableOrchestrationStatus,
    OrchestrationRuntimeStatus,
    get_client,
)
from durablefunctions.configuration import ClientConfiguration
from durablefunctions.http import HttpManagementPayload

__all__ = [
    "ClientConfiguration",
    "DurableOrchestrationClient",
    "DurableOrchestrationStatus",
    "HttpManagementPayload",
    "OrchestrationRuntimeStatus",
    "get_client",
]

PACKAGE_NAME = "durablefunctions"
