# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from durablefunctions.http.http_management_payload import HttpManagementPayload

__all__ = ["HttpManagementPayload"]
