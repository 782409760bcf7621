# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from typing import Any


class WebhookError(Exception):
    """Raised when a durable webhook call returns a status the operation treats as a failure."""

    def __init__(self, message: str, status_code: int, body: Any = None):
        super().__init__(message)
        self._status_code = status_code
        self._body = body

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def body(self) -> Any:
        return self._body


class UnrecognizedStatusError(WebhookError):
    """The webhook returned a status code the operation does not define."""

    def __init__(self, status_code: int, body: Any = None):
        super().__init__(f"Webhook returned unrecognized status code {status_code}: {body}", status_code, body)


class InstanceNotFoundError(WebhookError):
    def __init__(self, instance_id: str, body: Any = None):
        super().__init__(f"No instance with ID '{instance_id}' found.", 404, body)
        self._instance_id = instance_id

    @property
    def instance_id(self) -> str:
        return self._instance_id


class UnsupportedContentTypeError(WebhookError):
    def __init__(self, body: Any = None):
        super().__init__("Only application/json request content is supported", 400, body)


class RewindNotSupportedError(WebhookError):
    def __init__(self, instance_id: str, body: Any = None):
        super().__init__(
            f"The rewind operation is only supported on failed orchestration instances ('{instance_id}').",
            410, body)
        self._instance_id = instance_id

    @property
    def instance_id(self) -> str:
        return self._instance_id
