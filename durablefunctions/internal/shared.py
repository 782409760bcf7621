# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import dataclasses
import json
import logging
from enum import Enum
from types import SimpleNamespace
from typing import Any, Optional

SECURE_PROTOCOLS = ["https"]
INSECURE_PROTOCOLS = ["http"]


def get_logger(
        name_suffix: str,
        log_handler: Optional[logging.Handler] = None,
        log_formatter: Optional[logging.Formatter] = None) -> logging.Logger:
    logger = logging.Logger(f"durablefunctions-{name_suffix}")

    # Add a default log handler if none is provided
    if log_handler is None:
        log_handler = logging.StreamHandler()
        log_handler.setLevel(logging.INFO)
    logger.handlers.append(log_handler)

    # Set a default log formatter to our handler if none is provided
    if log_formatter is None:
        log_formatter = logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(name)s %(levelname)s: %(message)s",
            datefmt='%Y-%m-%d %H:%M:%S')
    log_handler.setFormatter(log_formatter)
    return logger


def to_json(obj) -> str:
    return json.dumps(obj, cls=InternalJSONEncoder)


def from_json(json_str: str):
    return json.loads(json_str)


class InternalJSONEncoder(json.JSONEncoder):
    """JSON encoder for webhook payloads.

    User payloads are passed through as-is; dataclasses, namespaces and enums
    are flattened to their plain JSON equivalents.
    """

    def default(self, obj):
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        elif isinstance(obj, SimpleNamespace):
            return vars(obj)
        elif isinstance(obj, Enum):
            return obj.value
        # This will typically raise a TypeError
        return json.JSONEncoder.default(self, obj)


def is_empty_body(body: Any) -> bool:
    return body is None or body == ""
