# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

ID_PLACEHOLDER_KEY = "id"
STATUS_QUERY_KEY = "statusQueryGetUri"


@dataclass(frozen=True)
class ClientConfiguration:
    """The webhook configuration handed to a durable client binding by the Functions host.

    Instances are validated once when built and are read-only afterwards.
    `management_urls` maps payload names (``statusQueryGetUri``,
    ``sendEventPostUri``, ...) to URL templates; its ``id`` entry is the
    placeholder token that stands for the instance id in every template.
    `creation_urls` holds the templates used to start new instances.
    """
    task_hub_name: str
    management_urls: Mapping[str, str]
    creation_urls: Mapping[str, str]

    def __post_init__(self):
        if not isinstance(self.task_hub_name, str) or not self.task_hub_name:
            raise ValueError("taskHubName must be a non-empty string.")

        for field_name in ("management_urls", "creation_urls"):
            urls = getattr(self, field_name)
            if not isinstance(urls, Mapping):
                raise ValueError(f"{field_name} must be a mapping of URL templates.")
            for key, value in urls.items():
                if not isinstance(value, str):
                    raise ValueError(f"{field_name}['{key}'] must be a string but was {type(value).__name__}.")
            # frozen dataclass, so bypass __setattr__ to store the read-only view
            object.__setattr__(self, field_name, MappingProxyType(dict(urls)))

        if not self.management_urls.get(ID_PLACEHOLDER_KEY):
            raise ValueError(f"managementUrls must define the '{ID_PLACEHOLDER_KEY}' placeholder.")
        if STATUS_QUERY_KEY not in self.management_urls:
            raise ValueError(f"managementUrls must define '{STATUS_QUERY_KEY}'.")

    @property
    def id_placeholder(self) -> str:
        return self.management_urls[ID_PLACEHOLDER_KEY]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientConfiguration":
        return cls(
            task_hub_name=data.get("taskHubName", ""),
            management_urls=data.get("managementUrls") or {},
            creation_urls=data.get("creationUrls") or {})

    @classmethod
    def from_json(cls, client_as_string: str) -> "ClientConfiguration":
        """Builds a configuration from the JSON string of a durable client binding.

        Raises:
            json.JSONDecodeError: If the provided string is not valid JSON.
            ValueError: If a required field is missing or malformed.
        """
        data = json.loads(client_as_string)
        if not isinstance(data, dict):
            raise ValueError("The durable client binding must be a JSON object.")
        return cls.from_dict(data)
