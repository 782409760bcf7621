import json
from typing import Any, Mapping, Optional

import durablefunctions.internal.helpers as helpers


class HttpManagementPayload:
    """A class representing the HTTP management payload for a Durable Function orchestration instance.

    Contains URLs for managing the instance, such as querying status,
    sending events, terminating, rewinding and purging history.
    """

    def __init__(self, instance_id: str, management_urls: Mapping[str, str], id_placeholder: str,
                 request_url: Optional[str] = None):
        """Builds the payload for one instance from the configured URL templates.

        Args:
            instance_id (str): The ID of the Durable Function instance.
            management_urls (Mapping[str, str]): The management URL templates provided by the Durable extension.
            id_placeholder (str): The token standing for the instance ID inside each template.
            request_url (Optional[str]): URL of the triggering request. When given, the origin of every
                management URL is replaced with the origin of this URL.
        """
        request_origin = helpers.get_origin(request_url) if request_url else None

        self.urls: dict[str, str] = {}
        for key, template in management_urls.items():
            value = template
            if request_origin is not None and helpers.is_http_url(value):
                value = value.replace(helpers.get_origin(value), request_origin, 1)
            self.urls[key] = value.replace(id_placeholder, instance_id)

    @property
    def instance_id(self) -> Optional[str]:
        return self.urls.get("id")

    @property
    def status_query_get_uri(self) -> str:
        return self.urls["statusQueryGetUri"]

    def __getitem__(self, key: str) -> str:
        return self.urls[key]

    def to_json(self) -> dict[str, Any]:
        return dict(self.urls)

    def __str__(self):
        return json.dumps(self.urls)
