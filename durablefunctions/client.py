# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Union
from urllib.parse import urlparse

import azure.functions as func

import durablefunctions.internal.helpers as helpers
import durablefunctions.internal.shared as shared
from durablefunctions.configuration import ClientConfiguration
from durablefunctions.exceptions import (
    InstanceNotFoundError,
    RewindNotSupportedError,
    UnrecognizedStatusError,
    UnsupportedContentTypeError,
    WebhookError,
)
from durablefunctions.http import HttpManagementPayload
from durablefunctions.internal.webhook_transport import HttpResult, WebhookTransport, get_webhook_transport

EVENT_NAME_PLACEHOLDER = "{eventName}"
FUNCTION_NAME_PLACEHOLDER = "{functionName}"
INSTANCE_ID_SEGMENT_PLACEHOLDER = "[/{instanceId}]"
REASON_PLACEHOLDER = "{text}"

CREATED_TIME_FROM_QUERY_KEY = "createdTimeFrom"
CREATED_TIME_TO_QUERY_KEY = "createdTimeTo"
RUNTIME_STATUS_QUERY_KEY = "runtimeStats"
SHOW_HISTORY_QUERY_KEY = "showHistory"
SHOW_HISTORY_OUTPUT_QUERY_KEY = "showHistoryOutput"

DEFAULT_TIMEOUT_IN_MILLISECONDS = 10000
DEFAULT_RETRY_INTERVAL_IN_MILLISECONDS = 1000
RETRY_AFTER_SECONDS = 10

_CONNECTION_QUERY_PATTERN = re.compile(r"(connection=)(\w+)", re.IGNORECASE)

TransportFactory = Callable[[str], WebhookTransport]


class OrchestrationRuntimeStatus(Enum):
    """The runtime status of an orchestration instance."""
    RUNNING = "Running"
    COMPLETED = "Completed"
    CONTINUED_AS_NEW = "ContinuedAsNew"
    FAILED = "Failed"
    CANCELED = "Canceled"
    TERMINATED = "Terminated"
    PENDING = "Pending"
    UNKNOWN = "Unknown"

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["OrchestrationRuntimeStatus"]:
        if value is None:
            return None
        for status in cls:
            if status.value == value:
                return status
        return cls.UNKNOWN


@dataclass
class DurableOrchestrationStatus:
    name: Optional[str]
    instance_id: Optional[str]
    created_time: Optional[datetime]
    last_updated_time: Optional[datetime]
    input: Any
    custom_status: Any
    output: Any
    runtime_status: Optional[OrchestrationRuntimeStatus]
    history: Optional[list[Any]] = None
    raw: Optional[dict[str, Any]] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_json(cls, body: dict[str, Any]) -> "DurableOrchestrationStatus":
        return cls(
            name=body.get("name"),
            instance_id=body.get("instanceId"),
            created_time=helpers.parse_timestamp(body.get("createdTime")),
            last_updated_time=helpers.parse_timestamp(body.get("lastUpdatedTime")),
            input=body.get("input"),
            custom_status=body.get("customStatus"),
            output=body.get("output"),
            runtime_status=OrchestrationRuntimeStatus.parse(body.get("runtimeStatus")),
            history=body.get("historyEvents"),
            raw=body)

    def to_json(self) -> dict[str, Any]:
        """Returns the status object exactly as the webhook sent it, when it came from one."""
        if self.raw is not None:
            return dict(self.raw)
        d = {
            "name": self.name,
            "instanceId": self.instance_id,
            "createdTime": helpers.to_iso_timestamp(self.created_time) if self.created_time else None,
            "lastUpdatedTime": helpers.to_iso_timestamp(self.last_updated_time) if self.last_updated_time else None,
            "input": self.input,
            "customStatus": self.custom_status,
            "output": self.output,
            "runtimeStatus": self.runtime_status.value if self.runtime_status else None,
        }
        if self.history is not None:
            d["historyEvents"] = self.history
        return d


def new_orchestration_status(body: Any) -> Optional[DurableOrchestrationStatus]:
    if not isinstance(body, dict):
        return None
    return DurableOrchestrationStatus.from_json(body)


class DurableOrchestrationClient:
    """Client for starting, querying, terminating and raising events to orchestration instances.

    All operations are HTTP calls against the webhook URLs that the Durable
    Functions host supplies through the durable client binding.
    """

    def __init__(self, configuration: Union[ClientConfiguration, dict[str, Any], str], *,
                 log_handler: Optional[logging.Handler] = None,
                 log_formatter: Optional[logging.Formatter] = None,
                 transport_factory: TransportFactory = get_webhook_transport):
        if not configuration:
            raise TypeError(f"configuration: Expected client configuration but got {type(configuration).__name__}")

        if isinstance(configuration, ClientConfiguration):
            self._configuration = configuration
        elif isinstance(configuration, str):
            self._configuration = ClientConfiguration.from_json(configuration)
        else:
            self._configuration = ClientConfiguration.from_dict(configuration)

        self._transport_factory = transport_factory
        self._logger = shared.get_logger("client", log_handler, log_formatter)

    @property
    def task_hub_name(self) -> str:
        """The name of the task hub configured on this client."""
        return self._configuration.task_hub_name

    @property
    def configuration(self) -> ClientConfiguration:
        return self._configuration

    def create_check_status_response(self, request: Any, instance_id: str) -> func.HttpResponse:
        """Creates an HTTP response that is useful for checking the status of the specified instance.

        Parameters
        ----------
        request : Any
            The HTTP request that triggered the current function. If it carries a URL,
            the management URLs are rewritten to use its origin.
        instance_id : str
            The ID of the orchestration instance to check.

        Returns
        -------
        func.HttpResponse
            An HTTP 202 response with a Location header and a payload containing
            instance management URLs.
        """
        payload = self._get_client_response_links(request, instance_id)
        return func.HttpResponse(
            body=str(payload),
            status_code=202,
            mimetype="application/json",
            headers={
                "Content-Type": "application/json",
                "Location": payload.status_query_get_uri,
                "Retry-After": str(RETRY_AFTER_SECONDS),
            },
        )

    def create_http_management_payload(self, instance_id: str) -> HttpManagementPayload:
        """Creates an HttpManagementPayload that contains the instance management HTTP endpoints.

        Parameters
        ----------
        instance_id : str
            The ID of the orchestration instance.
        """
        return self._get_client_response_links(None, instance_id)

    def get_status(self, instance_id: str, show_history: bool = False,
                   show_history_output: bool = False) -> Optional[DurableOrchestrationStatus]:
        """Gets the status of the specified orchestration instance.

        Parameters
        ----------
        instance_id : str
            The ID of the orchestration instance to query.
        show_history : bool
            Whether to include the execution history in the response.
        show_history_output : bool
            Whether to include inputs and outputs in the execution history.

        Returns
        -------
        Optional[DurableOrchestrationStatus]
            The status of the instance, or None if the webhook returned no status object.

        Raises
        ------
        UnrecognizedStatusError
            If the webhook responds with a status code outside 200, 202, 400, 404 and 500.
        """
        url = self._configuration.management_urls["statusQueryGetUri"].replace(
            self._configuration.id_placeholder, instance_id)
        if show_history:
            url = helpers.append_query(url, SHOW_HISTORY_QUERY_KEY, "true")
        if show_history_output:
            url = helpers.append_query(url, SHOW_HISTORY_OUTPUT_QUERY_KEY, "true")

        res = self._get(url)
        if res.status in (
                200,  # instance completed
                202,  # instance in progress
                400,  # instance failed or terminated
                404,  # instance not found or pending
                500):  # instance failed with unhandled exception
            return new_orchestration_status(res.body)
        raise UnrecognizedStatusError(res.status, res.body)

    def get_status_all(self) -> list[DurableOrchestrationStatus]:
        """Gets the status of all orchestration instances."""
        res = self._get(self._get_status_query_all_url())
        return self._to_status_list(res.body)

    def get_status_by(self, created_time_from: Optional[datetime] = None,
                      created_time_to: Optional[datetime] = None,
                      runtime_status: Optional[Sequence[OrchestrationRuntimeStatus]] = None
                      ) -> list[DurableOrchestrationStatus]:
        """Gets the status of all orchestration instances that match the specified conditions.

        Parameters
        ----------
        created_time_from : Optional[datetime]
            Return instances created after this time.
        created_time_to : Optional[datetime]
            Return instances created before this time.
        runtime_status : Optional[Sequence[OrchestrationRuntimeStatus]]
            Return instances whose runtime status matches any of these values.

        Raises
        ------
        WebhookError
            If the webhook responds with a status code above 202.
        """
        url = self._get_status_query_all_url()
        if created_time_from:
            url = helpers.append_query(url, CREATED_TIME_FROM_QUERY_KEY, helpers.to_iso_timestamp(created_time_from))
        if created_time_to:
            url = helpers.append_query(url, CREATED_TIME_TO_QUERY_KEY, helpers.to_iso_timestamp(created_time_to))
        if runtime_status:
            url = helpers.append_query(url, RUNTIME_STATUS_QUERY_KEY, ",".join(str(s) for s in runtime_status))

        res = self._get(url)
        if res.status > 202:
            raise WebhookError(f"Webhook returned status code {res.status}: {res.body}", res.status, res.body)
        return self._to_status_list(res.body)

    def raise_event(self, instance_id: str, event_name: str, event_data: Optional[Any] = None,
                    task_hub_name: Optional[str] = None, connection_name: Optional[str] = None) -> None:
        """Sends an event notification message to a waiting orchestration instance.

        In order to handle the event, the target orchestration instance must be
        waiting for an event named `event_name`. If the instance has already
        completed or failed, the event is accepted and has no effect.

        Parameters
        ----------
        instance_id : str
            The ID of the orchestration instance that will handle the event.
        event_name : str
            The name of the event.
        event_data : Optional[Any]
            The JSON-serializable data associated with the event.
        task_hub_name : Optional[str]
            The task hub of the target instance, if different from this client's.
        connection_name : Optional[str]
            The name of the connection string associated with `task_hub_name`.
        """
        if not event_name:
            raise ValueError("event_name must be a valid string.")

        url = self._configuration.management_urls["sendEventPostUri"] \
            .replace(self._configuration.id_placeholder, instance_id) \
            .replace(EVENT_NAME_PLACEHOLDER, event_name)
        if task_hub_name:
            url = url.replace(self.task_hub_name, task_hub_name, 1)
        if connection_name:
            url = _CONNECTION_QUERY_PATTERN.sub(lambda m: m.group(1) + connection_name, url)

        self._logger.info(f"Raising event '{event_name}' for instance '{instance_id}'.")
        res = self._post(url, event_data)
        if res.status in (
                202,  # event accepted
                410):  # instance completed or failed
            return
        elif res.status == 404:
            raise InstanceNotFoundError(instance_id, res.body)
        elif res.status == 400:
            raise UnsupportedContentTypeError(res.body)
        raise UnrecognizedStatusError(res.status, res.body)

    def rewind(self, instance_id: str, reason: str) -> None:
        """Rewinds the specified failed orchestration instance with a reason."""
        url = self._configuration.management_urls["rewindPostUri"] \
            .replace(self._configuration.id_placeholder, instance_id) \
            .replace(REASON_PLACEHOLDER, reason)

        self._logger.info(f"Rewinding instance '{instance_id}'.")
        res = self._post(url)
        if res.status == 202:
            return
        elif res.status == 404:
            raise InstanceNotFoundError(instance_id, res.body)
        elif res.status == 410:
            raise RewindNotSupportedError(instance_id, res.body)
        raise UnrecognizedStatusError(res.status, res.body)

    def start_new(self, orchestrator_function_name: str, instance_id: Optional[str] = None,
                  input: Optional[Any] = None) -> Optional[str]:
        """Starts a new instance of the specified orchestrator function.

        If an orchestration instance with the specified ID already exists, the
        existing instance will be silently replaced by this new instance.

        Parameters
        ----------
        orchestrator_function_name : str
            The name of the orchestrator function to start.
        instance_id : Optional[str]
            The ID to use for the new orchestration instance. If omitted, the host generates one.
        input : Optional[Any]
            JSON-serializable input value for the orchestrator function.

        Returns
        -------
        Optional[str]
            The ID of the new orchestration instance, or None if the webhook
            accepted the request without returning a body.
        """
        if not orchestrator_function_name:
            raise ValueError("orchestrator_function_name must be a valid string.")

        url = self._configuration.creation_urls["createNewInstancePostUri"] \
            .replace(FUNCTION_NAME_PLACEHOLDER, orchestrator_function_name) \
            .replace(INSTANCE_ID_SEGMENT_PLACEHOLDER, f"/{instance_id}" if instance_id else "")

        self._logger.info(f"Starting new '{orchestrator_function_name}' instance"
                          + (f" with ID = '{instance_id}'." if instance_id else "."))
        res = self._post(url, input)
        if res.status > 202:
            if res.body is None:
                message = f"Webhook returned status code {res.status}"
            else:
                message = res.body if isinstance(res.body, str) else shared.to_json(res.body)
            raise WebhookError(message, res.status, res.body)
        elif shared.is_empty_body(res.body):
            return None
        return res.body.get("id") if isinstance(res.body, dict) else None

    def terminate(self, instance_id: str, reason: str) -> None:
        """Terminates a running orchestration instance.

        Terminating an orchestration instance has no effect on any in-flight
        activity function executions or sub-orchestrations that were started
        by the terminated instance.
        """
        url = self._configuration.management_urls["terminatePostUri"] \
            .replace(self._configuration.id_placeholder, instance_id) \
            .replace(REASON_PLACEHOLDER, reason)

        self._logger.info(f"Terminating instance '{instance_id}'.")
        res = self._post(url)
        if res.status in (
                202,  # terminate accepted
                410):  # instance completed or failed
            return
        elif res.status == 404:
            raise InstanceNotFoundError(instance_id, res.body)
        raise UnrecognizedStatusError(res.status, res.body)

    def purge_instance_history(self, instance_id: str) -> int:
        """Purges the history of the specified orchestration instance.

        Returns
        -------
        int
            The number of instances deleted; 0 if no instance with that ID exists.
        """
        url = self._configuration.management_urls["purgeHistoryDeleteUri"].replace(
            self._configuration.id_placeholder, instance_id)

        self._logger.info(f"Purging history of instance '{instance_id}'.")
        res = self._delete(url)
        if res.status == 200:
            return int(res.body.get("instancesDeleted", 0)) if isinstance(res.body, dict) else 0
        elif res.status == 404:
            return 0
        raise UnrecognizedStatusError(res.status, res.body)

    def wait_for_completion_or_create_check_status_response(
            self, request: Any, instance_id: str,
            timeout_in_milliseconds: int = DEFAULT_TIMEOUT_IN_MILLISECONDS,
            retry_interval_in_milliseconds: int = DEFAULT_RETRY_INTERVAL_IN_MILLISECONDS) -> func.HttpResponse:
        """Waits for the instance to finish, or returns a check-status response if it does not in time.

        The instance status is polled every `retry_interval_in_milliseconds`
        until it reaches a terminal state or `timeout_in_milliseconds` elapses.
        Completed instances produce a 200 response with the orchestration
        output; canceled and terminated instances a 200 response with the
        status; failed instances a 500 response with the status. If the
        timeout elapses first, the response is identical to the one from
        :meth:`create_check_status_response`.

        Parameters
        ----------
        request : Any
            The HTTP request that triggered the current function.
        instance_id : str
            The unique ID of the instance to check.
        timeout_in_milliseconds : int
            Total allowed time to wait for the output. Defaults to 10 seconds.
        retry_interval_in_milliseconds : int
            Time between status checks. Defaults to 1 second.
        """
        if retry_interval_in_milliseconds > timeout_in_milliseconds:
            raise ValueError(
                f"Total timeout {timeout_in_milliseconds} (ms) should be bigger than "
                f"retry timeout {retry_interval_in_milliseconds} (ms)")

        start = time.monotonic()
        while True:
            status = self.get_status(instance_id)
            if status is not None:
                if status.runtime_status == OrchestrationRuntimeStatus.COMPLETED:
                    self._logger.info(f"Instance '{instance_id}' completed.")
                    return self._create_http_response(200, status.output)
                elif status.runtime_status in (OrchestrationRuntimeStatus.CANCELED,
                                               OrchestrationRuntimeStatus.TERMINATED):
                    self._logger.info(f"Instance '{instance_id}' was {status.runtime_status.value.lower()}.")
                    return self._create_http_response(200, status.to_json())
                elif status.runtime_status == OrchestrationRuntimeStatus.FAILED:
                    self._logger.info(f"Instance '{instance_id}' failed.")
                    return self._create_http_response(500, status.to_json())

            elapsed_in_milliseconds = (time.monotonic() - start) * 1000
            if elapsed_in_milliseconds < timeout_in_milliseconds:
                remaining = timeout_in_milliseconds - elapsed_in_milliseconds
                time.sleep(min(retry_interval_in_milliseconds, remaining) / 1000)
            else:
                self._logger.info(
                    f"Instance '{instance_id}' did not complete within {timeout_in_milliseconds} ms.")
                return self.create_check_status_response(request, instance_id)

    @staticmethod
    def _create_http_response(status_code: int, body: Any) -> func.HttpResponse:
        body_as_json = shared.to_json(body)
        return func.HttpResponse(
            body=body_as_json,
            status_code=status_code,
            mimetype="application/json",
            headers={
                "Content-Type": "application/json",
                "Content-Length": str(len(body_as_json.encode("utf-8"))),
            },
        )

    def _get_client_response_links(self, request: Any, instance_id: str) -> HttpManagementPayload:
        return HttpManagementPayload(
            instance_id,
            self._configuration.management_urls,
            self._configuration.id_placeholder,
            request_url=helpers.get_request_url(request))

    def _get_status_query_all_url(self) -> str:
        # omit the instance ID to query all instances
        return self._configuration.management_urls["statusQueryGetUri"].replace(
            self._configuration.id_placeholder, "")

    @staticmethod
    def _to_status_list(body: Any) -> list[DurableOrchestrationStatus]:
        if not isinstance(body, list):
            return body
        return [DurableOrchestrationStatus.from_json(item) if isinstance(item, dict) else item for item in body]

    def _get(self, url: str) -> HttpResult:
        self._logger.debug(f"GET {urlparse(url).path}")
        return self._transport_factory(url).get(url)

    def _post(self, url: str, body: Optional[Any] = None) -> HttpResult:
        self._logger.debug(f"POST {urlparse(url).path}")
        return self._transport_factory(url).post(url, body)

    def _delete(self, url: str) -> HttpResult:
        self._logger.debug(f"DELETE {urlparse(url).path}")
        return self._transport_factory(url).delete(url)


def get_client(binding: Union[ClientConfiguration, dict[str, Any], str], **kwargs) -> DurableOrchestrationClient:
    """Returns a DurableOrchestrationClient for the given durable client binding.

    `binding` is the JSON string, dict or ClientConfiguration supplied by the
    Functions host for a ``durableClient`` input binding.
    """
    return DurableOrchestrationClient(binding, **kwargs)
