"""HTTP-triggered Azure Functions that start and manage orchestration instances.

POST /api/orchestrators/{functionName} starts an instance and waits up to
five seconds for it to finish before returning the check-status response.
POST /api/instances/{instanceId}/approve raises an "Approval" event.
DELETE /api/instances/{instanceId} terminates the instance."""

import azure.functions as func

import durablefunctions as df
from durablefunctions.exceptions import InstanceNotFoundError

app = func.FunctionApp(http_auth_level=func.AuthLevel.FUNCTION)


@app.route(route="orchestrators/{functionName}", methods=["POST"])
@app.generic_input_binding(arg_name="starter", type="durableClient")
def http_start(req: func.HttpRequest, starter: str) -> func.HttpResponse:
    client = df.get_client(starter)
    try:
        order = req.get_json()
    except ValueError:
        order = None

    instance_id = client.start_new(req.route_params["functionName"], None, order)
    if instance_id is None:
        return func.HttpResponse("The orchestration was accepted without an instance ID.", status_code=502)

    return client.wait_for_completion_or_create_check_status_response(req, instance_id, 5000, 500)


@app.route(route="instances/{instanceId}/approve", methods=["POST"])
@app.generic_input_binding(arg_name="starter", type="durableClient")
def approve(req: func.HttpRequest, starter: str) -> func.HttpResponse:
    client = df.get_client(starter)
    instance_id = req.route_params["instanceId"]
    try:
        client.raise_event(instance_id, "Approval", {"approved": True})
    except InstanceNotFoundError as ex:
        return func.HttpResponse(str(ex), status_code=404)
    return client.create_check_status_response(req, instance_id)


@app.route(route="instances/{instanceId}", methods=["DELETE"])
@app.generic_input_binding(arg_name="starter", type="durableClient")
def terminate(req: func.HttpRequest, starter: str) -> func.HttpResponse:
    client = df.get_client(starter)
    instance_id = req.route_params["instanceId"]
    try:
        client.terminate(instance_id, "Cancelled by caller")
    except InstanceNotFoundError as ex:
        return func.HttpResponse(str(ex), status_code=404)
    return func.HttpResponse(status_code=202)
