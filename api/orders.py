import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from temporalio.client import Client
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.service import RPCError, RPCStatusCode

from models.order import Order, PipelineRequest
from workflows.order_workflow import OrderPipelineWorkflow

logger = logging.getLogger(__name__)

router = APIRouter()


def workflow_id_for(order_id: str) -> str:
    return f"order-{order_id}"


def require_temporal_client(request: Request) -> Client:
    client = getattr(request.app.state, "temporal_client", None)
    if client is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Temporal service unavailable")
    return client


def _not_found_or_500(order_id: str, action: str, e: Exception) -> HTTPException:
    if isinstance(e, RPCError) and e.status == RPCStatusCode.NOT_FOUND:
        return HTTPException(status_code=404, detail=f"Order workflow {workflow_id_for(order_id)} not found")
    logger.error(f"Failed to {action} for order {order_id}: {e}")
    return HTTPException(status_code=500, detail=f"Failed to {action}: {e}")


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def create_order(order_data: Dict, request: Request, client: Client = Depends(require_temporal_client)):
    """Validates the order and starts an OrderPipelineWorkflow for it."""
    if "items" not in order_data:
        raise HTTPException(status_code=400, detail="Missing items")

    try:
        order_fields = {"items": order_data["items"]}
        if order_data.get("order_id"):
            order_fields["id"] = order_data["order_id"]
        pipeline_request = PipelineRequest(
            order=Order(**order_fields),
            payment_failure_rate=order_data.get("payment_failure_rate", 0.0),
            seed=order_data.get("seed"),
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid order data: {e}")

    order_id = pipeline_request.order.id
    try:
        await client.start_workflow(
            OrderPipelineWorkflow.run,
            pipeline_request.model_dump(mode="json"),
            id=workflow_id_for(order_id),
            task_queue=request.app.state.settings.task_queue,
        )
    except WorkflowAlreadyStartedError:
        raise HTTPException(status_code=409, detail=f"Order {order_id} is already being processed")
    except Exception as e:
        logger.error(f"Error starting workflow for order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to start order pipeline")

    logger.info(f"Started order pipeline for order {order_id}")
    return {"order_id": order_id, "message": "Order processing started."}


@router.get("/{order_id}/status")
async def get_order_status(order_id: str, client: Client = Depends(require_temporal_client)):
    """Gets the current pipeline state of an order."""
    handle = client.get_workflow_handle(workflow_id_for(order_id))
    try:
        state = await handle.query(OrderPipelineWorkflow.get_status)
    except Exception as e:
        raise _not_found_or_500(order_id, "get order status", e)
    return {"order_id": order_id, "state": state}


@router.get("/{order_id}/outcome")
async def get_order_outcome(order_id: str, client: Client = Depends(require_temporal_client)):
    """Gets the latest outcome snapshot of an order."""
    handle = client.get_workflow_handle(workflow_id_for(order_id))
    try:
        details = await handle.query(OrderPipelineWorkflow.get_details)
    except Exception as e:
        raise _not_found_or_500(order_id, "get order outcome", e)
    if details is None:
        raise HTTPException(status_code=404, detail=f"No outcome recorded yet for order {order_id}")
    return details


@router.post("/{order_id}/cancel", status_code=status.HTTP_202_ACCEPTED)
async def cancel_order(order_id: str, client: Client = Depends(require_temporal_client)):
    """Sends a cancellation signal to the order workflow."""
    handle = client.get_workflow_handle(workflow_id_for(order_id))
    try:
        await handle.signal(OrderPipelineWorkflow.cancel_order, "cancelled by customer")
    except Exception as e:
        raise _not_found_or_500(order_id, "send cancellation signal", e)
    return {"message": "Cancellation signal sent"}
