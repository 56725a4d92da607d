"""WebSocket router for real-time issue updates."""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from civica.errors import CivicaError
from civica.runtime import Runtime, get_runtime
from civica.schemas.issue import RawReport
from civica.websocket.hub import Subscriber
from civica.websocket.schemas import (
    ActionPlanMessage,
    ClassificationResultMessage,
    ErrorMessage,
    IssueInsightMessage,
    PingMessage,
    PongMessage,
    RequestActionPlanMessage,
    RequestClassificationMessage,
    RequestIssueInsightMessage,
    SubmitReportMessage,
    VoteMessage,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/issues")
async def websocket_issues(
    websocket: WebSocket,
    runtime: Annotated[Runtime, Depends(get_runtime)],
):
    """
    WebSocket endpoint for real-time issue updates.

    Protocol:
    - Client connects and receives the full snapshot first
    - Server streams issue events, notifications and agent activity
    - Client sends actions at any time; replies arrive on the same stream
    - Plans, previews and insights are answered in the background, so later
      votes and submissions from the same client are not held up
    - Server sends pong in response to ping for keep-alive

    Message formats:
    Client -> Server:
        {"type": "vote", "issue_id": 3}
        {"type": "submit_report", "report": {"title": "...", "location": "...", "category": "Road"}}
        {"type": "request_action_plan", "issue_id": 3}
        {"type": "request_classification", "draft": {"title": "...", "location": "..."}}
        {"type": "request_issue_insight", "issue_id": 3}
        {"type": "ping"}

    Server -> Client:
        {"type": "snapshot", "data": [...], "timestamp": "2026-01-18T10:30:00Z"}
        {"type": "issue_created" | "issue_updated" | "issue_voted", "data": {...}, "timestamp": "..."}
        {"type": "notification", "title": "...", "message": "...", "level": "info", "timestamp": "..."}
        {"type": "action_plan", "data": {...}}
        {"type": "classification_result", "data": {...}}
        {"type": "issue_insight", "data": {...}}
        {"type": "social_post", "data": {...}}
        {"type": "agent_log", "data": {...}}
        {"type": "stats_update", "data": {...}}
        {"type": "pong"}
        {"type": "error", "message": "..."}
    """
    hub = runtime.hub
    subscriber = await hub.connect(websocket)

    try:
        while True:
            # Receive message from client
            raw_message = await websocket.receive_text()

            try:
                data = json.loads(raw_message)
                await _dispatch(runtime, subscriber, data)

            except json.JSONDecodeError:
                hub.send(websocket, ErrorMessage(message="Invalid JSON"))
            except PydanticValidationError as e:
                hub.send(websocket, ErrorMessage(message=f"Invalid message: {e.errors()}"))
            except CivicaError as e:
                hub.send(websocket, ErrorMessage(message=str(e)))
            except Exception as e:
                logger.exception(f"Error processing message: {e}")
                hub.send(websocket, ErrorMessage(message="Internal server error"))

    except WebSocketDisconnect:
        await hub.disconnect(websocket)
    except Exception as e:
        logger.exception(f"WebSocket error: {e}")
        await hub.disconnect(websocket)


async def _dispatch(runtime: Runtime, subscriber: Subscriber, data: dict) -> None:
    hub = runtime.hub
    websocket = subscriber.websocket
    msg_type = data.get("type") if isinstance(data, dict) else None

    if msg_type == "vote":
        msg = VoteMessage.model_validate(data)
        await runtime.gateway.vote(msg.issue_id, msg.voter_id or subscriber.session_id)

    elif msg_type == "submit_report":
        msg = SubmitReportMessage.model_validate(data)
        await runtime.gateway.submit_report(msg.report)

    # Worker-backed requests reply later; the loop keeps serving this client
    elif msg_type == "request_action_plan":
        msg = RequestActionPlanMessage.model_validate(data)
        subscriber.spawn(_in_background(runtime, websocket, _send_action_plan, msg.issue_id))

    elif msg_type == "request_classification":
        msg = RequestClassificationMessage.model_validate(data)
        subscriber.spawn(_in_background(runtime, websocket, _send_classification, msg.draft))

    elif msg_type == "request_issue_insight":
        msg = RequestIssueInsightMessage.model_validate(data)
        subscriber.spawn(_in_background(runtime, websocket, _send_issue_insight, msg.issue_id))

    elif msg_type == "ping":
        # Respond with pong for keep-alive
        PingMessage.model_validate(data)
        hub.send(websocket, PongMessage())

    else:
        # Unknown message type
        hub.send(websocket, ErrorMessage(message=f"Unknown message type: {msg_type}"))


async def _in_background(
    runtime: Runtime,
    websocket: WebSocket,
    handler: Callable[..., Awaitable[None]],
    *args: Any,
) -> None:
    try:
        await handler(runtime, websocket, *args)
    except CivicaError as e:
        runtime.hub.send(websocket, ErrorMessage(message=str(e)))
    except Exception as e:
        logger.exception(f"Error processing request: {e}")
        runtime.hub.send(websocket, ErrorMessage(message="Internal server error"))


async def _send_action_plan(runtime: Runtime, websocket: WebSocket, issue_id: int) -> None:
    plan = await runtime.gateway.request_action_plan(issue_id)
    runtime.hub.send(websocket, ActionPlanMessage(data=plan))


async def _send_classification(runtime: Runtime, websocket: WebSocket, draft: RawReport) -> None:
    analysis = await runtime.gateway.request_classification(draft)
    runtime.hub.send(websocket, ClassificationResultMessage(data=analysis))


async def _send_issue_insight(runtime: Runtime, websocket: WebSocket, issue_id: int) -> None:
    insight = await runtime.gateway.request_issue_insight(issue_id)
    runtime.hub.send(websocket, IssueInsightMessage(data=insight))
