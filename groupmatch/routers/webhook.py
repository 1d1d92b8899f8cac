from typing import Dict

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request
from fastapi.responses import JSONResponse

from groupmatch.logging_config import get_logger
from groupmatch.services.agents import AgentProfile, get_agent
from groupmatch.services.webhook_service import CHAT_STARTED_EVENT, WebhookController

logger = get_logger("webhook")

router = APIRouter()

_controllers: Dict[str, WebhookController] = {}


def get_controller(agent: AgentProfile) -> WebhookController:
    controller = _controllers.get(agent.name)
    if controller is None:
        controller = WebhookController(agent)
        _controllers[agent.name] = controller
    return controller


def _require_agent(agent_name: str) -> AgentProfile:
    agent = get_agent(agent_name)
    if agent is None:
        raise HTTPException(status_code=404, detail=f"Unknown agent: {agent_name}")
    return agent


async def _parse_webhook_request(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


@router.get("/webhook/{agent_name}")
async def webhook_info(agent_name: str):
    agent = _require_agent(agent_name)
    return {
        "agent": agent.name,
        "displayName": agent.display_name,
        "usage": f"POST chat platform webhooks to /webhook/{agent.name}",
    }


@router.post("/webhook/{agent_name}")
async def handle_webhook(agent_name: str, request: Request, background_tasks: BackgroundTasks):
    agent = _require_agent(agent_name)
    payload = await _parse_webhook_request(request)
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid JSON body"})

    controller = get_controller(agent)
    try:
        if payload.get("event") == CHAT_STARTED_EVENT:
            acceptance = await controller.handle_chat_started(payload)
        else:
            acceptance = controller.accept(payload)
    except Exception as e:
        logger.error(
            "Webhook handling failed",
            extra={"context": {"agent": agent.name, "error": str(e)}},
            exc_info=True,
        )
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    if acceptance.inbound is not None:
        background_tasks.add_task(controller.process, acceptance.inbound)
    return JSONResponse(status_code=acceptance.status_code, content=acceptance.body)
