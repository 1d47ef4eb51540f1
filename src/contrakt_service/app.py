"""HTTP service for running the Contrakt agent."""

import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, field_validator

from contrakt.graph import ContraktAgent
from contrakt.models import ContractArtifact
from contrakt.telemetry import telemetry
from contrakt.templates import TemplateLookupError

logger = logging.getLogger(__name__)

TEMPLATE_ERROR_DETAIL = "Contract template lookup failed."

app = FastAPI(title="Contrakt Agent Service")

_agent: Optional[ContraktAgent] = None


def get_agent() -> ContraktAgent:
    """Return the shared agent, building it from the environment on first use."""
    global _agent
    if _agent is None:
        _agent = ContraktAgent.from_env()
    return _agent


def set_agent(agent: Optional[ContraktAgent]) -> None:
    """Replace the shared agent (None forces a rebuild on next use)."""
    global _agent
    _agent = agent


@app.on_event("startup")
async def validate_startup_configuration() -> None:
    """Fail fast on missing credentials and build the shared agent."""
    telemetry.configure()
    get_agent()


class AgentRunRequest(BaseModel):
    """Request payload for agent execution."""

    input: str = Field(..., min_length=1)
    chat_history: list[tuple[str, str]] = Field(default_factory=list)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)

    @field_validator("input")
    @classmethod
    def _reject_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("input must not be blank")
        return value


class AgentRunResponse(BaseModel):
    """Response payload for agent execution."""

    result: Optional[str] = None
    contract: Optional[ContractArtifact] = None
    messages: list[str] = Field(default_factory=list)
    operation: Optional[str] = None
    completed: bool = False


def _to_response(state: dict[str, Any]) -> AgentRunResponse:
    operation = state.get("operation")
    return AgentRunResponse(
        result=state.get("result"),
        contract=state.get("contract_artifact"),
        messages=list(state.get("messages") or []),
        operation=getattr(operation, "value", operation),
        completed=state.get("result") is not None,
    )


@app.post("/agent/run", response_model=AgentRunResponse)
async def run_agent(request: AgentRunRequest) -> AgentRunResponse:
    """Run one user turn through the agent."""
    agent = get_agent()
    timeout_seconds = request.timeout_seconds or agent.settings.run_timeout_seconds
    try:
        state = await agent.arun(
            request.input,
            history=request.chat_history,
            timeout_seconds=timeout_seconds,
        )
    except TemplateLookupError:
        logger.exception("Template lookup failed for agent run")
        raise HTTPException(status_code=500, detail=TEMPLATE_ERROR_DETAIL)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return _to_response(state)


@app.get("/healthz")
async def healthz() -> dict[str, Any]:
    """Liveness probe with the template catalog size."""
    return {"status": "ok", "templates": len(get_agent().templates)}
