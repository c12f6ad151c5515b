import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from agents.base_agent import AgentAPIError, MissingCredentialError
from agents.planning_agent import InvalidGatewayError
from config.constants import MIN_PLANNING_TOKEN_LENGTH
from models.request_model import ApproveRequest, ProjectView, StartRequest
from models.signal_model import (
    CodingAgentSignal,
    SignalParseError,
    parse_coding_agent_signal,
    parse_planning_signal,
)
from orchestrator.outcome_generator import generate_outcome
from services.completion_handler import PlanningAction
from services.project_manager import InvalidTransitionError, ProjectNotFoundError
from utils.security_utils import secure_compare, verify_webhook_signature

logger = logging.getLogger("AgentBridge")

SERVICE_NAME = "agent-bridge"
SERVICE_VERSION = "1.0.0"
MEMORY_RECORDS_LIMIT = 50


def _read_json(raw: bytes) -> Any:
    try:
        return json.loads(raw or b"null")
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise SignalParseError("Corpo do webhook não é JSON válido") from None


def _planning_token_error(request: Request, expected: Optional[str]) -> Optional[JSONResponse]:
    if not expected or len(expected) < MIN_PLANNING_TOKEN_LENGTH:
        return JSONResponse(
            status_code=503,
            content={
                "error": f"Webhook do planning agent não configurado. Defina PLANNING_AGENT_TOKEN "
                f"(mínimo {MIN_PLANNING_TOKEN_LENGTH} caracteres)."
            },
        )
    auth = request.headers.get("authorization") or request.headers.get("x-planning-token")
    if not auth or not auth.strip():
        return JSONResponse(status_code=401, content={"error": "Header Authorization ou X-Planning-Token ausente"})
    provided = auth[7:].strip() if auth.startswith("Bearer ") else auth.strip()
    if not secure_compare(provided, expected):
        return JSONResponse(status_code=401, content={"error": "Token do planning agent inválido"})
    return None


def create_app(system) -> FastAPI:
    """
    Camada de transporte HTTP sobre o sistema já composto.

    Args:
        system: AgentBridgeSystem (ou objeto com os mesmos componentes)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await system.initialize()
        logger.info("Agent Bridge inicializado via API")
        try:
            yield
        finally:
            logger.info("Encerrando Agent Bridge")
            await system.shutdown()

    app = FastAPI(title="Agent Bridge API", version=SERVICE_VERSION, lifespan=lifespan)
    handler = system.completion_handler

    async def _run_agent_complete(signal: CodingAgentSignal):
        try:
            await handler.handle_agent_complete(signal)
        except Exception as e:
            logger.error(f"Erro ao processar término do agente {signal.agent_id}: {str(e)}", exc_info=True)

    async def _run_planning_action(action: PlanningAction):
        try:
            await handler.execute_planning_action(action)
        except Exception as e:
            logger.error(
                f"Erro ao processar sinal '{action.kind}' do planning agent para {action.project_id}: {str(e)}",
                exc_info=True,
            )

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": SERVICE_NAME, "version": SERVICE_VERSION}

    @app.get("/status")
    async def get_status():
        return system.get_system_status()

    @app.get("/outcome")
    async def get_outcome(idea: str = Query(..., min_length=1, max_length=2000)):
        return generate_outcome(idea).model_dump(mode="json")

    @app.post("/start")
    async def start(request: StartRequest):
        try:
            response = await system.orchestrator.start_project(request)
        except MissingCredentialError as e:
            raise HTTPException(status_code=503, detail=str(e))
        except InvalidGatewayError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except AgentAPIError as e:
            logger.error(f"Falha de agente externo no /start: {str(e)}")
            raise HTTPException(status_code=502, detail=str(e))
        except Exception as e:
            logger.error(f"Erro no /start: {str(e)}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Erro interno: {str(e)}")

        status_code = 200 if response.project_id is None else 202
        return JSONResponse(status_code=status_code, content=response.model_dump(mode="json", exclude_none=True))

    @app.post("/approve")
    async def approve(request: ApproveRequest):
        try:
            released = await handler.approve(request.project_id)
        except ProjectNotFoundError:
            raise HTTPException(status_code=404, detail="Projeto não encontrado")
        except InvalidTransitionError as e:
            raise HTTPException(status_code=400, detail=f"Projeto não aguarda aprovação. Status atual: {e.status.value}")

        if not released:
            raise HTTPException(status_code=500, detail="Falha no build/envio para a App Store")
        return {"project_id": request.project_id, "status": "completed", "message": "Envio para a App Store iniciado"}

    @app.get("/projects")
    async def list_projects():
        projects = system.project_manager.list_projects()
        return {"projects": [ProjectView.from_state(state).model_dump(mode="json") for state in projects]}

    @app.get("/projects/{project_id}")
    async def get_project(project_id: str):
        state = system.project_manager.get_project(project_id)
        if state is None:
            raise HTTPException(status_code=404, detail="Projeto não encontrado")
        return ProjectView.from_state(state).model_dump(mode="json")

    @app.get("/projects/{project_id}/memory")
    async def get_project_memory(project_id: str):
        if system.project_manager.get_project(project_id) is None:
            raise HTTPException(status_code=404, detail="Projeto não encontrado")
        summary = await system.memory_store.get_project_summary(project_id)
        records = await system.memory_store.query(project_id, limit=MEMORY_RECORDS_LIMIT)
        return {
            "summary": summary.model_dump(mode="json"),
            "records": [record.model_dump(mode="json") for record in records],
        }

    @app.post("/webhooks/coding-agent")
    async def coding_agent_webhook(request: Request, background_tasks: BackgroundTasks):
        raw = await request.body()
        signal = None
        parse_error = None
        try:
            signal = parse_coding_agent_signal(_read_json(raw))
        except SignalParseError as e:
            parse_error = e

        secret = system.coding_agent.webhook_secret
        if signal is not None:
            owner = system.project_manager.get_project_by_agent_id(signal.agent_id)
            if owner is not None and owner.credentials_override is not None:
                override = owner.credentials_override.coding_webhook_secret
                if override is not None:
                    secret = override.get_secret_value()

        if secret and not verify_webhook_signature(raw, request.headers.get("x-webhook-signature"), secret):
            logger.warning("Assinatura inválida no webhook do coding agent")
            raise HTTPException(status_code=401, detail="Assinatura do webhook inválida")

        if parse_error is not None:
            raise HTTPException(status_code=400, detail=str(parse_error))

        if not signal.is_terminal:
            return {"received": True, "ignored": True}

        background_tasks.add_task(_run_agent_complete, signal)
        return {"received": True}

    @app.post("/webhooks/planning-agent")
    async def planning_agent_webhook(request: Request, background_tasks: BackgroundTasks):
        token_error = _planning_token_error(request, system.planning_agent.token)
        if token_error is not None:
            return token_error

        try:
            body = _read_json(await request.body())
            signal = parse_planning_signal(body)
            explicit_project_id = isinstance(body, dict) and bool(body.get("projectId") or body.get("project_id"))
            action = handler.route_planning_signal(signal, explicit_project_id)
        except ProjectNotFoundError:
            raise HTTPException(status_code=404, detail="Projeto não encontrado")
        except InvalidTransitionError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except SignalParseError as e:
            raise HTTPException(status_code=400, detail=str(e))

        background_tasks.add_task(_run_planning_action, action)
        return JSONResponse(
            status_code=202,
            content={"received": True, "project_id": action.project_id, "action": action.kind},
        )

    return app
