import sys
from pathlib import Path
from typing import Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from agents.base_agent import AgentAPIError
from config.system_config import load_configuration
from main import AgentBridgeSystem
from models.task_model import RepositoryRef, Task, VerificationResult
from services.verification_engine import CommandResult

PLANNING_TOKEN = "planning-token-0123456789"


def make_task(index: int, title: Optional[str] = None, prompt: Optional[str] = None) -> Task:
    return Task(
        id=f"task_{index}",
        title=title or f"Task {index}",
        description=f"Description {index}",
        prompt=prompt or f"Implement step {index}",
    )


def ok() -> VerificationResult:
    return VerificationResult(success=True)


def failed(*errors: str, stderr: Optional[str] = None) -> VerificationResult:
    return VerificationResult(success=False, errors=list(errors), stderr=stderr)


class FakeCodingAgent:
    def __init__(self, configured: bool = True, fail: bool = False, webhook_secret: Optional[str] = None):
        self.configured = configured
        self.fail = fail
        self.webhook_secret = webhook_secret
        self.simulation = False
        self.launches: list[dict] = []

    def is_configured(self, credentials=None) -> bool:
        if credentials is not None and credentials.coding_api_key is not None:
            return True
        return self.configured

    async def launch(self, prompt, repository, branch="main", credentials=None) -> str:
        if self.fail:
            raise AgentAPIError("coding-agent", 503, "indisponível")
        agent_id = f"agent_{len(self.launches) + 1}"
        self.launches.append({"agent_id": agent_id, "prompt": prompt, "repository": repository, "branch": branch})
        return agent_id

    async def get_status(self, agent_id, credentials=None) -> str:
        return "FINISHED"


class FakePlanningAgent:
    def __init__(self, token: Optional[str] = None, fail_fix: bool = False):
        self.token = token
        self.fail_fix = fail_fix
        self.plan_requests: list[dict] = []
        self.fix_requests: list[dict] = []
        self.notifications: list[str] = []

    def is_configured(self, credentials=None) -> bool:
        if credentials is not None and credentials.planning_token is not None:
            return True
        return bool(self.token)

    async def request_plan(self, idea, project_id, credentials=None) -> bool:
        self.plan_requests.append({"idea": idea, "project_id": project_id})
        return True

    async def request_fix(self, project_id, errors, task_prompt, stderr=None, credentials=None) -> bool:
        if self.fail_fix:
            raise AgentAPIError("planning-agent", 502, "gateway indisponível")
        self.fix_requests.append({"project_id": project_id, "errors": list(errors), "task_prompt": task_prompt})
        return True

    async def notify(self, message, credentials=None) -> bool:
        self.notifications.append(message)
        return True


class FakeGitService:
    def __init__(self, root: Path, error: Optional[Exception] = None):
        self.root = root
        self.error = error
        self.calls: list[dict] = []
        self.default_token = None

    async def clone_or_pull(self, repository, branch, target_dir, token=None) -> str:
        self.calls.append({"repository": repository, "branch": branch, "target_dir": target_dir, "token": token})
        if self.error is not None:
            raise self.error
        return str(self.root)


class FakeVerifier:
    def __init__(self, *results: VerificationResult):
        self.results = list(results)
        self.calls: list[str] = []

    async def verify(self, repo_path: str) -> VerificationResult:
        self.calls.append(repo_path)
        if not self.results:
            return ok()
        return self.results.pop(0)


class FakeRelease:
    def __init__(self, result: bool = True):
        self.result = result
        self.calls: list[str] = []

    async def execute(self, project_id: str) -> bool:
        self.calls.append(project_id)
        return self.result


class FakeProjectRepository:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.upserts: list[tuple[str, str]] = []

    async def upsert(self, state):
        if self.fail:
            raise ConnectionError("banco indisponível")
        self.upserts.append((state.project_id, state.status.value))

    async def load_all(self):
        return []


class FakeCommandRunner:
    """Substitui o subprocess: devolve resultados programados por nome de passo"""

    def __init__(self, results: Optional[dict[str, CommandResult]] = None):
        self.results = results or {}
        self.calls: list[tuple[list[str], str, float]] = []

    async def __call__(self, command, cwd, timeout) -> CommandResult:
        self.calls.append((list(command), cwd, timeout))
        key = " ".join(command)
        for name, result in self.results.items():
            if name in key:
                return result
        return CommandResult("", "", 0)


@pytest.fixture
def config():
    return load_configuration(environ={})


@pytest.fixture
def repository():
    return RepositoryRef(url="acme/mobile-app", branch="main")


@pytest.fixture
def make_system(config, tmp_path):
    def _make(
        planning_token: Optional[str] = None,
        coding_configured: bool = True,
        verifier: Optional[FakeVerifier] = None,
        git_error: Optional[Exception] = None,
        release_result: bool = True,
        max_iterations: Optional[int] = None,
        webhook_secret: Optional[str] = None,
    ) -> AgentBridgeSystem:
        cfg = dict(config)
        cfg["work_dir"] = str(tmp_path / "work")
        if max_iterations is not None:
            cfg["orchestrator"] = {**cfg["orchestrator"], "max_iterations": max_iterations}
        return AgentBridgeSystem(
            config=cfg,
            coding_agent=FakeCodingAgent(configured=coding_configured, webhook_secret=webhook_secret),
            planning_agent=FakePlanningAgent(token=planning_token),
            verification_engine=verifier or FakeVerifier(),
            git_service=FakeGitService(tmp_path / "checkout", error=git_error),
            release_service=FakeRelease(release_result),
        )

    return _make
