import asyncio

from conftest import FakeCommandRunner
from models.memory_model import MemoryRecord, MemoryRecordType
from services.release_service import ReleaseService
from services.verification_engine import CommandResult
from shared_context.memory_store import MemoryStore, format_memory_context


class FailingMemoryRepository:
    async def insert(self, record):
        raise ConnectionError("banco indisponível")

    async def list_for_project(self, project_id, limit):
        raise ConnectionError("banco indisponível")


class StoredMemoryRepository:
    def __init__(self, records):
        self.records = records
        self.inserted = []

    async def insert(self, record):
        self.inserted.append(record)

    async def list_for_project(self, project_id, limit):
        return [r for r in self.records if r.project_id == project_id][-limit:]


def _write_all(store, project_id, entries):
    async def _run():
        for record_type, payload in entries:
            await store.write(project_id, record_type, payload)

    asyncio.run(_run())


def test_query_is_newest_first_and_filtered():
    store = MemoryStore()
    _write_all(
        store,
        "proj_1",
        [
            (MemoryRecordType.PROMPT, {"prompt_text": "first"}),
            (MemoryRecordType.TRADEOFF, {"tradeoff": "Postponed: Settings"}),
            (MemoryRecordType.PROMPT, {"prompt_text": "second"}),
        ],
    )

    prompts = asyncio.run(store.query("proj_1", types=[MemoryRecordType.PROMPT]))

    assert [r.payload["prompt_text"] for r in prompts] == ["second", "first"]
    assert len(asyncio.run(store.query("proj_1", limit=1))) == 1
    assert asyncio.run(store.query("proj_other")) == []


def test_summary_deduplicates_and_truncates():
    store = MemoryStore()
    _write_all(
        store,
        "proj_1",
        [
            (MemoryRecordType.ARCHITECTURAL_DECISION, {"decision": "Use Expo Router"}),
            (MemoryRecordType.ARCHITECTURAL_DECISION, {"decision": "Use Expo Router"}),
            (MemoryRecordType.FAILED_FIX, {"error_output": "x" * 500}),
            (MemoryRecordType.PROMPT, {"prompt_text": "p" * 400}),
            (MemoryRecordType.TRADEOFF, {"tradeoff": 42}),
        ],
    )

    summary = asyncio.run(store.get_project_summary("proj_1"))

    assert summary.architecture_decisions == ["Use Expo Router"]
    assert len(summary.failed_fix_patterns[0]) == 200
    assert len(summary.last_prompts[0]) == 150
    assert summary.tradeoffs == []


def test_summary_caps_failed_fixes():
    store = MemoryStore()
    _write_all(store, "proj_1", [(MemoryRecordType.FAILED_FIX, {"error_output": f"error {i}"}) for i in range(15)])

    summary = asyncio.run(store.get_project_summary("proj_1"))

    assert len(summary.failed_fix_patterns) == 10
    assert summary.failed_fix_patterns[0] == "error 14"


def test_repository_failures_are_tolerated():
    store = MemoryStore(FailingMemoryRepository())

    record = asyncio.run(store.write("proj_1", MemoryRecordType.PROMPT, {"prompt_text": "hello"}))

    assert record.project_id == "proj_1"
    assert len(asyncio.run(store.query("proj_1"))) == 1


def test_records_are_loaded_from_repository():
    stored = MemoryRecord(
        project_id="proj_1", type=MemoryRecordType.ARCHITECTURAL_DECISION, payload={"decision": "Zustand for state"}
    )
    repository = StoredMemoryRepository([stored])
    store = MemoryStore(repository)

    summary = asyncio.run(store.get_project_summary("proj_1"))

    assert summary.architecture_decisions == ["Zustand for state"]


def test_memory_context_text():
    store = MemoryStore()
    assert format_memory_context(asyncio.run(store.get_project_summary("proj_1"))) == ""

    _write_all(
        store,
        "proj_1",
        [
            (MemoryRecordType.ARCHITECTURAL_DECISION, {"decision": "Use Expo Router"}),
            (MemoryRecordType.PROMPT, {"prompt_text": "only prompts are not context"}),
        ],
    )
    context = format_memory_context(asyncio.run(store.get_project_summary("proj_1")))

    assert context == "Project context:\n- Architecture decisions: Use Expo Router"


def test_release_in_simulation(tmp_path):
    runner = FakeCommandRunner()
    service = ReleaseService(str(tmp_path), simulation=True, command_runner=runner)

    assert asyncio.run(service.execute("proj_1")) is True
    assert runner.calls == []


def test_release_without_checkout(tmp_path):
    service = ReleaseService(str(tmp_path), command_runner=FakeCommandRunner())
    assert asyncio.run(service.execute("proj_1")) is False


def test_release_runs_build_in_checkout(tmp_path):
    (tmp_path / "proj_1").mkdir()
    runner = FakeCommandRunner()
    service = ReleaseService(str(tmp_path), command_runner=runner)

    assert asyncio.run(service.execute("proj_1")) is True
    command, cwd, timeout = runner.calls[0]
    assert command[:3] == ["eas", "build", "--platform"]
    assert cwd == str(tmp_path / "proj_1")
    assert timeout == 600


def test_release_build_failure(tmp_path):
    (tmp_path / "proj_1").mkdir()
    runner = FakeCommandRunner({"eas": CommandResult("", "submission rejected", 1)})
    service = ReleaseService(str(tmp_path), command_runner=runner)

    assert asyncio.run(service.execute("proj_1")) is False
