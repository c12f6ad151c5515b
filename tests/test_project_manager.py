import asyncio

import pytest

from conftest import FakeProjectRepository, failed, make_task, ok
from models.task_model import ProjectStatus
from services.project_manager import InvalidTransitionError, ProjectManager, ProjectNotFoundError
from shared_context.project_store import ProjectStore


def _manager(repository=None, max_iterations: int = 10) -> ProjectManager:
    return ProjectManager(ProjectStore(), repository, default_max_iterations=max_iterations)


def test_create_project_initializes_counters(repository):
    manager = _manager()
    state = manager.create_project("Todo app", repository, [make_task(1), make_task(2)])

    assert state.project_id.startswith("proj_")
    assert state.current_index == 0
    assert state.iteration == 0
    assert state.task_attempts == 0
    assert state.status == ProjectStatus.RUNNING
    assert manager.get_next_task(state.project_id).id == "task_1"


def test_project_ids_are_unique(repository):
    manager = _manager()
    ids = {manager.create_project("Idea", repository, [make_task(1)]).project_id for _ in range(50)}
    assert len(ids) == 50


def test_single_task_success_awaits_approval(repository):
    manager = _manager()
    state = manager.create_project("Idea", repository, [make_task(1)])

    outcome = manager.record_completion(state.project_id, ok())

    assert outcome.status == ProjectStatus.AWAITING_APPROVAL
    assert outcome.should_continue is False
    assert outcome.next_task is None
    assert state.current_index == 1
    assert manager.get_next_task(state.project_id) is None


def test_two_tasks_success_advances_to_second(repository):
    manager = _manager()
    state = manager.create_project("Idea", repository, [make_task(1), make_task(2)])

    outcome = manager.record_completion(state.project_id, ok())

    assert outcome.status == ProjectStatus.RUNNING
    assert outcome.should_continue is True
    assert outcome.next_task.id == "task_2"


def test_budget_of_one_fails_on_first_failure(repository):
    manager = _manager()
    state = manager.create_project("Idea", repository, [make_task(1)], max_iterations=1)

    outcome = manager.record_completion(state.project_id, failed("boom"))

    assert outcome.status == ProjectStatus.FAILED
    assert outcome.should_continue is False
    assert state.iteration == 1


def test_budget_check_takes_priority_over_success(repository):
    manager = _manager()
    state = manager.create_project("Idea", repository, [make_task(1), make_task(2)], max_iterations=1)

    outcome = manager.record_completion(state.project_id, ok())

    assert outcome.status == ProjectStatus.FAILED
    assert state.current_index == 0


def test_failure_keeps_task_and_counts_attempts(repository):
    manager = _manager()
    state = manager.create_project("Idea", repository, [make_task(1), make_task(2)])

    first = manager.record_completion(state.project_id, failed("error TS2304"))
    second = manager.record_completion(state.project_id, failed("error TS2304"))

    assert first.next_task.id == "task_1"
    assert second.should_continue is True
    assert state.status == ProjectStatus.RUNNING
    assert state.task_attempts == 2

    manager.record_completion(state.project_id, ok())
    assert state.task_attempts == 0
    assert state.current_index == 1


def test_invariants_hold_across_mixed_sequence(repository):
    manager = _manager(max_iterations=6)
    state = manager.create_project("Idea", repository, [make_task(1), make_task(2), make_task(3)])
    results = [failed("x"), ok(), failed("y"), ok(), ok(), ok(), failed("z"), ok()]

    previous_iteration = 0
    for result in results:
        manager.record_completion(state.project_id, result)
        assert 0 <= state.current_index <= len(state.tasks)
        assert state.iteration <= state.max_iterations
        if state.status == ProjectStatus.RUNNING:
            assert state.iteration == previous_iteration + 1
        previous_iteration = state.iteration


def test_idle_status_completion_is_noop(repository):
    manager = _manager()
    state = manager.create_project("Idea", repository, [make_task(1)])
    manager.record_completion(state.project_id, ok())
    iteration = state.iteration

    outcome = manager.record_completion(state.project_id, failed("late signal"))

    assert outcome.status == ProjectStatus.AWAITING_APPROVAL
    assert outcome.should_continue is False
    assert state.iteration == iteration


def test_record_completion_unknown_project():
    with pytest.raises(ProjectNotFoundError):
        _manager().record_completion("proj_missing", ok())


def test_update_with_tasks_only_in_pending_plan(repository):
    manager = _manager()
    state = manager.create_project("Idea", repository, [make_task(1)], status=ProjectStatus.PENDING_PLAN)

    assert manager.update_project_with_tasks(state.project_id, [make_task(7), make_task(8)]) is True
    assert state.status == ProjectStatus.RUNNING
    assert [t.id for t in state.tasks] == ["task_7", "task_8"]

    assert manager.update_project_with_tasks(state.project_id, [make_task(9)]) is False
    assert [t.id for t in state.tasks] == ["task_7", "task_8"]
    assert state.status == ProjectStatus.RUNNING


def test_update_with_tasks_never_mutates_other_statuses(repository):
    manager = _manager()
    for status in (ProjectStatus.RUNNING, ProjectStatus.PENDING_FIX, ProjectStatus.FAILED, ProjectStatus.COMPLETED):
        state = manager.create_project("Idea", repository, [make_task(1)], status=status)
        assert manager.update_project_with_tasks(state.project_id, [make_task(2)]) is False
        assert state.status == status
        assert [t.id for t in state.tasks] == ["task_1"]


def test_status_transitions(repository):
    manager = _manager()
    state = manager.create_project("Idea", repository, [make_task(1)])

    assert manager.set_project_running(state.project_id) is False
    assert manager.set_pending_fix(state.project_id) is True
    assert state.status == ProjectStatus.PENDING_FIX
    assert manager.set_project_running(state.project_id) is True
    assert manager.mark_completed(state.project_id) is False

    manager.record_completion(state.project_id, ok())
    assert manager.mark_failed(state.project_id) is False
    assert manager.mark_completed(state.project_id) is True
    assert state.status == ProjectStatus.COMPLETED


def test_claim_agent_run_drops_duplicates_and_stale_agents(repository):
    manager = _manager()
    state = manager.create_project("Idea", repository, [make_task(1)])
    manager.set_current_agent_id(state.project_id, "agent_1")
    manager.set_current_agent_id(state.project_id, "agent_2")

    assert manager.claim_agent_run("agent_1") is None
    assert manager.claim_agent_run("agent_2") is state
    assert state.current_agent_id is None
    assert state.last_agent_id == "agent_2"
    assert manager.claim_agent_run("agent_2") is None


def test_projects_are_isolated(repository):
    manager = _manager()
    first = manager.create_project("A", repository, [make_task(1)])
    second = manager.create_project("B", repository, [make_task(1), make_task(2)])
    manager.set_current_agent_id(first.project_id, "agent_a")
    manager.set_current_agent_id(second.project_id, "agent_b")

    manager.record_completion(second.project_id, ok())

    assert first.iteration == 0
    assert manager.get_project_by_agent_id("agent_a") is first
    assert manager.get_project_by_agent_id("agent_b") is second


def test_require_project_raises():
    with pytest.raises(ProjectNotFoundError):
        _manager().require_project("proj_unknown")


def test_invalid_transition_error_message(repository):
    error = InvalidTransitionError("proj_1", ProjectStatus.RUNNING, ProjectStatus.AWAITING_APPROVAL)
    assert "running" in str(error)
    assert error.expected == ProjectStatus.AWAITING_APPROVAL


def test_persist_writes_shadow_copy(repository):
    repo = FakeProjectRepository()
    manager = _manager(repo)
    state = manager.create_project("Idea", repository, [make_task(1)])

    assert asyncio.run(manager.persist(state.project_id)) is True
    assert repo.upserts == [(state.project_id, "running")]


def test_persist_failure_keeps_transition(repository):
    manager = _manager(FakeProjectRepository(fail=True))
    state = manager.create_project("Idea", repository, [make_task(1)])
    manager.record_completion(state.project_id, ok())

    assert asyncio.run(manager.persist(state.project_id)) is False
    assert state.status == ProjectStatus.AWAITING_APPROVAL


def test_persist_without_repository(repository):
    manager = _manager()
    state = manager.create_project("Idea", repository, [make_task(1)])
    assert asyncio.run(manager.persist(state.project_id)) is False


def test_hydrate_drops_credentials(repository):
    from models.task_model import AgentCredentials

    manager = _manager()
    state = manager.create_project(
        "Idea", repository, [make_task(1)], credentials=AgentCredentials(coding_api_key="secret-key")
    )
    other = ProjectManager(ProjectStore())
    other.hydrate(state.model_copy())

    assert other.get_project(state.project_id).credentials_override is None
    assert "secret-key" not in state.model_dump_json()


def test_list_projects_newest_first(repository):
    manager = _manager()
    first = manager.create_project("A", repository, [make_task(1)])
    second = manager.create_project("B", repository, [make_task(1)])
    second.created_at = first.created_at.replace(year=first.created_at.year + 1)

    assert [s.project_id for s in manager.list_projects()] == [second.project_id, first.project_id]
