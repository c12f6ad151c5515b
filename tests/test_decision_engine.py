from conftest import make_task
from guardrails import evaluate_decision
from guardrails.complexity_scorer import score_complexity, score_task
from guardrails.mvp_evaluator import evaluate_mvp_first
from guardrails.scope_gate import evaluate_scope
from models.decision_model import DecisionOutcome
from models.memory_model import ProjectMemorySummary
from models.task_model import AutonomyMode, Task


def test_ten_tasks_truncated_to_eight():
    tasks = [make_task(i) for i in range(1, 11)]

    result = evaluate_decision("Recipe sharing app", tasks)

    assert result.outcome == DecisionOutcome.APPROVE
    assert [t.id for t in result.approved_tasks] == [f"task_{i}" for i in range(1, 9)]
    assert [t.id for t in result.postponed_tasks] == ["task_9", "task_10"]
    assert any(entry.rule == "scope_gate_max_tasks" for entry in result.reasoning_log)
    assert result.scope_score == 1 - 8 / 10


def test_empty_idea_rejects():
    result = evaluate_decision("", [make_task(1)])

    assert result.outcome == DecisionOutcome.REJECT
    assert result.approved_tasks == []
    assert result.reasoning_log[0].rule == "idea_check"


def test_oversized_prompt_rejects():
    task = make_task(1, prompt="x" * 1501)

    result = evaluate_decision("Todo app", [task])

    assert result.outcome == DecisionOutcome.REJECT
    assert result.postponed_tasks == [task]


def test_prompt_at_ceiling_is_accepted():
    result = evaluate_decision("Todo app", [make_task(1, prompt="x" * 1500)])
    assert result.outcome == DecisionOutcome.APPROVE


def test_deferred_keywords_postponed():
    tasks = [make_task(1, title="Home screen"), make_task(2, title="Analytics dashboard")]

    result = evaluate_decision("Todo app", tasks)

    assert [t.id for t in result.approved_tasks] == ["task_1"]
    assert [t.id for t in result.postponed_tasks] == ["task_2"]


def test_only_deferred_tasks_rejects():
    result = evaluate_decision("Todo app", [make_task(1, title="Settings"), make_task(2, title="User profile")])
    assert result.outcome == DecisionOutcome.REJECT


def test_high_complexity_defers_last_task():
    risky = "Add authentication with oauth, payment, push notification and websocket real-time sync"
    tasks = [make_task(1, title="Auth", prompt=risky), make_task(2, title="Payments", prompt=risky)]

    result = evaluate_decision("Marketplace", tasks, mode=AutonomyMode.AUTOPILOT)

    assert [t.id for t in result.approved_tasks] == ["task_1"]
    assert result.postponed_tasks[-1].id == "task_2"
    assert result.complexity_score > 0.75 * 0.9


def test_mode_strictness_changes_threshold():
    medium = Task(id="t", title="Sync", description="", prompt="background sync")
    score = score_task(medium)
    assert 0.75 * 0.5 < score <= 0.75 * 0.9

    assisted = evaluate_decision("App", [medium, medium.model_copy(update={"id": "t2"})], mode=AutonomyMode.ASSIST)
    autopilot = evaluate_decision("App", [medium, medium.model_copy(update={"id": "t2"})], mode=AutonomyMode.AUTOPILOT)

    assert len(assisted.approved_tasks) == 1
    assert len(autopilot.approved_tasks) == 2


def test_decision_is_deterministic():
    tasks = [make_task(i, title=title) for i, title in enumerate(["Setup", "Home", "Analytics", "Payment"], 1)]
    first = evaluate_decision("Shop", tasks)
    second = evaluate_decision("Shop", tasks)

    assert first.approved_tasks == second.approved_tasks
    assert first.postponed_tasks == second.postponed_tasks
    assert first.complexity_score == second.complexity_score


def test_project_memory_is_logged_without_changing_outcome():
    tasks = [make_task(1), make_task(2)]
    memory = ProjectMemorySummary(project_id="proj_1", architecture_decisions=["Expo Router"])

    with_memory = evaluate_decision("App", tasks, memory)
    without_memory = evaluate_decision("App", tasks)

    assert any(entry.rule == "project_memory" for entry in with_memory.reasoning_log)
    assert with_memory.approved_tasks == without_memory.approved_tasks
    assert with_memory.outcome == without_memory.outcome


def test_reasoning_confidence_in_range():
    result = evaluate_decision("App", [make_task(i) for i in range(1, 12)])
    assert all(0.0 <= entry.confidence <= 1.0 for entry in result.reasoning_log)


def test_scope_gate_postpones_blank_prompts():
    log = []
    blank = Task(id="blank", title="Blank", prompt=" ")

    result = evaluate_scope([make_task(1), blank], log)

    assert [t.id for t in result.approved] == ["task_1"]
    assert [t.id for t in result.postponed] == ["blank"]
    assert log[0].rule == "scope_gate_prompt_length"


def test_mvp_evaluator_logs_counts():
    log = []
    result = evaluate_mvp_first([make_task(1, title="Core list"), make_task(2, title="Onboarding")], log)

    assert len(result.approved) == 1
    assert log[-1].rule == "mvp_evaluator"
    assert log[-1].input == {"total": 2, "mvp": 1, "deferred": 1}


def test_complexity_average_counts_duplicate_ids():
    log = []
    simple = Task(id="same", title="Home", prompt="basic home screen")
    risky = Task(id="same", title="Pay", prompt="payment with oauth authentication")

    average, _ = score_complexity([simple, risky], log)

    assert average == (score_task(simple) + score_task(risky)) / 2
