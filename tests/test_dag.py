"""Tests for the DAG engine - runs without any external dependencies."""

import pytest

from records_timeline.etl.dag import DAG, TaskStatus, TriggerRule


def test_linear_dag_executes_in_order():
    """Tasks run in dependency order and context flows downstream."""
    execution_log = []

    def step_a(ctx):
        execution_log.append("a")
        return {"from_a": 1}

    def step_b(ctx):
        execution_log.append("b")
        assert ctx["from_a"] == 1
        return {"from_b": 2}

    def step_c(ctx):
        execution_log.append("c")
        assert ctx["from_b"] == 2

    dag = DAG("test_linear")
    dag.add_task("a", step_a)
    dag.add_task("b", step_b, depends_on=["a"])
    dag.add_task("c", step_c, depends_on=["b"])

    result = dag.run()
    assert result["status"] == "completed"
    assert execution_log == ["a", "b", "c"]


def test_failed_task_skips_downstream_chain():
    """A failure skips its dependents, and their dependents in turn."""

    def failing_task(ctx):
        raise RuntimeError("Intentional failure")

    def downstream(ctx):
        pytest.fail("Should not have run")

    dag = DAG("test_failure")
    dag.add_task("fail", failing_task)
    dag.add_task("after", downstream, depends_on=["fail"])
    dag.add_task("after_after", downstream, depends_on=["after"])

    result = dag.run()
    assert result["status"] == "failed"
    assert dag.tasks["fail"].status == TaskStatus.FAILED
    assert dag.tasks["fail"].error == "Intentional failure"
    assert dag.tasks["after"].status == TaskStatus.SKIPPED
    assert dag.tasks["after_after"].status == TaskStatus.SKIPPED


def test_all_done_runs_despite_upstream_failure():
    """ALL_DONE tasks still run; the failed branch adds nothing to the context."""

    def broken_fetch(ctx):
        raise ConnectionError("store unavailable")

    def combine(ctx):
        return {"seen": sorted(k for k in ("left", "right") if k in ctx)}

    dag = DAG("test_all_done")
    dag.add_task("left", lambda ctx: {"left": [1, 2]})
    dag.add_task("right", broken_fetch)
    dag.add_task(
        "combine", combine, depends_on=["left", "right"], trigger_rule=TriggerRule.ALL_DONE
    )

    result = dag.run()
    assert dag.tasks["combine"].status == TaskStatus.SUCCESS
    assert dag.tasks["combine"].result["seen"] == ["left"]
    assert result["status"] == "partial"
    assert result["tasks"]["right"]["status"] == "failed"


def test_cycle_detection():
    """DAG rejects circular dependencies."""
    dag = DAG("test_cycle")
    dag.add_task("a", lambda ctx: None, depends_on=["b"])
    dag.add_task("b", lambda ctx: None, depends_on=["a"])

    with pytest.raises(ValueError, match="Cycle detected"):
        dag.run()


def test_unknown_dependency_and_duplicates_rejected():
    dag = DAG("test_bad")
    dag.add_task("a", lambda ctx: None, depends_on=["missing"])
    with pytest.raises(ValueError, match="unknown task"):
        dag.run()
    with pytest.raises(ValueError, match="Duplicate"):
        dag.add_task("a", lambda ctx: None)


def test_diamond_dag():
    """Diamond shape: A -> B, A -> C, B+C -> D."""
    dag = DAG("diamond")
    dag.add_task("a", lambda ctx: {"val": 1})
    dag.add_task("b", lambda ctx: {"b_val": ctx["val"] + 10}, depends_on=["a"])
    dag.add_task("c", lambda ctx: {"c_val": ctx["val"] + 20}, depends_on=["a"])
    dag.add_task(
        "d",
        lambda ctx: {"total": ctx["b_val"] + ctx["c_val"]},
        depends_on=["b", "c"],
    )

    result = dag.run()
    assert result["status"] == "completed"
    assert dag.tasks["d"].result["total"] == 32
    assert dag.terminal_tasks() == ["d"]
