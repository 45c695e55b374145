from roadmap_grid.core.io.load_tasks import load_tasks
from roadmap_grid.core.lint.lint_tasks import lint_tasks


def _codes(errors) -> list[str]:
    return [e.code for e in errors]


def test_lint_clean_chain():
    assert lint_tasks(load_tasks("examples/chain.yaml")) == []


def test_lint_roadmap_flags_dangling_and_unreachable():
    errors = lint_tasks(load_tasks("examples/roadmap.yaml"))
    assert sorted(_codes(errors)) == ["L_DANGLING_REQUIREMENT", "L_UNREACHABLE_TASK"]
    unreachable = [e for e in errors if e.code == "L_UNREACHABLE_TASK"][0]
    assert unreachable.path == "tasks[8].id"


def test_lint_root_override():
    errors = lint_tasks(load_tasks("examples/roadmap.yaml"), root_id="SPIKE")
    unreachable = [e for e in errors if e.code == "L_UNREACHABLE_TASK"]
    assert len(unreachable) == 7


def test_lint_cycle():
    errors = lint_tasks(load_tasks("examples/cycle.yaml"))
    assert _codes(errors) == ["L_CYCLE_DETECTED"]
    assert "A -> B -> A" in errors[0].message


def test_lint_duplicate_id():
    errors = lint_tasks(load_tasks("examples/invalid-duplicate-id.yaml"))
    assert _codes(errors) == ["L_DUPLICATE_ID"]
    assert errors[0].path == "tasks[2].id"


def test_lint_self_requirement():
    doc = {"tasks": [{"id": "A", "title": "A", "requires": ["A"]}]}
    assert _codes(lint_tasks(doc)) == ["L_SELF_REQUIREMENT"]


def test_lint_ignores_bad_shape():
    assert lint_tasks({"tasks": "nope"}) == []
