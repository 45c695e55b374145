from roadmap_grid.core.errors import TaskLoadError
from roadmap_grid.core.io.load_tasks import load_tasks
from roadmap_grid.core.validate.validate_tasks import validate_tasks


def test_load_yaml_success():
    doc = load_tasks("examples/roadmap.yaml")
    assert doc["schema_version"] == "0.1.0"
    assert doc["root_id"] == "LAUNCH"
    assert isinstance(doc["tasks"], list)
    assert doc["__file__"].endswith("roadmap.yaml")


def test_load_json_success():
    doc = load_tasks("examples/roadmap.json")
    assert doc["root_id"] == "R"
    assert len(doc["tasks"]) == 3
    assert "users" not in doc


def test_load_missing_file():
    try:
        load_tasks("examples/does-not-exist.yaml")
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_FILE_NOT_FOUND"


def test_load_unsupported_format(tmp_path):
    p = tmp_path / "tasks.txt"
    p.write_text("hello", encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_UNSUPPORTED_FORMAT"


def test_load_bad_yaml(tmp_path):
    p = tmp_path / "tasks.yaml"
    p.write_text("tasks: [unclosed", encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_YAML_PARSE"
        assert str(e).startswith(str(p))


def test_load_top_level_must_be_mapping(tmp_path):
    p = tmp_path / "tasks.json"
    p.write_text("[1, 2]", encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_INVALID_TOP_LEVEL"


def test_load_tracker_export_maps_fields():
    doc = load_tasks("examples/tracker-export.json")
    assert doc["schema_version"] == "maniphest.query"
    assert doc["root_id"] == "PHID-TASK-launch"
    assert doc["tasks"][0] == {
        "id": "PHID-TASK-launch",
        "title": "Public launch",
        "owner": "PHID-USER-alice",
        "requires": ["PHID-TASK-api", "PHID-TASK-docs"],
        "closed": False,
    }
    assert doc["tasks"][1]["closed"] is True
    assert doc["tasks"][2]["owner"] is None
    assert doc["users"] == {
        "PHID-USER-alice": "https://example.org/alice.png",
        "PHID-USER-bob": "https://example.org/bob.png",
    }


def test_load_tracker_export_validates_into_a_graph():
    graph, errors = validate_tasks(load_tasks("examples/tracker-export.json"))
    assert errors == []
    assert graph is not None
    assert graph.nodes_by_id["PHID-TASK-docs"].requires == ["PHID-TASK-api"]
    assert len(graph.edges) == 3


def test_load_tracker_export_fills_missing_phid_and_depends(tmp_path):
    p = tmp_path / "export.yaml"
    p.write_text(
        "result:\n  PHID-TASK-a:\n    title: A\n    dependsOnTaskPHIDs: null\n",
        encoding="utf-8",
    )
    doc = load_tasks(str(p))
    assert doc["tasks"] == [
        {"id": "PHID-TASK-a", "title": "A", "owner": None, "requires": [], "closed": False}
    ]


def test_load_tracker_task_must_be_object(tmp_path):
    p = tmp_path / "export.json"
    p.write_text('{"result": {"PHID-TASK-a": "nope"}}', encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_INVALID_TRACKER_TASK"
        assert e.path == "result.PHID-TASK-a"


def test_load_tracker_result_must_be_collection(tmp_path):
    p = tmp_path / "export.json"
    p.write_text('{"result": 3}', encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_INVALID_SECTION"
        assert e.path == "result"


def test_load_missing_tasks_section(tmp_path):
    p = tmp_path / "tasks.yaml"
    p.write_text("schema_version: 0.1.0\nroot_id: R\n", encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_MISSING_TASKS"
        assert e.path == "tasks"


def test_load_users_wrong_shape(tmp_path):
    p = tmp_path / "tasks.yaml"
    p.write_text("tasks: []\nusers: alice\n", encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_INVALID_SECTION"
        assert e.path == "users"


def test_load_user_entry_needs_phid(tmp_path):
    p = tmp_path / "tasks.yaml"
    p.write_text("tasks: []\nusers:\n  - image: x.png\n", encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_INVALID_SECTION"
        assert e.path == "users[0]"
