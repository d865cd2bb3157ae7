"""End-to-end CLI tests with the Gemini client replaced by a FakeProvider."""

import json

import pytest

import ai_services
import task_master
from fake_llm import FakeProvider


def subtasks_json(count: int) -> str:
    return json.dumps([
        {"id": i + 1, "title": f"Step {i + 1}", "description": f"Do step {i + 1}", "dependencies": []}
        for i in range(count)
    ])


@pytest.fixture
def fake_gemini(monkeypatch):
    """Install a FakeProvider as the Gemini client; call with the responses to serve."""
    def install(*responses):
        provider = FakeProvider(list(responses))
        monkeypatch.setattr(ai_services, "get_gemini_client", lambda: provider)
        return provider
    return install


@pytest.fixture
def tasks_file(tmp_path, sample_tasks_response):
    path = tmp_path / "tasks" / "tasks.json"
    path.parent.mkdir()
    path.write_text(json.dumps(sample_tasks_response), encoding="utf-8")
    return path


def read_json(path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_no_command_prints_help() -> None:
    assert task_master.main([]) == 0


def test_parse_prd_writes_tasks_and_markdown(tmp_path, fake_gemini, sample_tasks_response) -> None:
    prd = tmp_path / "prd.txt"
    prd.write_text("A todo app with user accounts.", encoding="utf-8")
    output = tmp_path / "out" / "tasks.json"
    provider = fake_gemini(json.dumps(sample_tasks_response))

    exit_code = task_master.main(["--file", str(output), "parse-prd", str(prd), "--num-tasks", "3"])

    assert exit_code == 0
    saved = read_json(output)
    assert [task["id"] for task in saved["tasks"]] == [1, 2, 3]
    assert saved["metadata"]["totalTasks"] == 3
    assert saved["metadata"]["sourceFile"] == str(prd)
    assert (output.parent / "task_1_Initialize_Project_Structure.md").exists()
    assert "A todo app with user accounts." in provider.calls[0].prompt


def test_parse_prd_missing_input(tmp_path, fake_gemini) -> None:
    provider = fake_gemini()

    exit_code = task_master.main(["--file", str(tmp_path / "tasks.json"), "parse-prd", str(tmp_path / "missing.txt")])

    assert exit_code == 1
    assert provider.calls == []


def test_generation_failure_exits_nonzero(tmp_path, fake_gemini) -> None:
    prd = tmp_path / "prd.txt"
    prd.write_text("PRD", encoding="utf-8")
    fake_gemini("not json", "still not json", "never json")

    exit_code = task_master.main(["--file", str(tmp_path / "tasks.json"), "parse-prd", str(prd), "-n", "3"])

    assert exit_code == 1
    assert not (tmp_path / "tasks.json").exists()


def test_list_without_tasks_file(tmp_path) -> None:
    assert task_master.main(["--file", str(tmp_path / "nope.json"), "list"]) == 1


def test_list_filters_by_status(tasks_file, capsys) -> None:
    assert task_master.main(["--file", str(tasks_file), "list", "--status", "pending"]) == 0

    out = capsys.readouterr().out
    assert "Initialize Project Structure" in out


def test_expand_single_task(tasks_file, fake_gemini) -> None:
    provider = fake_gemini(subtasks_json(3))

    assert task_master.main(["--file", str(tasks_file), "expand", "--id", "2"]) == 0

    task = read_json(tasks_file)["tasks"][1]
    assert [subtask["id"] for subtask in task["subtasks"]] == ["2.1", "2.2", "2.3"]
    assert "Create 3 subtasks" in provider.calls[0].prompt
    assert "# Subtasks:" in (tasks_file.parent / "task_2_Implement_Core_Data_Models.md").read_text(encoding="utf-8")


def test_expand_uses_complexity_recommendation(tasks_file, fake_gemini) -> None:
    report = {
        "meta": {"tasksAnalyzed": 1},
        "complexityAnalysis": [{"taskId": 1, "recommendedSubtasks": 2, "expansionPrompt": "Split by layer"}],
    }
    (tasks_file.parent / task_master.COMPLEXITY_REPORT_NAME).write_text(json.dumps(report), encoding="utf-8")
    provider = fake_gemini(subtasks_json(2))

    assert task_master.main(["--file", str(tasks_file), "expand", "--id", "1"]) == 0

    prompt = provider.calls[0].prompt
    assert "Create 2 subtasks" in prompt
    assert "ADDITIONAL CONTEXT: Split by layer" in prompt


def test_expand_skips_task_with_subtasks(tasks_file, fake_gemini) -> None:
    data = read_json(tasks_file)
    data["tasks"][0]["subtasks"] = [{"id": "1.1", "title": "Existing"}]
    tasks_file.write_text(json.dumps(data), encoding="utf-8")
    provider = fake_gemini()

    assert task_master.main(["--file", str(tasks_file), "expand", "--id", "1"]) == 0

    assert provider.calls == []
    assert read_json(tasks_file)["tasks"][0]["subtasks"] == [{"id": "1.1", "title": "Existing"}]


def test_expand_all_continues_past_failures(tasks_file, fake_gemini) -> None:
    fake_gemini(subtasks_json(2), "bad", "still bad", subtasks_json(2))

    exit_code = task_master.main(["--file", str(tasks_file), "expand", "--all", "--num", "2"])

    assert exit_code == 1
    tasks = read_json(tasks_file)["tasks"]
    assert [len(task.get("subtasks", [])) for task in tasks] == [2, 0, 2]


def test_expand_unknown_task(tasks_file, fake_gemini) -> None:
    fake_gemini()

    assert task_master.main(["--file", str(tasks_file), "expand", "--id", "99"]) == 1


def test_detail_writes_markdown_plan(tasks_file, fake_gemini) -> None:
    fake_gemini("## Plan\n1. Do the thing")

    assert task_master.main(["--file", str(tasks_file), "detail", "--id", "3"]) == 0

    details = (tasks_file.parent / "task_3_details.md").read_text(encoding="utf-8")
    assert details.startswith("# Task 3: Setup Database Integration")
    assert "1. Do the thing" in details


def test_analyze_complexity_writes_report(tasks_file, fake_gemini) -> None:
    fake_gemini(*[
        json.dumps({"complexityScore": score, "recommendedSubtasks": score // 2, "timeEstimate": "1 day"})
        for score in (3, 8, 5)
    ])

    assert task_master.main(["--file", str(tasks_file), "analyze-complexity"]) == 0

    report = read_json(tasks_file.parent / task_master.COMPLEXITY_REPORT_NAME)
    assert report["meta"]["tasksAnalyzed"] == 3
    assert not report["meta"]["usedResearch"]
    assert [entry["taskId"] for entry in report["complexityAnalysis"]] == [1, 2, 3]
    assert [entry["complexityScore"] for entry in report["complexityAnalysis"]] == [3, 8, 5]


def test_generate_rewrites_markdown(tasks_file) -> None:
    assert task_master.main(["--file", str(tasks_file), "generate"]) == 0

    files = sorted(path.name for path in tasks_file.parent.glob("task_*.md"))
    assert files == [
        "task_1_Initialize_Project_Structure.md",
        "task_2_Implement_Core_Data_Models.md",
        "task_3_Setup_Database_Integration.md",
    ]


def test_analyze_complexity_tolerates_mixed_score_types(tasks_file, fake_gemini, capsys) -> None:
    fake_gemini(
        json.dumps({"complexityScore": "7", "recommendedSubtasks": 4}),
        json.dumps({"complexityScore": 5, "recommendedSubtasks": 3}),
        json.dumps({"recommendedSubtasks": 2}),
    )

    assert task_master.main(["--file", str(tasks_file), "analyze-complexity"]) == 0

    out = capsys.readouterr().out
    assert out.index("Task #1: score 7") < out.index("Task #2: score 5") < out.index("Task #3: score ?")
    report = read_json(tasks_file.parent / task_master.COMPLEXITY_REPORT_NAME)
    assert [entry["complexityScore"] for entry in report["complexityAnalysis"][:2]] == ["7", 5]


def test_expand_force_replaces_existing_subtasks(tasks_file, fake_gemini) -> None:
    data = read_json(tasks_file)
    data["tasks"][0]["subtasks"] = [{"id": "1.1", "title": "Existing"}, {"id": "1.2", "title": "Stale"}]
    tasks_file.write_text(json.dumps(data), encoding="utf-8")
    fake_gemini(subtasks_json(3))

    assert task_master.main(["--file", str(tasks_file), "expand", "--id", "1", "--num", "3", "--force"]) == 0

    subtasks = read_json(tasks_file)["tasks"][0]["subtasks"]
    assert [subtask["title"] for subtask in subtasks] == ["Step 1", "Step 2", "Step 3"]
