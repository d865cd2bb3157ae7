"""Tests for prompt construction."""

import prompts


def test_prd_prompt_puts_document_last() -> None:
    prompt = prompts.build_prd_parsing_prompt("# Todo app\nUsers can add items.", "docs/prd.md", 7)

    assert "Create exactly 7 tasks, numbered from 1 to 7" in prompt
    assert prompt.rstrip().endswith(
        "Here's the Product Requirements Document (PRD) to break down into 7 tasks:\n\n"
        "# Todo app\nUsers can add items."
    )


def test_prompts_keep_braces_from_content(sample_task) -> None:
    sample_task["details"] = 'Return {"token": "..."} from /login'

    prompt = prompts.build_subtask_prompt(sample_task, 2)

    assert 'DETAILS: Return {"token": "..."} from /login' in prompt


def test_subtask_prompt_defaults_and_context(sample_task) -> None:
    sample_task["details"] = ""

    bare = prompts.build_subtask_prompt(sample_task, 4)
    enriched = prompts.build_subtask_prompt(sample_task, 4, prompt="Use OAuth", research="PKCE is required")

    assert "DETAILS: Not provided" in bare
    assert "ADDITIONAL CONTEXT" not in bare
    assert "RESEARCH" not in bare
    assert "Create 4 subtasks" in bare
    assert '"5.[1-4]"' in bare
    assert "ADDITIONAL CONTEXT: Use OAuth\n" in enriched
    assert "RESEARCH: PKCE is required\n" in enriched


def test_repair_prompts_embed_bad_output() -> None:
    tasks_repair = prompts.build_tasks_repair_prompt("oops", 3, "prd.txt")
    subtasks_repair = prompts.build_subtasks_repair_prompt("oops", 2, 5)
    complexity_repair = prompts.build_complexity_repair_prompt("oops", 2)

    assert "Here's the problematic response:\noops" in tasks_repair
    assert "exactly 3 tasks" in tasks_repair
    assert "Here's the problematic JSON:\noops" in subtasks_repair
    assert '"2.[1-5]"' in subtasks_repair
    assert "complexity analysis for task 2" in complexity_repair


def test_refinement_prompt_includes_research(sample_task) -> None:
    prompt = prompts.build_research_refinement_prompt(sample_task, "Rotate refresh tokens", "Keep it small")

    assert "EXISTING DETAILS: Use JWT access tokens with refresh rotation" in prompt
    assert "ADDITIONAL CONTEXT: Keep it small" in prompt
    assert "RESEARCH FINDINGS:\nRotate refresh tokens" in prompt
