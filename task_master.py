#!/usr/bin/env python
import argparse
import json
import sys
import time
from datetime import datetime
from pathlib import Path

from colorama import Fore, Style, init

from ai_services import (
    analyze_task_complexity, call_gemini, create_subtasks_with_gemini,
    expand_task_with_gemini, expand_task_with_research
)
from config import config
from errors import TaskMasterError
from prompts import (
    ALL_TASKS_CONVERTED, COMPLEXITY_ANALYSIS_COMPLETE, CONVERTING_TASKS, NO_TASKS_FOUND,
    PARSE_PRD_START, TASK_DETAILS_SAVED, TASK_EXPAND_START, TASK_EXPAND_SUCCESS,
    TASK_HAS_SUBTASKS, TASK_NOT_FOUND, TASK_STATUS_OPTIONS, TASKS_SAVED
)
from response_parser import coerce_dependency
from ui_utils import ProgressBar, colored_print, display_header, log, log_debug_error

# Initialize Colorama
init(autoreset=True)

COMPLEXITY_REPORT_NAME = "task-complexity-report.json"


def read_tasks(tasks_file: Path):
    """Load tasks.json, or None when it does not exist"""
    if not tasks_file.exists():
        colored_print(NO_TASKS_FOUND.format(tasks_file=tasks_file), Fore.RED)
        return None
    with open(tasks_file, 'r', encoding='utf-8') as f:
        return json.load(f)


def write_json(path: Path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def find_task(tasks_data, task_id):
    return next((task for task in tasks_data.get('tasks', []) if task.get('id') == task_id), None)


def task_markdown_filename(task) -> str:
    task_title = str(task.get("title", "Untitled Task")).replace(" ", "_").replace("/", "_")  # Sanitize for filename
    return f"task_{task.get('id', 'unknown')}_{task_title}.md"


def render_task_markdown(task) -> str:
    dependencies = ", ".join(map(str, task.get("dependencies", [])))

    content = f"""# Task ID: {task.get("id", "unknown")}
# Title: {task.get("title", "Untitled Task")}
# Status: {task.get("status", "pending")}
# Dependencies: {dependencies}
# Priority: {task.get("priority", config.get('tasks.default_priority', 'medium'))}
# Description: {task.get("description", "No description provided.")}
# Details:
{task.get("details", "No detailed implementation notes.")}

# Test Strategy:
{task.get("testStrategy", "No test strategy provided.")}
"""
    subtasks = task.get("subtasks") or []
    if subtasks:
        lines = ["", "# Subtasks:"]
        for subtask in subtasks:
            lines.append(f"## {subtask.get('id')}. {subtask.get('title')} [{subtask.get('status', 'pending')}]")
            if subtask.get('description'):
                lines.append(subtask['description'])
        content += "\n".join(lines) + "\n"
    return content


def generate_task_files(tasks_data, tasks_dir: Path) -> int:
    """Write one Markdown file per task; returns the number of files written"""
    colored_print(f"\n{CONVERTING_TASKS}", Fore.CYAN)
    tasks_dir.mkdir(parents=True, exist_ok=True)

    tasks = tasks_data.get("tasks", [])
    progress = ProgressBar(total=len(tasks), desc="Converting tasks to markdown files")
    for i, task in enumerate(tasks):
        with open(tasks_dir / task_markdown_filename(task), 'w', encoding='utf-8') as f:
            f.write(render_task_markdown(task))
        progress.set_progress(i + 1)
    progress.finish()

    colored_print(ALL_TASKS_CONVERTED.format(tasks_dir=tasks_dir), Fore.GREEN)
    return len(tasks)


def load_complexity_recommendation(report_path: Path, task_id):
    """Return the complexity entry for a task from a saved report, if any"""
    if not report_path.exists():
        return None
    try:
        with open(report_path, 'r', encoding='utf-8') as f:
            report = json.load(f)
    except (OSError, ValueError) as e:
        log('warn', f"Could not read complexity report {report_path}: {e}")
        return None
    return next((entry for entry in report.get('complexityAnalysis', []) if entry.get('taskId') == task_id), None)


def complexity_score(report) -> int:
    """Numeric score for sorting; model output may carry strings or nothing"""
    return coerce_dependency(report.get('complexityScore')) or 0


def status_color(status: str) -> str:
    if status == 'done':
        return Fore.GREEN
    if status == 'in-progress':
        return Fore.YELLOW
    return Fore.WHITE


def handle_parse_prd(args):
    display_header("Task Generator", "Generate development tasks from PRD")
    prd_file = Path(args.input)
    num_tasks = args.num_tasks
    tasks_file = Path(args.output or args.file)

    try:
        prd_content = prd_file.read_text(encoding='utf-8')
    except OSError as e:
        colored_print(f"Error reading PRD file '{prd_file}': {e}", Fore.RED)
        return 1

    colored_print(PARSE_PRD_START.format(num_tasks=num_tasks), Fore.CYAN)
    tasks_data = call_gemini(prd_content, str(prd_file), num_tasks)

    metadata = tasks_data.setdefault('metadata', {})
    metadata.setdefault('projectName', config.get('project.name'))
    metadata['totalTasks'] = len(tasks_data['tasks'])
    metadata['sourceFile'] = str(prd_file)
    metadata['generatedAt'] = datetime.now().strftime("%Y-%m-%d")

    write_json(tasks_file, tasks_data)
    colored_print(TASKS_SAVED.format(output_tasks_filename=tasks_file), Fore.GREEN)
    generate_task_files(tasks_data, tasks_file.parent)
    return 0


def handle_list(args):
    tasks_data = read_tasks(Path(args.file))
    if tasks_data is None:
        return 1

    tasks = tasks_data.get('tasks', [])
    if args.status:
        tasks = [task for task in tasks if task.get('status') == args.status]
    if not tasks:
        colored_print("No tasks match the selected filter.", Fore.YELLOW)
        return 0

    display_header("Task List", f"{len(tasks)} task(s)")
    for task in tasks:
        dependencies = ", ".join(map(str, task.get('dependencies', []))) or "None"
        colored_print(
            f"  {task.get('id')}. {task.get('title')} [{task.get('status', 'pending')}] "
            f"- Priority: {task.get('priority', 'medium')} - Depends on: {dependencies}",
            status_color(task.get('status'))
        )
        if args.with_subtasks:
            for subtask in task.get('subtasks') or []:
                colored_print(f"      {subtask.get('id')}. {subtask.get('title')} [{subtask.get('status', 'pending')}]",
                              status_color(subtask.get('status')))
    return 0


def expand_one_task(task, args, report_path: Path) -> bool:
    """Expand a single task in place; returns False when it was skipped"""
    task_id = task.get('id')
    if task.get('subtasks') and not args.force:
        colored_print(TASK_HAS_SUBTASKS.format(task_id=task_id), Fore.YELLOW)
        return False

    num_subtasks = args.num
    additional_context = args.prompt or ""
    recommendation = load_complexity_recommendation(report_path, task_id)
    if recommendation:
        recommended = coerce_dependency(recommendation.get('recommendedSubtasks'))
        if num_subtasks is None and recommended:
            num_subtasks = recommended
            log('info', f"Using {num_subtasks} subtasks recommended by the complexity report")
        if not additional_context and recommendation.get('expansionPrompt'):
            additional_context = recommendation['expansionPrompt']
    if num_subtasks is None:
        num_subtasks = config.get('tasks.default_subtasks', 3)

    colored_print(TASK_EXPAND_START.format(task_id=task_id, count=num_subtasks), Fore.CYAN)
    subtasks = create_subtasks_with_gemini(task, num_subtasks, additional_context, use_research=args.research)
    task['subtasks'] = subtasks

    colored_print(TASK_EXPAND_SUCCESS.format(task_id=task_id, count=len(subtasks)), Fore.GREEN)
    for subtask in subtasks:
        colored_print(f"  {subtask.get('id')}: {subtask.get('title')}", Fore.WHITE)
    return True


def handle_expand(args):
    tasks_file = Path(args.file)
    tasks_data = read_tasks(tasks_file)
    if tasks_data is None:
        return 1
    report_path = tasks_file.parent / COMPLEXITY_REPORT_NAME

    if args.all:
        display_header("Task Expand", "Break down all pending tasks")
        targets = [task for task in tasks_data.get('tasks', [])
                   if task.get('status', 'pending') == 'pending' and (args.force or not task.get('subtasks'))]
    else:
        display_header("Task Expand", f"Break down Task #{args.id}")
        task = find_task(tasks_data, args.id)
        if not task:
            colored_print(TASK_NOT_FOUND.format(task_id=args.id), Fore.RED)
            return 1
        targets = [task]

    failures = 0
    expanded = 0
    for task in targets:
        try:
            if expand_one_task(task, args, report_path):
                expanded += 1
        except TaskMasterError as e:
            if not args.all:
                raise
            failures += 1
            colored_print(f"Error expanding task #{task.get('id')}: {e}", Fore.RED)

    if expanded:
        write_json(tasks_file, tasks_data)
        colored_print(TASKS_SAVED.format(output_tasks_filename=tasks_file), Fore.GREEN)
        generate_task_files(tasks_data, tasks_file.parent)
    return 1 if failures else 0


def handle_detail(args):
    tasks_file = Path(args.file)
    tasks_data = read_tasks(tasks_file)
    if tasks_data is None:
        return 1

    task = find_task(tasks_data, args.id)
    if not task:
        colored_print(TASK_NOT_FOUND.format(task_id=args.id), Fore.RED)
        return 1

    display_header("Task Details", f"Implementation plan for Task #{args.id}")
    if args.research:
        details = expand_task_with_research(task, args.prompt or "")
    else:
        details = expand_task_with_gemini(task, args.prompt or "")

    details_path = tasks_file.parent / f"task_{args.id}_details.md"
    details_path.parent.mkdir(parents=True, exist_ok=True)
    with open(details_path, 'w', encoding='utf-8') as f:
        f.write(f"# Task {args.id}: {task.get('title')}\n\n{details}\n")
    colored_print(TASK_DETAILS_SAVED.format(task_id=args.id, path=details_path), Fore.GREEN)
    return 0


def handle_analyze_complexity(args):
    tasks_file = Path(args.file)
    tasks_data = read_tasks(tasks_file)
    if tasks_data is None:
        return 1

    display_header("Task Complexity Analysis", "AI-powered complexity assessment")
    tasks = tasks_data.get('tasks', [])
    if args.id is not None:
        tasks = [task for task in tasks if task.get('id') == args.id]
        if not tasks:
            colored_print(TASK_NOT_FOUND.format(task_id=args.id), Fore.RED)
            return 1

    reports = []
    failures = 0
    for i, task in enumerate(tasks):
        colored_print(f"\nProcessing Task #{task.get('id')}: {task.get('title')} ({i + 1}/{len(tasks)})", Fore.CYAN)
        try:
            reports.append(analyze_task_complexity(task, use_research=args.research))
        except TaskMasterError as e:
            failures += 1
            colored_print(f"Error analyzing Task #{task.get('id')}: {e}", Fore.RED)

    if not reports:
        colored_print("No tasks were analyzed.", Fore.YELLOW)
        return 1

    report_path = Path(args.output) if args.output else tasks_file.parent / COMPLEXITY_REPORT_NAME
    write_json(report_path, {
        "meta": {
            "generatedAt": datetime.now().isoformat(timespec='seconds'),
            "tasksAnalyzed": len(reports),
            "usedResearch": bool(args.research)
        },
        "complexityAnalysis": reports
    })

    colored_print("\nComplexity summary:", Fore.GREEN, style=Style.BRIGHT)
    for report in sorted(reports, key=complexity_score, reverse=True):
        colored_print(
            f"  Task #{report['taskId']}: score {report.get('complexityScore', '?')}, "
            f"{report.get('recommendedSubtasks', '?')} subtasks recommended, estimate {report.get('timeEstimate', '?')}",
            Fore.WHITE
        )
    colored_print(COMPLEXITY_ANALYSIS_COMPLETE.format(path=report_path), Fore.GREEN)
    return 1 if failures else 0


def handle_generate(args):
    tasks_file = Path(args.file)
    tasks_data = read_tasks(tasks_file)
    if tasks_data is None:
        return 1
    generate_task_files(tasks_data, tasks_file.parent)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="task-master",
        description="Task Master: AI-driven development task management.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
    task-master parse-prd prd.txt --num-tasks 10   # Break a PRD into 10 tasks
    task-master list --status pending              # Show pending tasks
    task-master expand --id 3 --num 5 --research   # Research-backed subtasks for task 3
    task-master expand --all                       # Expand every pending task
    task-master detail --id 3                      # Markdown implementation plan for task 3
    task-master analyze-complexity --research      # Score all tasks
    task-master generate                           # Rewrite the per-task Markdown files
        """
    )
    parser.add_argument(
        "-f", "--file",
        type=str,
        default=config.get('tasks.file', 'tasks/tasks.json'),
        help="Path to tasks.json (default: %(default)s)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parse_parser = subparsers.add_parser("parse-prd", help="Generate tasks from a PRD document.")
    parse_parser.add_argument("input", type=str, help="Path to the PRD file")
    parse_parser.add_argument("-n", "--num-tasks", type=int, default=10, help="Number of tasks to generate")
    parse_parser.add_argument("-o", "--output", type=str, help="Where to write tasks.json (defaults to --file)")
    parse_parser.set_defaults(func=handle_parse_prd)

    list_parser = subparsers.add_parser("list", help="List tasks.")
    list_parser.add_argument("-s", "--status", type=str, choices=TASK_STATUS_OPTIONS, help="Only show tasks with this status")
    list_parser.add_argument("--with-subtasks", action="store_true", help="Show subtasks under each task")
    list_parser.set_defaults(func=handle_list)

    expand_parser = subparsers.add_parser("expand", help="Break down a task into subtasks using AI.")
    expand_target = expand_parser.add_mutually_exclusive_group(required=True)
    expand_target.add_argument("--id", type=int, help="Task ID to expand")
    expand_target.add_argument("--all", action="store_true", help="Expand all pending tasks")
    expand_parser.add_argument("-n", "--num", type=int, help="Number of subtasks to create")
    expand_parser.add_argument("-r", "--research", action="store_true", help="Use Perplexity research to inform subtasks")
    expand_parser.add_argument("-p", "--prompt", type=str, help="Additional context for the subtask generation")
    expand_parser.add_argument("--force", action="store_true", help="Force regeneration of existing subtasks")
    expand_parser.set_defaults(func=handle_expand)

    detail_parser = subparsers.add_parser("detail", help="Write a Markdown implementation plan for a task.")
    detail_parser.add_argument("--id", type=int, required=True, help="Task ID")
    detail_parser.add_argument("-r", "--research", action="store_true", help="Back the plan with Perplexity research")
    detail_parser.add_argument("-p", "--prompt", type=str, help="Additional context")
    detail_parser.set_defaults(func=handle_detail)

    complexity_parser = subparsers.add_parser("analyze-complexity", help="Score task complexity and save a report.")
    complexity_parser.add_argument("--id", type=int, help="Analyze only this task (default: all tasks)")
    complexity_parser.add_argument("-r", "--research", action="store_true", help="Use Perplexity research")
    complexity_parser.add_argument("-o", "--output", type=str, help="Report path")
    complexity_parser.set_defaults(func=handle_analyze_complexity)

    generate_parser = subparsers.add_parser("generate", help="Generate Markdown task files from tasks.json.")
    generate_parser.set_defaults(func=handle_generate)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        display_header("Task Master", "AI-driven development task management")
        parser.print_help()
        return 0

    started = time.time()
    try:
        exit_code = args.func(args) or 0
    except KeyboardInterrupt:
        colored_print("\n\nOperation cancelled by user.", Fore.YELLOW)
        return 130
    except TaskMasterError as e:
        colored_print(f"\nError: {e}", Fore.RED)
        log_debug_error(e)
        return 1
    except (OSError, ValueError) as e:
        colored_print(f"\nUnexpected error: {e}", Fore.RED)
        log_debug_error(e)
        return 1
    log('debug', f"Command '{args.command}' finished in {time.time() - started:.1f}s")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
