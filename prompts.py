#!/usr/bin/env python

# This file contains all the prompts used by Task Master
# Edit the template text to customize model behavior; the build_* helpers only fill in values

from typing import Any, Dict

# --- PRD -> tasks ---

PRD_PARSING_PROMPT = """You are an AI assistant helping to break down a Product Requirements Document (PRD) into a set of sequential development tasks.
Your goal is to create {num_tasks} well-structured, actionable development tasks based on the PRD provided.

Each task should follow this JSON structure:
{{
  "id": number,
  "title": string,
  "description": string,
  "status": "pending",
  "dependencies": number[] (IDs of tasks this depends on),
  "priority": "high" | "medium" | "low",
  "details": string (implementation details),
  "testStrategy": string (validation approach)
}}

Guidelines:
1. Create exactly {num_tasks} tasks, numbered from 1 to {num_tasks}
2. Each task should be atomic and focused on a single responsibility
3. Order tasks logically - consider dependencies and implementation sequence
4. Early tasks should focus on setup, core functionality first, then advanced features
5. Include clear validation/testing approach for each task
6. Set appropriate dependency IDs (a task can only depend on tasks with lower IDs)
7. Assign priority (high/medium/low) based on criticality and dependency order
8. Include detailed implementation guidance in the "details" field

Expected output format:
{{
  "tasks": [
    {{
      "id": 1,
      "title": "Setup Project Repository",
      "description": "...",
      ...
    }},
    ...
  ],
  "metadata": {{
    "projectName": "PRD Implementation",
    "totalTasks": {num_tasks},
    "sourceFile": "{prd_path}",
    "generatedAt": "YYYY-MM-DD"
  }}
}}

Important: Your response must be valid JSON only, with no additional explanation or comments.

Here's the Product Requirements Document (PRD) to break down into {num_tasks} tasks:

{prd_content}
"""

TASKS_REPAIR_PROMPT = """
I received the following response from an AI model, but it's not valid JSON or has structural issues.
Please convert this into valid JSON following exactly this structure:

{{
  "tasks": [
    {{
      "id": number,
      "title": string,
      "description": string,
      "status": "pending",
      "dependencies": number[],
      "priority": "high"|"medium"|"low",
      "details": string,
      "testStrategy": string
    }},
    ... (exactly {num_tasks} tasks)
  ],
  "metadata": {{
    "projectName": "PRD Implementation",
    "totalTasks": {num_tasks},
    "sourceFile": "{prd_path}",
    "generatedAt": "YYYY-MM-DD"
  }}
}}

Here's the problematic response:
{problem_content}

IMPORTANT: Return ONLY valid JSON with no other text or explanation. Ensure all JSON is properly formatted with the correct syntax.
"""

# --- Task -> narrative expansion ---

TASK_EXPANSION_PROMPT = """
You are a development task breakdown expert. Create a detailed implementation plan for this task:

TASK: {title}
DESCRIPTION: {description}
{existing_details}{additional_context}
Please provide:
1. A detailed implementation approach
2. Step-by-step breakdown of implementation tasks
3. Any specific libraries, tools, or patterns to use
4. Code architecture considerations
5. Potential challenges and solutions
6. A testing strategy to validate the implementation

Format your response as detailed markdown, focusing on practical, actionable guidance.
Include code examples where appropriate.
{subtask_note}"""

SUBTASK_SCOPE_NOTE = "This is a subtask of a larger task, so keep the implementation focused on this specific component.\n"

RESEARCH_PROMPT = """
TASK: {title}
DESCRIPTION: {description}
{additional_context}
Please research this topic and provide a comprehensive analysis that includes:
1. Current best practices for implementing this type of feature
2. Common implementation approaches
3. Potential libraries, frameworks, or tools that would be useful
4. Security considerations
5. Testing strategies
6. Common pitfalls to avoid

Provide specific, actionable insights that would help a developer implement this task.
"""

RESEARCH_REFINEMENT_PROMPT = """
Based on the following task information and research results, create a detailed implementation plan with the following sections:
1. Approach - Overall strategy for implementing the task
2. Step-by-step implementation plan
3. Key components/files to modify
4. Important considerations (security, performance, etc.)
5. Testing strategy

TASK: {title}
DESCRIPTION: {description}
{existing_details}{additional_context}
RESEARCH FINDINGS:
{research_results}

Format the response as detailed markdown suitable for a developer task breakdown.
Focus on actionable, specific guidance rather than general information.
Include code snippets or examples where appropriate.
"""

# --- Task -> subtask array ---

SUBTASK_GENERATION_PROMPT = """
You are an expert at breaking down development tasks into subtasks. Given this parent task:

TASK ID: {task_id}
TITLE: {title}
DESCRIPTION: {description}
DETAILS: {details}
{additional_context}{research}
Create {num_subtasks} subtasks that together would accomplish this parent task. Each subtask should:
1. Be focused on a single, clear responsibility
2. Include implementation details
3. Include a test/validation strategy
4. Build in a logical sequence (later subtasks may depend on earlier ones)

Return these subtasks in a valid JSON array with this structure:
[
  {{
    "id": "{task_id}.1",
    "title": "Subtask title",
    "description": "Brief description",
    "status": "pending",
    "dependencies": [],
    "priority": "high",
    "details": "Detailed implementation guidance",
    "testStrategy": "How to verify this subtask"
  }},
  ...
]

Important:
- All subtask IDs must be in the format "{task_id}.[1-{num_subtasks}]"
- Return exactly {num_subtasks} subtasks
- Dependencies should be IDs of other subtasks in this array that must be completed first
- Return ONLY valid JSON without any additional text or explanation
- Make sure each subtask has complete details that could stand alone as a task
"""

SUBTASKS_REPAIR_PROMPT = """
I received the following response that should be a JSON array of {num_subtasks} subtasks, but it has formatting issues.
Please fix it and return a valid JSON array.

The subtasks should follow this exact structure:
[
  {{
    "id": "{task_id}.1",
    "title": "Subtask title",
    "description": "Description",
    "status": "pending",
    "dependencies": [],
    "priority": "high"|"medium"|"low",
    "details": "Implementation details",
    "testStrategy": "Verification approach"
  }},
  ...
]

Here's the problematic JSON:
{problem_content}

IMPORTANT:
- Return ONLY the valid JSON array with no other text
- Ensure there are exactly {num_subtasks} subtasks
- Make sure all IDs are in the format "{task_id}.[1-{num_subtasks}]"
- Every subtask must have all required fields
"""

# --- Task -> complexity report ---

COMPLEXITY_ANALYSIS_PROMPT = """
You are an expert at estimating development task complexity. Analyze this task:

TASK ID: {task_id}
TITLE: {title}
DESCRIPTION: {description}
DETAILS: {details}
{research}
Provide a detailed complexity analysis in JSON format:
{{
  "complexityScore": 1-10 integer (1=trivial, 10=extremely complex),
  "analysis": "Detailed explanation of the complexity factors",
  "timeEstimate": "Estimated time to complete (hours/days)",
  "recommendedSubtasks": 2-10 integer (recommended number of subtasks),
  "subtaskRecommendation": "Explanation of how to break down the task",
  "riskFactors": ["List", "of", "potential", "risks"],
  "recommendedApproach": "Suggested implementation approach",
  "expansionPrompt": "Tailored prompt for expanding this task into subtasks"
}}

IMPORTANT: Return ONLY valid JSON with no additional text or explanation.
Base your complexity score on these factors:
1. Technical complexity
2. Scope and breadth
3. Dependencies and integrations
4. Risk factors
5. Required expertise

The complexity score scale:
1-2: Trivial, straightforward tasks (minutes to hours)
3-4: Simple tasks with clear solutions (hours to a day)
5-6: Moderate complexity, some planning needed (1-2 days)
7-8: Complex tasks requiring careful design (2-5 days)
9-10: Highly complex, significant planning required (5+ days)
"""

COMPLEXITY_REPAIR_PROMPT = """
I received the following complexity analysis for task {task_id}, but it is not a valid JSON object.
Please fix it and return a single valid JSON object with exactly these fields:
"complexityScore", "analysis", "timeEstimate", "recommendedSubtasks", "subtaskRecommendation",
"riskFactors", "recommendedApproach", "expansionPrompt"

Here's the problematic response:
{problem_content}

IMPORTANT: Return ONLY the valid JSON object with no other text or explanation.
"""

# --- CLI messages ---

PARSE_PRD_START = "Parsing PRD into {num_tasks} tasks..."
TASKS_SAVED = "Tasks saved to {output_tasks_filename}"
CONVERTING_TASKS = "Converting tasks to individual Markdown files..."
ALL_TASKS_CONVERTED = "All tasks converted to Markdown files in '{tasks_dir}' directory."
NO_TASKS_FOUND = "No tasks file found at {tasks_file}. Run 'task-master parse-prd' first."
TASK_NOT_FOUND = "Task #{task_id} not found."
TASK_EXPAND_START = "Expanding task #{task_id} into {count} subtasks..."
TASK_EXPAND_SUCCESS = "Task #{task_id} expanded successfully with {count} subtasks."
TASK_HAS_SUBTASKS = "Task #{task_id} already has subtasks. Use --force to regenerate."
TASK_DETAILS_SAVED = "Implementation notes for task #{task_id} saved to {path}"
COMPLEXITY_ANALYSIS_COMPLETE = "Complexity analysis complete. Report saved to {path}"
TASK_STATUS_OPTIONS = ["pending", "in-progress", "done", "deferred"]


def _context_line(label: str, value: str) -> str:
    return f"{label}: {value}\n" if value else ""


def build_prd_parsing_prompt(prd_content: str, prd_path: str, num_tasks: int) -> str:
    return PRD_PARSING_PROMPT.format(num_tasks=num_tasks, prd_path=prd_path, prd_content=prd_content)


def build_tasks_repair_prompt(problem_content: str, num_tasks: int, prd_path: str) -> str:
    return TASKS_REPAIR_PROMPT.format(problem_content=problem_content, num_tasks=num_tasks, prd_path=prd_path)


def build_task_expansion_prompt(task: Dict[str, Any], prompt: str = "", is_subtask: bool = False) -> str:
    return TASK_EXPANSION_PROMPT.format(
        title=task.get('title', ''),
        description=task.get('description', ''),
        existing_details=_context_line("EXISTING DETAILS", task.get('details', '')),
        additional_context=_context_line("ADDITIONAL CONTEXT", prompt),
        subtask_note=SUBTASK_SCOPE_NOTE if is_subtask else ""
    )


def build_research_prompt(task: Dict[str, Any], prompt: str = "") -> str:
    return RESEARCH_PROMPT.format(
        title=task.get('title', ''),
        description=task.get('description', ''),
        additional_context=_context_line("ADDITIONAL CONTEXT", prompt)
    )


def build_research_refinement_prompt(task: Dict[str, Any], research_results: str, prompt: str = "") -> str:
    return RESEARCH_REFINEMENT_PROMPT.format(
        title=task.get('title', ''),
        description=task.get('description', ''),
        existing_details=_context_line("EXISTING DETAILS", task.get('details', '')),
        additional_context=_context_line("ADDITIONAL CONTEXT", prompt),
        research_results=research_results
    )


def build_subtask_prompt(task: Dict[str, Any], num_subtasks: int, prompt: str = "", research: str = "") -> str:
    return SUBTASK_GENERATION_PROMPT.format(
        task_id=task.get('id'),
        title=task.get('title', ''),
        description=task.get('description', ''),
        details=task.get('details') or "Not provided",
        additional_context=_context_line("ADDITIONAL CONTEXT", prompt),
        research=_context_line("RESEARCH", research),
        num_subtasks=num_subtasks
    )


def build_subtasks_repair_prompt(problem_content: str, task_id: Any, num_subtasks: int) -> str:
    return SUBTASKS_REPAIR_PROMPT.format(problem_content=problem_content, task_id=task_id, num_subtasks=num_subtasks)


def build_complexity_prompt(task: Dict[str, Any], research: str = "") -> str:
    return COMPLEXITY_ANALYSIS_PROMPT.format(
        task_id=task.get('id'),
        title=task.get('title', ''),
        description=task.get('description', ''),
        details=task.get('details') or "Not provided",
        research=_context_line("RESEARCH", research)
    )


def build_complexity_repair_prompt(problem_content: str, task_id: Any) -> str:
    return COMPLEXITY_REPAIR_PROMPT.format(problem_content=problem_content, task_id=task_id)
