#!/usr/bin/env python
"""
AI service interactions for Task Master

Every model call goes through the same pipeline: build the prompt, call the
provider (retrying transient transport failures with linear backoff), extract
and validate JSON, and, when the output is unusable, ask the model to repair
it within a fixed budget.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from google.api_core import exceptions as google_exceptions
import openai

from config import config
from errors import (
    GenerationFailed, MalformedJson, MissingCredential, NoJsonFound,
    ShapeMismatch, TaskMasterError, TransportError
)
from prompts import (
    build_complexity_prompt, build_complexity_repair_prompt, build_prd_parsing_prompt,
    build_research_prompt, build_research_refinement_prompt, build_subtask_prompt,
    build_subtasks_repair_prompt, build_task_expansion_prompt, build_tasks_repair_prompt
)
from providers import get_gemini_client, get_perplexity_client
from response_parser import (
    cleanup_json_response, extract_json, normalize_subtasks, parse_complexity_report,
    parse_json, validate_tasks_payload
)
from ui_utils import EnhancedSpinner, log, log_debug_error

MAX_RETRIES = 2
RETRY_BACKOFF_SECONDS = 5
MAX_CLEANUP_ATTEMPTS = 3
MAX_REPAIR_ATTEMPTS = 2
SUBTASK_REPAIR_ATTEMPTS = 1
COMPLEXITY_REPAIR_ATTEMPTS = 1
REPAIR_TEMPERATURE = 0.2
EXPANSION_MAX_TOKENS = 4000
SUBTASK_MAX_TOKENS = 8000
COMPLEXITY_MAX_TOKENS = 4000
COMPLEXITY_TEMPERATURE = 0.2

RECOVERABLE_PARSE_ERRORS = (NoJsonFound, MalformedJson, ShapeMismatch)

USER_MESSAGES = {
    "overloaded": "Gemini is currently experiencing high demand and is overloaded. Please wait a few minutes and try again.",
    "rate_limit": "You have exceeded the rate limit. Please wait a few minutes before making more requests.",
    "invalid_request": "There was an issue with the request format. If this persists, please report it as a bug.",
    "timeout": "The request to Gemini timed out. Please try again.",
    "network": "There was a network error connecting to Gemini. Please check your internet connection and try again.",
}

_STRUCTURED_ERROR_TYPES = {
    "overloaded_error": "overloaded",
    "rate_limit_error": "rate_limit",
    "invalid_request_error": "invalid_request",
}

# Order matters: APITimeoutError subclasses APIConnectionError
_ERROR_CLASSES = (
    (google_exceptions.ResourceExhausted, "rate_limit"),
    (google_exceptions.TooManyRequests, "rate_limit"),
    (google_exceptions.ServiceUnavailable, "overloaded"),
    (google_exceptions.DeadlineExceeded, "timeout"),
    (google_exceptions.InvalidArgument, "invalid_request"),
    (openai.RateLimitError, "rate_limit"),
    (openai.APITimeoutError, "timeout"),
    (openai.APIConnectionError, "network"),
    (openai.InternalServerError, "overloaded"),
    (openai.BadRequestError, "invalid_request"),
)

_sleep = time.sleep


def classify_error(error: BaseException) -> str:
    """Map a provider failure to one of the error kinds in USER_MESSAGES, or 'unknown'"""
    if isinstance(error, TransportError):
        return error.kind

    for error_class, kind in _ERROR_CLASSES:
        if isinstance(error, error_class):
            return kind

    body = getattr(error, "body", None)
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error_type = str(body["error"].get("type", "")).lower()
        if error_type in _STRUCTURED_ERROR_TYPES:
            return _STRUCTURED_ERROR_TYPES[error_type]

    message = str(error).lower()
    if "overloaded" in message:
        return "overloaded"
    if "rate limit" in message:
        return "rate_limit"
    if "timeout" in message or "timed out" in message:
        return "timeout"
    if "network" in message:
        return "network"
    return "unknown"


def is_retryable(error: BaseException) -> bool:
    return classify_error(error) in TransportError.RETRYABLE_KINDS


def handle_gemini_error(error: BaseException) -> str:
    """Turn a provider error into a user-friendly message"""
    if isinstance(error, TaskMasterError) and not isinstance(error, TransportError):
        return str(error)
    kind = classify_error(error)
    if kind in USER_MESSAGES:
        return USER_MESSAGES[kind]
    return f"Error communicating with Gemini: {error}"


def _with_retries(operation: Callable[[], Any], max_retries: int = MAX_RETRIES) -> Any:
    """Run a provider call, retrying transient failures after (attempt + 1) * 5 seconds"""
    attempt = 0
    while True:
        try:
            return operation()
        except TaskMasterError:
            raise
        except Exception as error:
            message = handle_gemini_error(error)
            log('error', message)
            if is_retryable(error) and attempt < max_retries:
                wait_time = (attempt + 1) * RETRY_BACKOFF_SECONDS
                log('info', f"Waiting {wait_time} seconds before retry {attempt + 1}/{max_retries}...")
                _sleep(wait_time)
                attempt += 1
                continue
            raise TransportError(message, classify_error(error), error) from error


def _surface(error: TransportError) -> GenerationFailed:
    if error.original is not None:
        log_debug_error(error.original)
    return GenerationFailed(str(error))


def _complete(provider, prompt: str, max_tokens: int, temperature: float, desc: str) -> str:
    with EnhancedSpinner(desc):
        return provider.generate(prompt, max_tokens, temperature)


def _stream_completion(provider, prompt: str, max_tokens: int, temperature: float, desc: str) -> str:
    spinner = EnhancedSpinner(desc)
    parts = []
    try:
        for chunk in provider.stream(prompt, max_tokens, temperature):
            parts.append(chunk)
            next(spinner)
    finally:
        spinner.stop()
    log('info', "Completed streaming response from Gemini API!")
    return "".join(parts)


def _request_repair(provider, repair_prompt: str, max_tokens: int) -> str:
    try:
        return _complete(provider, repair_prompt, max_tokens, REPAIR_TEMPERATURE, "Asking Gemini to fix the response")
    except TaskMasterError:
        raise
    except Exception as error:
        message = handle_gemini_error(error)
        log('error', message)
        log_debug_error(error)
        raise GenerationFailed(f"Failed to fix JSON response: {message}") from error


def _parse_with_repair(text: str, parse: Callable[[str], Any], build_repair_prompt: Callable[[str], str],
                       max_repairs: int, provider, max_tokens: int, what: str) -> Any:
    """Parse model output; on failure re-prompt the model with its own output, at most max_repairs times"""
    repair_attempt = 0
    while True:
        try:
            return parse(text)
        except RECOVERABLE_PARSE_ERRORS as error:
            log('error', f"Error processing {what}: {error}")
            if repair_attempt >= max_repairs:
                raise GenerationFailed(f"Failed to process {what}: {error}") from error
            repair_attempt += 1
            log('info', f"Retrying with Gemini to fix the {what}, attempt {repair_attempt}/{max_repairs}")
            text = _request_repair(provider, build_repair_prompt(text), max_tokens)


def _parse_tasks_with_cleanup(text: str, num_tasks: int) -> Dict[str, Any]:
    candidate = text
    cleanup_attempt = 0
    while True:
        try:
            return validate_tasks_payload(parse_json(extract_json(candidate, "object")), num_tasks)
        except (NoJsonFound, MalformedJson) as error:
            if cleanup_attempt >= MAX_CLEANUP_ATTEMPTS:
                raise
            cleanup_attempt += 1
            log('info', f"{error}. Retrying JSON parsing with cleanup attempt {cleanup_attempt}/{MAX_CLEANUP_ATTEMPTS}")
            candidate = cleanup_json_response(candidate, "object")


def process_gemini_response(text: str, num_tasks: int, prd_path: str, provider) -> Dict[str, Any]:
    """Validate a PRD-parsing response, cleaning it up locally and then via the model if needed"""
    return _parse_with_repair(
        text,
        parse=lambda candidate: _parse_tasks_with_cleanup(candidate, num_tasks),
        build_repair_prompt=lambda bad: build_tasks_repair_prompt(bad, num_tasks, prd_path),
        max_repairs=MAX_REPAIR_ATTEMPTS,
        provider=provider,
        max_tokens=config.get('llm.max_tokens', 4000),
        what="response"
    )


def call_gemini(prd_content: str, prd_path: str, num_tasks: int, provider=None) -> Dict[str, Any]:
    """Generate ``num_tasks`` tasks from a PRD; returns ``{"tasks": [...], "metadata": {...}}``"""
    log('info', 'Calling Gemini...')
    provider = provider or get_gemini_client()
    prompt = build_prd_parsing_prompt(prd_content, prd_path, num_tasks)
    max_tokens = config.get('llm.max_tokens', 4000)
    temperature = config.get('llm.temperature', 0.7)

    try:
        text = _with_retries(
            lambda: _stream_completion(provider, prompt, max_tokens, temperature, "Generating tasks from PRD")
        )
    except TransportError as error:
        raise _surface(error) from error
    return process_gemini_response(text, num_tasks, prd_path, provider)


def expand_task_with_gemini(task: Dict[str, Any], prompt: str = "", is_subtask: bool = False, provider=None) -> str:
    """Narrative Markdown implementation plan for a task"""
    log('info', f'Expanding task "{task.get("title")}" with Gemini...')
    provider = provider or get_gemini_client()
    expand_prompt = build_task_expansion_prompt(task, prompt, is_subtask)

    try:
        return _with_retries(lambda: _complete(
            provider, expand_prompt, EXPANSION_MAX_TOKENS, config.get('llm.temperature', 0.7),
            f"Expanding task {task.get('id')}: {task.get('title')}"
        ))
    except TransportError as error:
        raise _surface(error) from error


def refine_task_with_gemini(task: Dict[str, Any], research_results: str, prompt: str = "", provider=None) -> str:
    log('info', f'Refining task details for "{task.get("title")}" with Gemini based on research...')
    provider = provider or get_gemini_client()
    refine_prompt = build_research_refinement_prompt(task, research_results, prompt)

    try:
        return _with_retries(lambda: _complete(
            provider, refine_prompt, EXPANSION_MAX_TOKENS, config.get('llm.temperature', 0.7),
            f"Refining task {task.get('id')} with research insights"
        ))
    except TransportError as error:
        raise _surface(error) from error


def research_task(task: Dict[str, Any], prompt: str = "", research_provider=None) -> str:
    """Ask the research provider about a task; MissingCredential is raised without retrying"""
    client = research_provider or get_perplexity_client()
    log('info', f'Researching task "{task.get("title")}" with Perplexity AI (model: {getattr(client, "model_name", "unknown")})...')
    research_prompt = build_research_prompt(task, prompt)
    return _with_retries(lambda: _complete(
        client, research_prompt, EXPANSION_MAX_TOKENS, 0.1,
        f"Researching task {task.get('id')}: {task.get('title')}"
    ))


def expand_task_with_research(task: Dict[str, Any], prompt: str = "", provider=None, research_provider=None) -> str:
    """Research-backed expansion; falls back to plain Gemini expansion when research is unavailable"""
    try:
        research_results = research_task(task, prompt, research_provider)
    except (MissingCredential, TransportError) as error:
        log('error', f"Error in research: {error}")
        log('info', 'Falling back to expansion without research...')
        return expand_task_with_gemini(task, prompt, provider=provider)

    return refine_task_with_gemini(task, research_results, prompt, provider=provider)


def _gather_research(task: Dict[str, Any], prompt: str, purpose: str, provider, research_provider) -> str:
    log('info', f'Gathering research to inform {purpose}...')
    try:
        insights = expand_task_with_research(task, prompt, provider=provider, research_provider=research_provider)
    except TaskMasterError as error:
        log('warn', f"Research failed, continuing without it: {error}")
        return ""
    log('info', 'Research completed successfully')
    return insights


def create_subtasks_with_gemini(task: Dict[str, Any], num_subtasks: int, prompt: str = "", use_research: bool = False,
                                provider=None, research_provider=None) -> List[Dict[str, Any]]:
    """Generate ``num_subtasks`` subtasks numbered ``<task id>.1`` through ``<task id>.<num_subtasks>``"""
    task_id = task.get('id')
    log('info', f'Creating {num_subtasks} subtasks for task {task_id}: "{task.get("title")}"...')

    research_insights = ""
    if use_research:
        research_insights = _gather_research(task, prompt, "subtask creation", provider, research_provider)

    provider = provider or get_gemini_client()
    subtask_prompt = build_subtask_prompt(task, num_subtasks, prompt, research_insights)

    try:
        text = _with_retries(lambda: _complete(
            provider, subtask_prompt, SUBTASK_MAX_TOKENS, config.get('llm.temperature', 0.7),
            f"Creating {num_subtasks} subtasks for task {task_id}"
        ))
    except TransportError as error:
        raise _surface(error) from error

    return _parse_with_repair(
        text,
        parse=lambda candidate: normalize_subtasks(parse_json(extract_json(candidate, "array")), task_id, num_subtasks),
        build_repair_prompt=lambda bad: build_subtasks_repair_prompt(bad, task_id, num_subtasks),
        max_repairs=SUBTASK_REPAIR_ATTEMPTS,
        provider=provider,
        max_tokens=SUBTASK_MAX_TOKENS,
        what="subtasks JSON"
    )


def analyze_task_complexity(task: Dict[str, Any], use_research: bool = False,
                            provider=None, research_provider=None) -> Dict[str, Any]:
    """Score a task's complexity; returns a complexity report carrying ``taskId``"""
    task_id = task.get('id')
    log('info', f'Analyzing complexity of task {task_id}: "{task.get("title")}"...')

    research_insights = ""
    if use_research:
        research_insights = _gather_research(task, "", "complexity analysis", provider, research_provider)

    provider = provider or get_gemini_client()
    complexity_prompt = build_complexity_prompt(task, research_insights)

    try:
        text = _with_retries(lambda: _complete(
            provider, complexity_prompt, COMPLEXITY_MAX_TOKENS, COMPLEXITY_TEMPERATURE,
            f"Analyzing complexity of task {task_id}"
        ))
    except TransportError as error:
        raise _surface(error) from error

    return _parse_with_repair(
        text,
        parse=lambda candidate: parse_complexity_report(candidate, task_id),
        build_repair_prompt=lambda bad: build_complexity_repair_prompt(bad, task_id),
        max_repairs=COMPLEXITY_REPAIR_ATTEMPTS,
        provider=provider,
        max_tokens=COMPLEXITY_MAX_TOKENS,
        what="complexity analysis"
    )
