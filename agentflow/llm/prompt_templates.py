"""Prompt templates for task analysis."""

from typing import Any, Optional

TASK_ANALYSIS_SYSTEM_PROMPT = (
    "You are a planning assistant for autonomous AI agents. You turn a user's request "
    "into concrete, actionable tasks the agent can do on its own, and you call out "
    "separately every step that needs a human: approvals, credentials, decisions or "
    "information only the user has."
)

TASK_ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["userNeedAnalysis", "tasks", "dependencies", "recommendedFlow"],
    "properties": {
        "userNeedAnalysis": {"type": "string"},
        "recommendedFlow": {"type": "array", "items": {"type": "string"}},
        "tasks": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["title", "description", "priority"],
                "properties": {
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "priority": {"enum": ["low", "medium", "high", "urgent"]},
                    "estimatedHours": {"type": "number"},
                    "category": {
                        "enum": ["strategy", "research", "implementation", "review", "communication"]
                    },
                },
            },
        },
        "dependencies": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["title", "reason", "priority"],
                "properties": {
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "reason": {"type": "string"},
                    "priority": {"enum": ["high", "urgent"]},
                    "dependencyType": {"enum": ["approval", "input", "decision", "access"]},
                },
            },
        },
    },
}


def get_task_analysis_prompt(
    user_input: str,
    agent_goal: str,
    agent_type: str,
    existing_tasks: Optional[list[dict[str, Any]]] = None
) -> str:
    """
    Generate prompt for breaking a user request into tasks and dependencies.

    Args:
        user_input: What the user asked the agent to work on
        agent_goal: The agent's standing goal
        agent_type: Template slug of the agent ("custom" if none)
        existing_tasks: Recent tasks of the agent, used to avoid duplicates

    Returns:
        Formatted prompt for Claude
    """
    existing_section = ""
    if existing_tasks:
        lines = "\n".join(
            f"- {task.get('title')} ({task.get('status', 'todo')})"
            for task in existing_tasks
        )
        existing_section = f"""
## Existing Tasks

Do not propose tasks that duplicate these:

{lines}
"""

    return f"""Analyze the following request and create a task breakdown for a {agent_type} agent.

## Request

"{user_input}"

## Agent Goal

"{agent_goal or 'No goal set'}"
{existing_section}
## Your Task

1. Summarize what the user is trying to achieve in `userNeedAnalysis`.
2. List the work the agent can do on its own in `tasks`.
3. List every step that needs a human in `dependencies`, each with a `reason`
   explaining what the human must provide.
4. Give the recommended order of work in `recommendedFlow` as short step names.

### Guidelines

- Keep tasks actionable and specific; each should be a few hours of work at most
- Prioritize by importance and urgency (low, medium, high, urgent)
- Dependencies are always high or urgent, since they block the agent
- Never list the same step as both a task and a dependency

Generate the analysis now."""


def get_dependency_analysis_prompt(
    task_title: str,
    task_description: Optional[str]
) -> str:
    """
    Generate prompt asking which human inputs an existing task needs.

    Args:
        task_title: Title of the task
        task_description: Description of the task

    Returns:
        User input text for the task analysis prompt
    """
    return f"Analyze dependencies for task: {task_title} - {task_description or ''}".strip()
