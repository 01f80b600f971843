"""
System prompts for each kind of generated text.

Every prompt insists that the model return only the requested artefact,
so the answer can be used verbatim as a commit message, branch name, PR
description, or review.
"""

from __future__ import annotations

from enum import Enum
from textwrap import dedent
from typing import Dict, Optional


class GenerationKind(str, Enum):
    COMMIT = "commit"
    BRANCH = "branch"
    PR = "pr"
    REVIEW = "review"


COMMIT_CONVENTIONS: Dict[str, str] = {
    "conventional": dedent(
        """
        Follow the Conventional Commits specification:
        - Format: <type>[optional scope]: <description>
        - Types: feat, fix, docs, style, refactor, perf, test, build, ci, chore, revert
        - Use lowercase for type and description
        - Keep the description short and in the imperative mood
        - Example: "feat(auth): add user login"
        - Example: "fix: handle null value in parser"
        """
    ).strip(),
    "semantic": dedent(
        """
        Follow semantic commit messages with an emoji:
        - Format: <emoji> <type>: <subject>
        - Types: feat, fix, docs, style, refactor, perf, test, chore
        - Pick a matching emoji (✨ feat, 🐛 fix, 📝 docs, ...)
        - Example: "✨ feat: add user authentication"
        """
    ).strip(),
    "gitmoji": dedent(
        """
        Follow the gitmoji convention:
        - Start with one fitting gitmoji
        - Follow it with a short description in the imperative mood
        - Common gitmojis: ✨ new feature, 🐛 bug fix, 📝 docs, ♻️ refactor
        - Example: "✨ Add dark mode toggle"
        """
    ).strip(),
    "angular": dedent(
        """
        Follow the Angular commit convention:
        - Format: <type>(<scope>): <subject>
        - Types: build, ci, docs, feat, fix, perf, refactor, style, test
        - The scope is optional but recommended
        - Example: "feat(core): lazy load settings module"
        """
    ).strip(),
    "custom": "Follow the custom commit format given in the additional instructions.",
}

BRANCH_CONVENTIONS: Dict[str, str] = {
    "gitflow": dedent(
        """
        Follow Git Flow branch naming:
        - feature/<name>, bugfix/<name>, hotfix/<name>, release/<version>
        - Use kebab-case
        - Example: "feature/user-authentication"
        """
    ).strip(),
    "github": dedent(
        """
        Follow GitHub Flow branch naming:
        - Format: <type>/<short-description>
        - Types: feature, fix, docs, chore, refactor
        - Use kebab-case
        - Example: "fix/memory-leak"
        """
    ).strip(),
    "gitlab": dedent(
        """
        Follow GitLab Flow branch naming:
        - Format: <issue-number>-<description> or <type>/<description>
        - Use kebab-case
        - Example: "42-implement-user-search"
        """
    ).strip(),
    "ticket": dedent(
        """
        Follow ticket based naming:
        - Format: <ticket-id>/<short-description>
        - Example: "PROJ-456/fix-validation-bug"
        """
    ).strip(),
    "custom": "Follow the custom branch naming format given in the additional instructions.",
}

PR_STYLES: Dict[str, str] = {
    "detailed": dedent(
        """
        Write a complete PR description with:
        - A summary of what changed and why
        - A list of the changes
        - Testing instructions
        - Breaking changes or migration notes, if any
        """
    ).strip(),
    "concise": dedent(
        """
        Write a short PR description with:
        - One summary paragraph
        - Bullet points for the key changes
        - Brief testing notes
        """
    ).strip(),
    "template": dedent(
        """
        Fill in this template:
        ## Description
        ## Changes
        ## Testing
        ## Notes
        """
    ).strip(),
}


def _extra(base_instructions: str, additional_instructions: str) -> str:
    parts = [p for p in (base_instructions.strip(), additional_instructions.strip()) if p]
    return "\n\n".join(parts)


def build_commit_prompt(
    convention: str = "conventional",
    base_instructions: str = "",
    additional_instructions: str = "",
) -> str:
    guide = COMMIT_CONVENTIONS.get(convention, COMMIT_CONVENTIONS["conventional"])
    return (
        "You are a specialized git commit message generator.\n\n"
        "OUTPUT RULES:\n"
        "- Return ONLY the commit message\n"
        "- Do not add explanations, notes, quotes, backticks or code fences\n"
        "- Do not prefix it with text like \"Here is the commit message\"\n\n"
        f"{guide}\n\n"
        "REQUIREMENTS:\n"
        "1. Read the diff carefully and find the main purpose of the change\n"
        "2. Keep the first line under 72 characters\n"
        "3. Use the imperative mood (\"add\", not \"added\")\n"
        "4. If several changes are present, lead with the most significant one\n\n"
        f"{_extra(base_instructions, additional_instructions)}"
    ).strip()


def build_branch_prompt(
    convention: str = "gitflow",
    base_instructions: str = "",
    additional_instructions: str = "",
) -> str:
    guide = BRANCH_CONVENTIONS.get(convention, BRANCH_CONVENTIONS["gitflow"])
    return (
        "You are a specialized git branch name generator.\n\n"
        "OUTPUT RULES:\n"
        "- Return ONLY the branch name\n"
        "- Do not add explanations, quotes, markdown or git commands\n\n"
        f"{guide}\n\n"
        "REQUIREMENTS:\n"
        "1. Use only lowercase letters, digits, hyphens and slashes\n"
        "2. Keep it between 3 and 50 characters\n\n"
        f"{_extra(base_instructions, additional_instructions)}"
    ).strip()


def build_pr_prompt(
    style: str = "detailed",
    base_instructions: str = "",
    additional_instructions: str = "",
) -> str:
    guide = PR_STYLES.get(style, PR_STYLES["detailed"])
    return (
        "You are a specialized pull request description generator.\n\n"
        "OUTPUT RULES:\n"
        "- Return ONLY the PR description\n"
        "- Markdown is allowed inside the description, but do not wrap it in a code block\n\n"
        f"{guide}\n\n"
        f"{_extra(base_instructions, additional_instructions)}"
    ).strip()


def build_review_prompt(
    style: str = "detailed",
    base_instructions: str = "",
    additional_instructions: str = "",
) -> str:
    return (
        "You are a specialized code reviewer.\n\n"
        "OUTPUT RULES:\n"
        "- Return ONLY the review, formatted with markdown\n\n"
        "Focus on bugs, code quality, performance, security, tests and documentation.\n"
        f"REVIEW STYLE: {style}\n\n"
        f"{_extra(base_instructions, additional_instructions)}"
    ).strip()


def build_system_prompt(
    kind: GenerationKind,
    convention: Optional[str] = None,
    base_instructions: str = "",
    instructions: Optional[str] = None,
) -> str:
    """Return the system prompt for ``kind``.

    ``convention`` is the commit convention, branch naming scheme, PR style
    or review style, depending on ``kind``. ``instructions`` are one-off
    guidance from the user and are appended under their own heading.
    """
    additional = f"ADDITIONAL USER INSTRUCTIONS:\n{instructions.strip()}" if instructions and instructions.strip() else ""
    if kind is GenerationKind.COMMIT:
        return build_commit_prompt(convention or "conventional", base_instructions, additional)
    if kind is GenerationKind.BRANCH:
        return build_branch_prompt(convention or "gitflow", base_instructions, additional)
    if kind is GenerationKind.PR:
        return build_pr_prompt(convention or "detailed", base_instructions, additional)
    return build_review_prompt(convention or "detailed", base_instructions, additional)
