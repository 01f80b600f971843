"""
Command line interface for coparrot.

This module defines the ``main`` click group used as the entry point of
the ``coparrot`` command. The ``squawk`` sub-command drives the
sequential per-change commit engine; ``commit``, ``branch``, ``pr`` and
``review`` are single-shot helpers around the same providers, ``add``
stages a hand-picked set of files, and ``setup`` writes the user
configuration. Exit codes are listed below.
"""

from __future__ import annotations

import functools
import logging
import re
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import click

from coparrot import __version__
from coparrot.approval import ApprovalLoop, ClickPrompter
from coparrot.config.loader import (
    SUPPORTED_PROVIDERS,
    AppConfig,
    ConfigError,
    load_config,
    parse_config,
    save_config,
)
from coparrot.grouping.partitioner import GroupOverlap
from coparrot.grouping.patterns import compile_pattern
from coparrot.llm.prompts import BRANCH_CONVENTIONS, COMMIT_CONVENTIONS, GenerationKind
from coparrot.llm.providers import LLMError, LLMProvider, create_provider
from coparrot.models import Change, Group, RunStatistics, SquawkOutcome
from coparrot.squawk import Squawk, SquawkItem, SquawkReporter
from coparrot.vcs.git_client import GitClient, GitError

# Create a module-level logger. Attach a null handler and disable
# propagation to avoid logging errors when the root logger's stream is
# closed (such as during unit tests). When logging is configured by
# the CLI, root handlers will be added and messages will propagate.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_LLM_FAILURE = 7
EXIT_ALL_DECLINED = 8
EXIT_ITEMS_FAILED = 9

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "claude": "claude-3-5-sonnet-latest",
    "gemini": "gemini-1.5-flash",
    "ollama": "llama3",
}


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback."""

    def __init__(self, message: str, show_spinner: bool = True):
        self.message = message
        self.show_spinner = show_spinner
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        if self.show_spinner:
            click.echo(f"⠋ {self.message}...", nl=False)
        else:
            click.echo(f"→ {self.message}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time
        if exc_type is not None:
            click.echo(f"\r✗ {self.message}")
        elif self.show_spinner:
            click.echo(f"\r✓ {self.message} (took {elapsed:.1f}s)")
        else:
            click.echo(f"  ✓ Done ({elapsed:.1f}s)")
        return False


def print_info(message: str, indent: int = 0):
    """Print an info message."""
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}", err=False)


def print_success(message: str, indent: int = 0):
    """Print a success message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}", err=False)


def print_warning(message: str, indent: int = 0):
    """Print a warning message."""
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}", err=False)


def print_error(message: str, indent: int = 0):
    """Print an error message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


def print_summary_box(title: str, items: List[str]):
    """Print a formatted summary box."""
    max_width = max(len(title), max(len(item) for item in items) if items else 0)
    box_width = min(max_width + 4, 60)

    click.echo(f"\n┌{'─' * box_width}┐")
    click.echo(f"│ {title.ljust(box_width - 2)}│")
    click.echo(f"├{'─' * box_width}┤")
    for item in items:
        click.echo(f"│ {item.ljust(box_width - 2)}│")
    click.echo(f"└{'─' * box_width}┘")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


# ---------------------------------------------------------------------------
# Squawk progress reporting
# ---------------------------------------------------------------------------

class ConsoleReporter(SquawkReporter):
    """Prints squawk progress to the terminal."""

    def on_nothing_to_do(self, outcome: SquawkOutcome, total_changes: int) -> None:
        if outcome is SquawkOutcome.ALL_IGNORED:
            print_warning(f"All {_plural(total_changes, 'changed file')} matched an ignore pattern; nothing to commit.")
        else:
            print_warning("No changes detected to commit.")

    def on_start(self, groups: Sequence[Group], ungrouped: Sequence[Change]) -> None:
        click.echo(f"\n{'=' * 60}")
        click.echo("🦜 Squawk")
        click.echo(f"{'=' * 60}")
        for group in groups:
            print_info(f"Group {group.pattern}: {_plural(len(group.files), 'file')}", indent=1)
        if ungrouped:
            print_info(f"Individual: {_plural(len(ungrouped), 'file')}", indent=1)

    def on_item_start(self, item: SquawkItem) -> None:
        click.echo(click.style(f"\n[{item.index}/{item.total}] {item.label}", fg="cyan"))
        for path in item.paths:
            print_info(f"Staging {path}", indent=1)

    def on_item_committed(self, item: SquawkItem, message: str) -> None:
        subject = message.strip().splitlines()[0]
        print_success(f"Committed: {subject}", indent=1)

    def on_item_skipped(self, item: SquawkItem, reason: str) -> None:
        print_warning(f"Skipped {item.label}: {reason}", indent=1)

    def on_item_failed(self, item: SquawkItem, error: Exception) -> None:
        print_error(f"Failed {item.label}: {error}", indent=1)

    def on_finish(self, stats: RunStatistics) -> None:
        items = [
            f"✓ Group commits: {stats.group_commits} ({_plural(stats.group_files, 'file')})",
            f"✓ Individual commits: {stats.individual_commits}",
            f"✓ Total commits: {stats.total_commits}",
        ]
        if stats.skipped:
            items.append(f"⚠ Skipped: {stats.skipped}")
        if stats.failed:
            items.append(f"✗ Failed: {stats.failed}")
        items.append(f"⏱ Elapsed: {stats.elapsed:.1f}s")
        print_summary_box("Squawk summary", items)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _configure_logging(verbose: bool) -> None:
    # force=True so handlers are reconfigured on each invocation (tests)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    if verbose:
        for name, item in list(logging.root.manager.loggerDict.items()):
            if name.startswith("coparrot") and isinstance(item, logging.Logger):
                item.propagate = True


def handle_errors(func: Callable) -> Callable:
    """Turn unexpected exceptions in a command into ``EXIT_GENERIC_ERROR``."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.Abort, click.UsageError):
            raise
        except Exception as exc:
            logging.exception("Unhandled error: %s", exc)
            print_error(f"Unexpected error: {exc}")
            raise click.exceptions.Exit(EXIT_GENERIC_ERROR)

    return wrapper


def open_repository(start: Optional[Path] = None) -> GitClient:
    """Return a :class:`GitClient` for the repository containing ``start``."""
    repo_root = GitClient.find_repo_root(start or Path.cwd())
    if repo_root is None:
        print_error("Current directory is not inside a Git repository.")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    logger.debug("Repository root: %s", repo_root)
    return GitClient(repo_root)


def load_provider() -> LLMProvider:
    """Load the configuration and build the configured provider."""
    try:
        config = load_config()
        provider = create_provider(config)
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    logger.debug("Using provider %s with model %s", config.provider, config.model)
    return provider


def make_approval(yes: bool, title: str) -> ApprovalLoop:
    return ApprovalLoop(prompter=None if yes else ClickPrompter(title), auto_approve=yes)


def _validate_patterns(ctx: click.Context, param: click.Parameter, value: Sequence[str]) -> Sequence[str]:
    for pattern in value:
        try:
            compile_pattern(pattern)
        except ValueError as exc:
            raise click.BadParameter(str(exc), ctx=ctx, param=param)
    return value


def _parse_selection(answer: str, count: int) -> List[int]:
    """Turn ``"1,3-4"`` or ``"all"`` into sorted zero-based indexes.

    Raises
    ------
    ValueError
        If a number is not an integer or lies outside ``1..count``.
    """
    answer = answer.strip().lower()
    if not answer:
        return []
    if answer in ("all", "*"):
        return list(range(count))
    chosen: Dict[int, None] = {}
    for part in re.split(r"[,\s]+", answer):
        if not part:
            continue
        start_text, dash, end_text = part.partition("-")
        start = int(start_text)
        end = int(end_text) if dash else start
        if start < 1 or end > count or start > end:
            raise ValueError(f"'{part}' is outside 1-{count}")
        for number in range(start, end + 1):
            chosen.setdefault(number - 1, None)
    return sorted(chosen)


def _diff_for_context(client: GitClient) -> str:
    diff = client.staged_diff()
    if diff.strip():
        return diff
    return client.working_diff()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group()
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="coparrot")
def main(verbose: bool) -> None:
    """🦜 CoParrot: AI-written commits for Git repositories."""
    _configure_logging(verbose)


@main.command()
@click.option(
    "-i",
    "--ignore",
    "ignore",
    multiple=True,
    metavar="GLOB",
    callback=_validate_patterns,
    help="Skip files matching GLOB (repeatable).",
)
@click.option(
    "-g",
    "--group",
    "group",
    multiple=True,
    metavar="GLOB",
    callback=_validate_patterns,
    help="Commit files matching GLOB together (repeatable).",
)
@click.option("-y", "--yes", "yes", is_flag=True, help="Accept every generated message without prompting.")
@click.option(
    "--exclusive-groups",
    is_flag=True,
    help="Put a file only in the first group whose pattern matches it.",
)
@handle_errors
def squawk(ignore: Sequence[str], group: Sequence[str], yes: bool, exclusive_groups: bool) -> None:
    """Commit every change, one AI-written commit per group or file."""
    client = open_repository()

    try:
        with ProgressIndicator("Scanning for changes"):
            changes = client.get_changes()
    except GitError as exc:
        print_error(f"VCS error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)

    if not changes:
        print_warning("No changes detected to commit.")
        raise click.exceptions.Exit(EXIT_NO_CHANGES)

    provider = load_provider()
    orchestrator = Squawk(
        stage=client.stage,
        generate=lambda diff, instructions: provider.generate(diff, GenerationKind.COMMIT, instructions),
        commit=client.commit,
        staged_diff=client.staged_diff,
        unstage_all=client.unstage_all,
        approval=make_approval(yes, "AI generated commit message"),
        reporter=ConsoleReporter(),
        overlap=GroupOverlap.EXCLUSIVE if exclusive_groups else GroupOverlap.SHARED,
    )

    try:
        stats = orchestrator.run(changes, group_patterns=group, ignore_patterns=ignore)
    except GitError as exc:
        print_error(f"VCS error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)

    if stats.outcome is not SquawkOutcome.COMPLETED:
        raise click.exceptions.Exit(EXIT_NO_CHANGES)
    if stats.failed:
        print_warning(f"{_plural(stats.failed, 'item')} failed; {stats.total_commits} committed.")
        raise click.exceptions.Exit(EXIT_ITEMS_FAILED)
    if stats.total_commits == 0:
        raise click.exceptions.Exit(EXIT_ALL_DECLINED)
    click.echo("\n🎉 All done!\n")


@main.command()
@handle_errors
def status() -> None:
    """Show pending changes with their kind and line counts."""
    client = open_repository()
    try:
        changes = client.get_changes()
    except GitError as exc:
        print_error(f"VCS error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)

    if not changes:
        print_success("Working tree clean")
        return
    click.echo(f"{_plural(len(changes), 'changed file')}:")
    for change in changes:
        counts = click.style(f"+{change.additions}", fg="green") + " " + click.style(f"-{change.deletions}", fg="red")
        renamed = f" (from {change.original_path})" if change.original_path else ""
        click.echo(f"  {change.kind.value:<10} {change.path}{renamed}  {counts}")


@main.command()
@handle_errors
def add() -> None:
    """Choose which changed files to stage, replacing the current index."""
    client = open_repository()
    try:
        changes = client.get_changes()
    except GitError as exc:
        print_error(f"VCS error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    if not changes:
        print_warning("No files available to stage.")
        raise click.exceptions.Exit(EXIT_NO_CHANGES)

    click.echo(f"{_plural(len(changes), 'changed file')}:")
    for number, change in enumerate(changes, start=1):
        click.echo(f"  {number:>3}. {change.kind.value:<10} {change.path}")

    while True:
        try:
            answer = click.prompt(
                "   Files to stage (e.g. 1,3-4 or 'all'; empty for none)",
                default="",
                show_default=False,
            )
        except click.Abort:
            answer = ""
        try:
            selected = [changes[index] for index in _parse_selection(answer, len(changes))]
        except ValueError as exc:
            print_error(f"Invalid selection: {exc}", indent=1)
            continue
        break

    if not selected:
        print_warning("No files were staged. Your working directory remains unchanged.")
        return

    try:
        client.unstage_all()
        client.stage([path for change in selected for path in change.paths])
    except GitError as exc:
        print_error(f"Failed to stage files: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    print_success(f"Staged {_plural(len(selected), 'file')}:")
    for change in selected:
        print_info(change.path, indent=1)
    print_info("Run 'coparrot commit' to create the commit.")


@main.command()
@click.option("-y", "--yes", "yes", is_flag=True, help="Accept the generated message without prompting.")
@handle_errors
def commit(yes: bool) -> None:
    """Commit the staged changes with an AI-written message."""
    client = open_repository()
    try:
        diff = client.staged_diff()
    except GitError as exc:
        print_error(f"VCS error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    if not diff.strip():
        print_warning("No files staged for commit.")
        print_info("Stage files with 'git add' first, or use 'coparrot squawk'.", indent=1)
        raise click.exceptions.Exit(EXIT_NO_CHANGES)

    provider = load_provider()
    try:
        message = make_approval(yes, "AI generated commit message").run(
            lambda instructions: provider.generate(diff, GenerationKind.COMMIT, instructions)
        )
    except LLMError as exc:
        print_error(f"LLM error: {exc}")
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)
    if not message:
        print_warning("Commit cancelled.")
        raise click.exceptions.Exit(EXIT_ALL_DECLINED)

    try:
        client.commit(message)
    except GitError as exc:
        print_error(f"Failed to commit: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    print_success(f"Committed: {message.splitlines()[0]}")


@main.command()
@click.option("-y", "--yes", "yes", is_flag=True, help="Accept the generated name without prompting.")
@click.option("-d", "--description", default=None, help="Describe the work instead of using the current diff.")
@click.argument("name", required=False)
@handle_errors
def branch(yes: bool, description: Optional[str], name: Optional[str]) -> None:
    """Switch to branch NAME, or create and switch to an AI-named branch.

    NAME is checked out if it exists and created otherwise; no text is
    generated in that case.
    """
    client = open_repository()
    if name:
        try:
            if client.branch_exists(name):
                client.checkout(name)
                print_success(f"Switched to branch: {name}")
            else:
                client.create_branch(name)
                print_success(f"Created and switched to branch: {name}")
        except GitError as exc:
            print_error(f"Failed to switch branch: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)
        return

    context = description or _diff_for_context(client)
    if not context.strip():
        print_warning("Nothing to describe: no diff and no --description given.")
        raise click.exceptions.Exit(EXIT_NO_CHANGES)

    provider = load_provider()
    try:
        name = make_approval(yes, "AI generated branch name").run(
            lambda instructions: provider.generate(context, GenerationKind.BRANCH, instructions)
        )
    except LLMError as exc:
        print_error(f"LLM error: {exc}")
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)
    name = name.strip().splitlines()[0].strip() if name.strip() else ""
    if not name:
        print_warning("Branch creation cancelled.")
        raise click.exceptions.Exit(EXIT_ALL_DECLINED)

    try:
        if client.branch_exists(name):
            print_error(f"Branch '{name}' already exists")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)
        with ProgressIndicator(f"Creating branch '{name}'"):
            client.create_branch(name)
    except GitError as exc:
        print_error(f"Failed to create branch: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    print_success(f"Created and switched to branch: {name}")


@main.command()
@click.option("--base", default="main", show_default=True, help="Branch the pull request targets.")
@handle_errors
def pr(base: str) -> None:
    """Print an AI-written pull request description for BASE..HEAD."""
    client = open_repository()
    try:
        log = client.log_range(base)
        diff = client.diff_range(base)
    except GitError as exc:
        print_error(f"VCS error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    if not log.strip() and not diff.strip():
        print_warning(f"No commits between {base} and HEAD.")
        raise click.exceptions.Exit(EXIT_NO_CHANGES)

    provider = load_provider()
    context = f"COMMITS:\n{log.strip()}\n\nDIFF:\n{diff}"
    try:
        with ProgressIndicator("Writing pull request description"):
            text = provider.generate(context, GenerationKind.PR)
    except LLMError as exc:
        print_error(f"LLM error: {exc}")
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)
    click.echo(f"\n{text}\n")


@main.command()
@handle_errors
def review() -> None:
    """Print an AI code review of the staged (or working tree) diff."""
    client = open_repository()
    try:
        diff = _diff_for_context(client)
    except GitError as exc:
        print_error(f"VCS error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    if not diff.strip():
        print_warning("No changes to review.")
        raise click.exceptions.Exit(EXIT_NO_CHANGES)

    provider = load_provider()
    try:
        with ProgressIndicator("Reviewing changes"):
            text = provider.generate(diff, GenerationKind.REVIEW)
    except LLMError as exc:
        print_error(f"LLM error: {exc}")
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)
    click.echo(f"\n{text}\n")


@main.command()
@handle_errors
def setup() -> None:
    """Create the configuration file interactively."""
    provider = click.prompt(
        "   LLM provider",
        type=click.Choice(list(SUPPORTED_PROVIDERS), case_sensitive=False),
        default="openai",
    ).lower()
    model = click.prompt("   Model", default=DEFAULT_MODELS[provider])
    data = {"provider": provider, "model": model}
    if provider == "ollama":
        data["base_url"] = click.prompt("   Ollama URL", default="http://localhost:11434")
    else:
        data["api_key"] = click.prompt(f"   {provider} API key", hide_input=True)
    data["commit_convention"] = click.prompt(
        "   Commit convention",
        type=click.Choice(list(COMMIT_CONVENTIONS)),
        default="conventional",
    )
    data["branch_naming"] = click.prompt(
        "   Branch naming",
        type=click.Choice(list(BRANCH_CONVENTIONS)),
        default="gitflow",
    )
    data["custom_instructions"] = click.prompt("   Extra instructions (optional)", default="", show_default=False)

    try:
        config: AppConfig = parse_config(data)
        path = save_config(config)
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    print_success(f"Configuration saved to {path}")
