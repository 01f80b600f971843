"""
Human approval around a single text generation call.

The loop is an explicit state machine::

    GENERATING -> AWAITING_APPROVAL -> APPROVED
                        |  retry              -> GENERATING
                        |  with instructions  -> AWAITING_INSTRUCTIONS -> GENERATING
                        |  cancelled          -> CANCELLED

``auto_approve`` accepts the first generated text without asking. A
cancelled prompt yields an empty string; the caller decides whether that
means "skip". Errors raised by the generator propagate untouched and are
never retried here.
"""

from __future__ import annotations

import logging
import textwrap
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

import click


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


GenerateFn = Callable[[Optional[str]], str]


class ApprovalState(str, Enum):
    GENERATING = "generating"
    AWAITING_APPROVAL = "awaiting_approval"
    AWAITING_INSTRUCTIONS = "awaiting_instructions"
    APPROVED = "approved"
    CANCELLED = "cancelled"


class ApprovalAction(str, Enum):
    APPROVE = "approve"
    RETRY = "retry"
    RETRY_WITH_INSTRUCTIONS = "retry_with_instructions"


@dataclass(frozen=True)
class ApprovalDecision:
    """What the human chose for one generated text."""

    action: ApprovalAction
    instructions: Optional[str] = None


class ApprovalCancelled(Exception):
    """Raised by a prompter when the human interrupts the interaction."""

    pass


class Prompter:
    """Interface for the human side of the approval loop."""

    def review(self, text: str) -> ApprovalDecision:
        """Show ``text`` and return the chosen action."""
        raise NotImplementedError

    def ask_instructions(self) -> str:
        """Ask for free-text guidance for the next attempt."""
        raise NotImplementedError


class ClickPrompter(Prompter):
    """Terminal prompter built on ``click.prompt``."""

    CHOICES = {
        "a": ApprovalAction.APPROVE,
        "r": ApprovalAction.RETRY,
        "i": ApprovalAction.RETRY_WITH_INSTRUCTIONS,
    }

    def __init__(self, title: str = "AI generated message") -> None:
        self.title = title

    def _show(self, text: str) -> None:
        click.echo("\n   ┌" + "─" * 56 + "┐")
        click.echo(f"   │ {click.style(self.title, fg='cyan', bold=True)}" + " " * max(0, 54 - len(self.title)) + " │")
        click.echo("   ├" + "─" * 56 + "┤")
        for line in text.splitlines() or [""]:
            for display_line in textwrap.wrap(line, width=54, break_on_hyphens=False) or [""]:
                click.echo(f"   │ {display_line.ljust(54)} │")
        click.echo("   └" + "─" * 56 + "┘")

    def review(self, text: str) -> ApprovalDecision:
        self._show(text)
        click.echo("   A = Approve | R = Retry | I = Retry with instructions")
        try:
            choice = click.prompt(
                "   Choose action",
                type=click.Choice(["A", "R", "I", "a", "r", "i"], case_sensitive=False),
                default="A",
                show_choices=True,
                show_default=True,
            )
        except click.Abort as exc:
            raise ApprovalCancelled() from exc
        return ApprovalDecision(self.CHOICES[choice.strip().lower()])

    def ask_instructions(self) -> str:
        try:
            return click.prompt("   Enter your custom instructions", type=str, default="", show_default=False)
        except click.Abort as exc:
            raise ApprovalCancelled() from exc


class ApprovalLoop:
    """Generate text until it is approved, retried away, or cancelled.

    Parameters
    ----------
    prompter : Prompter, optional
        Human interaction. Required unless ``auto_approve`` is set.
    auto_approve : bool
        Accept the first generated text without asking.
    """

    def __init__(self, prompter: Optional[Prompter] = None, auto_approve: bool = False) -> None:
        if prompter is None and not auto_approve:
            prompter = ClickPrompter()
        self.prompter = prompter
        self.auto_approve = auto_approve
        self.attempts = 0
        self.transitions: List[Tuple[ApprovalState, ApprovalState]] = []
        self.state = ApprovalState.GENERATING

    def _move(self, new_state: ApprovalState) -> None:
        self.transitions.append((self.state, new_state))
        logger.debug("Approval loop: %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def run(self, generate_fn: GenerateFn, instructions: Optional[str] = None) -> str:
        """Drive the loop and return the approved text ("" when cancelled)."""
        self.attempts = 0
        self.transitions = []
        self.state = ApprovalState.GENERATING
        text = ""

        while True:
            if self.state is ApprovalState.GENERATING:
                self.attempts += 1
                text = generate_fn(instructions)
                self._move(ApprovalState.AWAITING_APPROVAL)

            elif self.state is ApprovalState.AWAITING_APPROVAL:
                if self.auto_approve:
                    self._move(ApprovalState.APPROVED)
                    continue
                try:
                    decision = self.prompter.review(text)
                except ApprovalCancelled:
                    self._move(ApprovalState.CANCELLED)
                    continue
                if decision.action is ApprovalAction.APPROVE:
                    self._move(ApprovalState.APPROVED)
                elif decision.action is ApprovalAction.RETRY:
                    instructions = None
                    self._move(ApprovalState.GENERATING)
                elif decision.instructions is not None:
                    instructions = decision.instructions.strip() or None
                    self._move(ApprovalState.GENERATING)
                else:
                    self._move(ApprovalState.AWAITING_INSTRUCTIONS)

            elif self.state is ApprovalState.AWAITING_INSTRUCTIONS:
                try:
                    instructions = self.prompter.ask_instructions().strip() or None
                except ApprovalCancelled:
                    self._move(ApprovalState.CANCELLED)
                    continue
                self._move(ApprovalState.GENERATING)

            elif self.state is ApprovalState.APPROVED:
                return text

            else:
                logger.info("Approval cancelled after %d attempt(s)", self.attempts)
                return ""
