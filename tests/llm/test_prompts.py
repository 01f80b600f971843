"""Tests for system prompt construction."""

import unittest

from coparrot.llm.prompts import (
    BRANCH_CONVENTIONS,
    COMMIT_CONVENTIONS,
    GenerationKind,
    build_system_prompt,
)


class TestBuildSystemPrompt(unittest.TestCase):
    def test_each_kind_has_own_prompt(self) -> None:
        expected = {
            GenerationKind.COMMIT: "commit message generator",
            GenerationKind.BRANCH: "branch name generator",
            GenerationKind.PR: "pull request description generator",
            GenerationKind.REVIEW: "code reviewer",
        }
        for kind, marker in expected.items():
            with self.subTest(kind=kind):
                self.assertIn(marker, build_system_prompt(kind))

    def test_commit_convention_selected(self) -> None:
        prompt = build_system_prompt(GenerationKind.COMMIT, convention="angular")
        self.assertIn(COMMIT_CONVENTIONS["angular"], prompt)
        self.assertNotIn(COMMIT_CONVENTIONS["conventional"], prompt)

    def test_unknown_convention_falls_back(self) -> None:
        prompt = build_system_prompt(GenerationKind.BRANCH, convention="nonsense")
        self.assertIn(BRANCH_CONVENTIONS["gitflow"], prompt)

    def test_instructions_appended(self) -> None:
        prompt = build_system_prompt(GenerationKind.COMMIT, instructions="  keep it short ")
        self.assertTrue(prompt.endswith("ADDITIONAL USER INSTRUCTIONS:\nkeep it short"))

    def test_blank_instructions_ignored(self) -> None:
        prompt = build_system_prompt(GenerationKind.COMMIT, instructions="   ")
        self.assertNotIn("ADDITIONAL USER INSTRUCTIONS", prompt)
        self.assertEqual(prompt, build_system_prompt(GenerationKind.COMMIT))

    def test_base_instructions_before_user_instructions(self) -> None:
        prompt = build_system_prompt(
            GenerationKind.PR,
            base_instructions="Always mention the ticket.",
            instructions="Use British spelling.",
        )
        self.assertLess(prompt.index("Always mention the ticket."), prompt.index("Use British spelling."))

    def test_review_style_included(self) -> None:
        self.assertIn("REVIEW STYLE: security", build_system_prompt(GenerationKind.REVIEW, convention="security"))


if __name__ == "__main__":
    unittest.main()
