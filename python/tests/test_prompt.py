"""Tests for prompt templates, input truncation and the truncation budget."""

import pytest
from pydantic import ValidationError

from groundup.config import Settings
from groundup.db.models import EnhancementType
from groundup.services.llm import ENHANCEMENT_PROMPTS, build_messages, truncate_to_budget
from groundup.services.llm.prompt import get_enhancement_prompt


class TestTruncateToBudget:
    def test_short_text_unchanged(self):
        assert truncate_to_budget("Short resume.", 100) == ("Short resume.", False)

    def test_exact_budget_unchanged(self):
        text = "a" * 50
        assert truncate_to_budget(text, 50) == (text, False)

    def test_cuts_after_last_sentence_end(self):
        text = "First sentence. Second sentence runs past the budget"
        result, truncated = truncate_to_budget(text, 30)

        assert truncated is True
        assert result == "First sentence."

    def test_newline_counts_as_boundary(self):
        text = "Line one without period\nLine two keeps going well past"
        result, truncated = truncate_to_budget(text, 30)

        assert truncated is True
        assert result == "Line one without period\n"

    @pytest.mark.parametrize(
        ("text", "budget", "expected"),
        [
            ("Portfolio at example.com and more words here", 22, "Portfolio at"),
            ("Rated 3.5 stars by clients across the county", 8, "Rated"),
            ("Built dashboards in Node.js for field crews", 24, "Built dashboards in"),
        ],
    )
    def test_inner_period_is_not_a_sentence_end(self, text, budget, expected):
        assert truncate_to_budget(text, budget) == (expected, True)

    def test_sentence_end_at_budget_edge(self):
        text = "Licensed electrician. Twelve years in the field"
        assert truncate_to_budget(text, 21) == ("Licensed electrician.", True)

    def test_falls_back_to_whitespace(self):
        text = "alpha beta gamma delta epsilon"
        result, truncated = truncate_to_budget(text, 13)

        assert truncated is True
        assert result == "alpha beta"

    def test_budget_on_word_break_keeps_window(self):
        text = "alpha beta gamma"
        assert truncate_to_budget(text, 10) == ("alpha beta", True)

    def test_unbroken_run_is_hard_cut(self):
        result, truncated = truncate_to_budget("x" * 40, 25)
        assert truncated is True
        assert result == "x" * 25

    @pytest.mark.parametrize("budget", [5, 17, 64, 200])
    def test_never_exceeds_budget(self, budget):
        text = "Installed panels. Wired 300 homes!\nOSHA 30 certified? Yes " * 20
        result, _ = truncate_to_budget(text, budget)
        assert len(result) <= budget
        assert text.startswith(result)


class TestBuildMessages:
    @pytest.mark.parametrize("kind", [t.value for t in EnhancementType])
    def test_single_user_turn_with_template(self, kind):
        messages = build_messages("Resume body", kind)

        assert len(messages) == 1
        assert messages[0].role == "user"
        assert messages[0].content.startswith(
            "Here is the resume content to enhance:\n\nResume body\n\n"
        )
        assert messages[0].content.endswith(ENHANCEMENT_PROMPTS[kind])

    def test_unknown_kind_raises(self):
        with pytest.raises(KeyError):
            build_messages("Resume body", "cover_letter")

    def test_every_kind_has_template(self):
        assert set(ENHANCEMENT_PROMPTS) == {t.value for t in EnhancementType}
        assert get_enhancement_prompt("cover_letter") is None


class TestInputBudget:
    def test_default_budget(self):
        settings = Settings(DATABASE_URL="sqlite+pysqlite://", GROUNDUP_ENV="test")
        assert settings.input_budget_chars == (128_000 - 4096 - 500) * 4

    def test_custom_budget(self):
        settings = Settings(
            DATABASE_URL="sqlite+pysqlite://",
            GROUNDUP_ENV="test",
            MODEL_CONTEXT_TOKENS=1000,
            COMPLETION_RESERVE_TOKENS=200,
            PROMPT_OVERHEAD_TOKENS=100,
            CHARS_PER_TOKEN=3,
        )
        assert settings.input_budget_chars == 2100

    def test_budget_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(
                DATABASE_URL="sqlite+pysqlite://",
                GROUNDUP_ENV="test",
                MODEL_CONTEXT_TOKENS=1000,
                COMPLETION_RESERVE_TOKENS=900,
                PROMPT_OVERHEAD_TOKENS=100,
            )
