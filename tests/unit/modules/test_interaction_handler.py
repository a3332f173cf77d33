"""Tests for interaction_handler module."""

from unittest.mock import patch

import pytest

from vmclone.modules.interaction_handler import (
    CLIInteractionHandler,
    InteractionHandler,
    MockInteractionHandler,
)


class TestProtocol:
    def test_implementations_satisfy_protocol(self):
        assert isinstance(CLIInteractionHandler(), InteractionHandler)
        assert isinstance(MockInteractionHandler(), InteractionHandler)


class TestMockInteractionHandler:
    """Tests for MockInteractionHandler."""

    def test_text_response(self):
        handler = MockInteractionHandler(text_responses=["web02"])

        assert handler.prompt_text("New VM name") == "web02"
        assert handler.interactions[0]["message"] == "New VM name"

    def test_none_accepts_default(self):
        handler = MockInteractionHandler(text_responses=[None], confirm_responses=[None])

        assert handler.prompt_text("VM size", default="Standard_B2s") == "Standard_B2s"
        assert handler.confirm("Reuse?", default=True) is True

    def test_required_empty_text(self):
        handler = MockInteractionHandler(text_responses=[""])

        with pytest.raises(ValueError, match="Empty response"):
            handler.prompt_text("New VM name")

    def test_optional_empty_text(self):
        handler = MockInteractionHandler(text_responses=[""])

        assert handler.prompt_text("Note", required=False) == ""

    def test_choice(self):
        handler = MockInteractionHandler(choice_responses=[2])

        assert handler.prompt_choice("Pick", [("a", "A"), ("b", "B"), ("c", "C")]) == 2

    def test_choice_default(self):
        handler = MockInteractionHandler(choice_responses=[None])

        assert handler.prompt_choice("Pick", [("a", "A"), ("b", "B")], default=1) == 1

    def test_choice_out_of_range(self):
        handler = MockInteractionHandler(choice_responses=[5])

        with pytest.raises(ValueError, match="Invalid pre-programmed response"):
            handler.prompt_choice("Pick", [("a", "A")])

    def test_empty_choices(self):
        with pytest.raises(ValueError, match="choices cannot be empty"):
            MockInteractionHandler(choice_responses=[0]).prompt_choice("Pick", [])

    def test_runs_out_of_responses(self):
        handler = MockInteractionHandler(confirm_responses=[True])
        handler.confirm("first")

        with pytest.raises(IndexError, match="No more confirm responses"):
            handler.confirm("second")

    def test_messages_recorded(self):
        handler = MockInteractionHandler()
        handler.show_warning("careful")
        handler.show_info("fyi")
        handler.show_error("bad")

        assert [i["type"] for i in handler.interactions] == ["warning", "info", "error"]
        assert handler.get_interactions_by_type("warning")[0]["message"] == "careful"


class TestCLIInteractionHandler:
    """Tests for CLIInteractionHandler."""

    @patch("vmclone.modules.interaction_handler.click.prompt")
    def test_prompt_text_strips(self, mock_prompt):
        mock_prompt.return_value = "  web02  "

        assert CLIInteractionHandler().prompt_text("New VM name") == "web02"

    @patch("vmclone.modules.interaction_handler.click.prompt")
    def test_prompt_text_retries_empty_required(self, mock_prompt):
        mock_prompt.side_effect = ["", "web02"]

        assert CLIInteractionHandler().prompt_text("New VM name") == "web02"
        assert mock_prompt.call_count == 2

    @patch("vmclone.modules.interaction_handler.click.prompt")
    def test_prompt_choice_one_based(self, mock_prompt):
        mock_prompt.return_value = "2"

        assert CLIInteractionHandler().prompt_choice("Pick", [("a", "A"), ("b", "B")]) == 1

    @patch("vmclone.modules.interaction_handler.click.prompt")
    def test_prompt_choice_retries_invalid(self, mock_prompt):
        mock_prompt.side_effect = ["x", "9", "1"]

        assert CLIInteractionHandler().prompt_choice("Pick", [("a", "A"), ("b", "B")]) == 0
        assert mock_prompt.call_count == 3

    def test_prompt_choice_empty(self):
        with pytest.raises(ValueError):
            CLIInteractionHandler().prompt_choice("Pick", [])

    @patch("vmclone.modules.interaction_handler.click.confirm")
    def test_confirm_default(self, mock_confirm):
        mock_confirm.return_value = False

        assert CLIInteractionHandler().confirm("Delete?", default=False) is False
        assert "Delete?" in mock_confirm.call_args[0][0]
        assert mock_confirm.call_args[1] == {"default": False}
