"""User interaction abstraction for CLI and testing.

This module provides a protocol-based approach to operator interaction,
allowing one implementation for the terminal (using click) and one with
scripted responses for tests.

Example:
    >>> handler = CLIInteractionHandler()
    >>> choices = [
    ...     ("hardened", "Create a new hardened NSG"),
    ...     ("reuse", "Reuse the source VM's NSG"),
    ... ]
    >>> idx = handler.prompt_choice("NSG policy:", choices, default=0)
    >>> handler.show_info(f"Selected: {choices[idx][0]}")

    Testing example:
    >>> test_handler = MockInteractionHandler(choice_responses=[1], confirm_responses=[True])
    >>> test_handler.prompt_choice("Select:", [("a", "opt a"), ("b", "opt b")])
    1
"""

from typing import Protocol, runtime_checkable

import click


@runtime_checkable
class InteractionHandler(Protocol):
    """Protocol for operator interaction."""

    def prompt_text(self, message: str, default: str | None = None, required: bool = True) -> str:
        """Prompt for a line of text.

        Args:
            message: Prompt message
            default: Value used when the operator just presses Enter
            required: Whether an empty answer is rejected

        Returns:
            Entered text (stripped), the default, or "" when optional
        """
        ...

    def prompt_choice(
        self,
        message: str,
        choices: list[tuple[str, str]],
        default: int | None = None,
    ) -> int:
        """Prompt the operator to select from numbered choices.

        Args:
            message: Prompt message to display
            choices: List of (label, description) tuples
            default: Zero-based index used when the operator presses Enter

        Returns:
            Zero-based index of selected choice

        Raises:
            ValueError: If choices is empty
        """
        ...

    def confirm(self, message: str, default: bool = True) -> bool:
        """Prompt for yes/no confirmation."""
        ...

    def show_warning(self, message: str) -> None:
        """Display a warning message."""
        ...

    def show_info(self, message: str) -> None:
        """Display an informational message."""
        ...

    def show_error(self, message: str) -> None:
        """Display an error message."""
        ...


class CLIInteractionHandler:
    """Click-based terminal interaction handler.

    Choice numbers in cyan, warnings in yellow, errors in red.
    """

    def prompt_text(self, message: str, default: str | None = None, required: bool = True) -> str:
        while True:
            value = click.prompt(
                message,
                default=default if default is not None else ("" if not required else None),
                show_default=default is not None,
                type=str,
            )
            value = value.strip()
            if value or not required:
                return value
            click.secho("A value is required", fg="red")

    def prompt_choice(
        self,
        message: str,
        choices: list[tuple[str, str]],
        default: int | None = None,
    ) -> int:
        if not choices:
            raise ValueError("choices cannot be empty")

        click.echo()
        click.secho(message, fg="green", bold=True)
        for i, (_label, description) in enumerate(choices, 1):
            marker = " (default)" if default is not None and i - 1 == default else ""
            click.echo(f"  {click.style(str(i), fg='cyan')}. {description}{marker}")
        click.echo()

        while True:
            choice_str = click.prompt(
                "Enter choice",
                default=str(default + 1) if default is not None else None,
                show_default=False,
                type=str,
            )
            try:
                choice_num = int(choice_str)
            except ValueError:
                click.secho("Please enter a valid number", fg="red")
                continue

            if 1 <= choice_num <= len(choices):
                return choice_num - 1
            click.secho(f"Please enter a number between 1 and {len(choices)}", fg="red")

    def confirm(self, message: str, default: bool = True) -> bool:
        return click.confirm(click.style(message, fg="yellow"), default=default)

    def show_warning(self, message: str) -> None:
        click.secho(f"Warning: {message}", fg="yellow", err=True)

    def show_info(self, message: str) -> None:
        click.secho(message, fg="green")

    def show_error(self, message: str) -> None:
        click.secho(f"Error: {message}", fg="red", err=True)


class MockInteractionHandler:
    """Interaction handler with pre-programmed responses for tests.

    Records every interaction for verification. A None entry in
    text_responses accepts the prompt's default.

    Example:
        >>> handler = MockInteractionHandler(
        ...     text_responses=["web01-dev"],
        ...     confirm_responses=[True, False],
        ... )
        >>> handler.prompt_text("New VM name")
        'web01-dev'
        >>> handler.confirm("Continue?")
        True
    """

    def __init__(
        self,
        text_responses: list[str | None] | None = None,
        choice_responses: list[int | None] | None = None,
        confirm_responses: list[bool | None] | None = None,
    ):
        self.text_responses = list(text_responses or [])
        self.choice_responses = list(choice_responses or [])
        self.confirm_responses = list(confirm_responses or [])
        self.interactions: list[dict] = []
        self._text_index = 0
        self._choice_index = 0
        self._confirm_index = 0

    def _next(self, responses: list, index_attr: str, kind: str):
        index = getattr(self, index_attr)
        if index >= len(responses):
            raise IndexError(
                f"No more {kind} responses available. "
                f"Provided {len(responses)}, needed {index + 1}"
            )
        setattr(self, index_attr, index + 1)
        return responses[index]

    def prompt_text(self, message: str, default: str | None = None, required: bool = True) -> str:
        response = self._next(self.text_responses, "_text_index", "text")
        if response is None:
            response = default or ""
        if required and not response:
            raise ValueError(f"Empty response for required prompt: {message}")
        self.interactions.append(
            {"type": "text", "message": message, "default": default, "response": response}
        )
        return response

    def prompt_choice(
        self,
        message: str,
        choices: list[tuple[str, str]],
        default: int | None = None,
    ) -> int:
        if not choices:
            raise ValueError("choices cannot be empty")

        response = self._next(self.choice_responses, "_choice_index", "choice")
        if response is None:
            response = default
        if response is None or not 0 <= response < len(choices):
            raise ValueError(
                f"Invalid pre-programmed response {response} for {len(choices)} choices"
            )

        self.interactions.append(
            {"type": "choice", "message": message, "choices": choices, "response": response}
        )
        return response

    def confirm(self, message: str, default: bool = True) -> bool:
        response = self._next(self.confirm_responses, "_confirm_index", "confirm")
        if response is None:
            response = default
        self.interactions.append(
            {"type": "confirm", "message": message, "default": default, "response": response}
        )
        return response

    def show_warning(self, message: str) -> None:
        self.interactions.append({"type": "warning", "message": message})

    def show_info(self, message: str) -> None:
        self.interactions.append({"type": "info", "message": message})

    def show_error(self, message: str) -> None:
        self.interactions.append({"type": "error", "message": message})

    def get_interactions_by_type(self, interaction_type: str) -> list[dict]:
        """Get all interactions of a specific type."""
        return [i for i in self.interactions if i["type"] == interaction_type]


Handler = InteractionHandler
