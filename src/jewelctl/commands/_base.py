"""Click classes whose decorators take an ``examples=`` block.

Such commands gain an eager ``--examples`` flag that prints the block and
exits before arguments are checked.
"""

from __future__ import annotations

from typing import Any

import click


class ExamplesOption(click.Option):
    def __init__(self, examples: str) -> None:
        super().__init__(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=self._show,
            help="Show usage examples.",
        )
        self.examples = examples

    def _show(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if value and not ctx.resilient_parsing:
            click.echo(f"Examples for '{ctx.command_path}':\n\n{self.examples}")
            ctx.exit(0)


class _ExamplesMixin:
    params: list[click.Parameter]

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(ExamplesOption(examples))


class JewelCommand(_ExamplesMixin, click.Command):
    pass


class JewelGroup(_ExamplesMixin, click.Group):
    """Subcommands default to :class:`JewelCommand`."""

    command_class = JewelCommand
