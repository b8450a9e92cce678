"""Click option helpers for display selection."""
import re

import click

_DISPLAY_NAME = re.compile(r"^:\d+(\.\d+)?$")


class DisplayNameType(click.ParamType):
    """Click parameter type accepting local display names such as ":0"."""

    name = "display"

    def convert(self, value, param, ctx):
        """Return value unchanged if it names a local display."""
        if _DISPLAY_NAME.match(value):
            return value
        self.fail(f"{value!r} is not a local display name such as :0", param, ctx)


def _check_mutual_exclusion(name: str, not_required_if: list[str], opts: dict) -> None:
    """Raise UsageError if mutually exclusive options are both present.

    Args:
        name: Name of the current option.
        not_required_if: List of option names that are mutually exclusive.
        opts: Dictionary of parsed options.

    Raises:
        click.UsageError: If both options are present.
    """
    for other in not_required_if:
        if other in opts:
            msg = f"Options --{_flag(name)} and --{_flag(other)} are mutually exclusive"
            raise click.UsageError(msg)


def _flag(name: str) -> str:
    return name.replace("_", "-")


class MutuallyExclusiveOption(click.Option):
    """Click option that cannot be combined with the options it names."""

    def __init__(self, *args, **kwargs):
        """Initialize with not_required_if parameter for mutual exclusion."""
        self.not_required_if = kwargs.pop("not_required_if", [])
        super().__init__(*args, **kwargs)

    def handle_parse_result(self, ctx, opts, args):
        """Check mutual exclusion before the value is processed."""
        if self.name in opts:
            _check_mutual_exclusion(self.name, self.not_required_if, opts)
        return super().handle_parse_result(ctx, opts, args)
