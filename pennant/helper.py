"""
Pennant help formatter.

render(context) builds the help screen of a parse context as a rich renderable:

    prog
    Global flags:
      -help  --help(Optional) <bool>: Print this help message and exit
      -level --level(Required) <int>: Verbosity level

    Subcommands:
      greet: Greets the user
        -name --name(Optional) <char *>: The name of the user to greet

Names are padded to the longest name of their section (subcommand flags share
one column across every subcommand). The reserved help flag always comes first.

Palette keys (override any of them with a __styles__ mapping in __main__)
- program-name, section-label
- flag-name, required, optional, type, flag-description
- subcommand, subcommand-description
- panel-title
"""
from collections import defaultdict

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

HELP = ("help", False, "bool", "Print this help message and exit")


def render(context):
    """
    Help screen of `context` (program name, global flags, subcommands).

    When context.fancy is set the screen is wrapped in a panel; when
    context.colorful is set the palette is applied.
    """
    styles = defaultdict(str, {
        # === Head ===
        "program-name": "bold #FF4D94",  # MAGENTA-PINK brand
        "section-label": "bold #FFFFFF",  # Pure white headers

        # === Flags ===
        "flag-name": "bold #00E6FF",  # CYAN names
        "required": "bold #EF4444",  # RED for required
        "optional": "#9CA3AF",  # Muted gray
        "type": "bold #FFD600",  # AMBER types
        "flag-description": "#D1D5DB",

        # === Subcommands ===
        "subcommand": "bold #36C5F0",  # SKY-BLUE
        "subcommand-description": "#9CA3AF",

        # === Fancy panel ===
        "panel-title": "bold #FF4D94",
    } | getattr(__import__("__main__"), "__styles__", {}))

    colorful = context.colorful

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        return Text(str(fragment), styler(style))

    def rows(flags):
        return [(flag.name, flag.required, flag.kind.value, flag.descr) for flag in flags]

    def line(row, width, indent):
        name, required, typename, descr = row
        return Text.assemble(
            " " * indent,
            text("-" + name.ljust(width), "flag-name"),
            " ",
            text("--" + name, "flag-name"),
            "(",
            text("Required", "required") if required else text("Optional", "optional"),
            ") <",
            text(typename, "type"),
            ">: ",
            text(descr, "flag-description"),
        )

    renders = [text(context.prog, "program-name")]

    section = [HELP, *rows(context.flags)]
    width = max(len(row[0]) for row in section)
    renders.append(Text.assemble(text("Global flags", "section-label"), ":"))
    renders.extend(line(row, width, 2) for row in section)

    if subcommands := context.subcommands:
        width = max((len(flag.name) for subcommand in subcommands for flag in subcommand.flags), default=0)
        renders.append(Text(""))
        renders.append(Text.assemble(text("Subcommands", "section-label"), ":"))
        for subcommand in subcommands:
            renders.append(Text.assemble(
                "  ",
                text(subcommand.name, "subcommand"),
                ": ",
                text(subcommand.descr, "subcommand-description"),
            ))
            renders.extend(line(row, width, 4) for row in rows(subcommand.flags))

    renderable = Group(*renders)

    if context.fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{context.prog} HELP".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
        )

    return renderable


__all__ = (
    "render",
)
