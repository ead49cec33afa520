"""
Helper module behavioral tests (help screen content and layout).

Conventions
- Test method names follow CamelCase per project convention.
- Renderables are printed on a recording-free, colourless rich Console.
"""

from __future__ import annotations

import io
import unittest
from unittest import TestCase

from rich.console import Console

from pennant import Cell, Kind, ParseContext
from pennant.helper import render


def capture(renderable):
    console = Console(file=io.StringIO(), width=200, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


class TestHelpScreen(TestCase):
    """Behavioral tests for render(context)."""

    def setUp(self):
        self.context = ParseContext(prog="demo")
        self.context.register("int", Cell(0), Kind.INT, "An integer flag")
        self.context.register("level", Cell(0), Kind.UINT8, "Verbosity level", required=True)
        greet = self.context.add_subcommand("greet", "Greets the user", lambda args: None)
        greet.register("name", Cell("Guest"), Kind.STRING, "The name of the user to greet")
        printer = self.context.add_subcommand("print", "print hello", lambda args: None)
        printer.register("verbose", Cell(True), Kind.BOOL, "Verbose output")

    def testProgramNameFirst(self):
        self.assertTrue(capture(render(self.context)).startswith("demo\n"))

    def testGlobalFlagsListed(self):
        output = capture(render(self.context))
        self.assertIn("Global flags:", output)
        self.assertIn("--int(Optional) <int>: An integer flag", output)
        self.assertIn("--level(Required) <uint8_t>: Verbosity level", output)

    def testHelpListedFirst(self):
        output = capture(render(self.context))
        self.assertIn("--help(Optional) <bool>", output)
        self.assertLess(output.index("-help"), output.index("-int"))
        self.assertLess(output.index("-int"), output.index("-level"))

    def testNamesAligned(self):
        output = capture(render(self.context))
        self.assertIn("  -help  --help", output)
        self.assertIn("  -int   --int", output)
        self.assertIn("  -level --level", output)

    def testSubcommandsListed(self):
        output = capture(render(self.context))
        self.assertIn("Subcommands:", output)
        self.assertIn("  greet: Greets the user", output)
        self.assertIn("    -name    --name(Optional) <char *>: The name of the user to greet", output)
        self.assertIn("    -verbose --verbose(Optional) <bool>: Verbose output", output)
        self.assertLess(output.index("greet:"), output.index("print:"))

    def testSubcommandsOmittedWhenNone(self):
        context = ParseContext(prog="bare")
        self.assertNotIn("Subcommands:", capture(render(context)))

    def testFancyWrapsInPanel(self):
        context = ParseContext(prog="demo", fancy=True)
        self.assertIn("DEMO HELP", capture(render(context)))


if __name__ == "__main__":
    unittest.main()
