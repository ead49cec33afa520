"""
Commands module behavioral tests (scanner, dispatch, lifecycle, shell mode).

Scope
- Validate the global phase: dash forms, unknown flags, subcommand selection.
- Validate the subcommand phase: pair skipping, validators, booleans.
- Validate required enforcement, help requests and missing values.
- Validate registration guards, parse-once and close semantics.
- Validate shell mode exit statuses and rendered diagnostics.

Conventions
- Test method names follow CamelCase per project convention.
- Contexts run with shell=False unless the test is about shell mode.
"""

from __future__ import annotations

import io
import struct
import unittest
import warnings
from contextlib import redirect_stderr, redirect_stdout
from unittest import TestCase

from pennant import (
    Arguments,
    CapacityError,
    Cell,
    HelpRequest,
    Kind,
    MalformedValueError,
    MissingRequiredError,
    MissingValueError,
    ParseContext,
    RepeatedFlagWarning,
    Subcommand,
    ValidationError,
    ValueRangeError,
    invoke,
    validator,
    value_of,
    value_of_global,
)


@validator("Must be between 0 and 10")
def small(value):
    return 0 <= value <= 10


@validator("count must be between 0 and 10")
def bounded(value):
    return 0 <= value <= 10


class ScannerTestCase(TestCase):
    """Builds a context shaped like the demo program."""

    def build(self, **options):
        context = ParseContext(prog="demo", **options)

        self.integer = Cell(0)
        self.float32 = Cell(0.0)
        self.float64 = Cell(0.0)
        self.string = Cell(None)
        self.debug = Cell(False)
        context.register_with_validator("int", self.integer, Kind.INT, "An integer flag", small)
        context.register("float32", self.float32, Kind.FLOAT, "A float32 flag")
        context.register("float64", self.float64, Kind.DOUBLE, "A float64 flag")
        context.register("string", self.string, Kind.STRING, "A string flag")
        context.register("debug", self.debug, Kind.BOOL, "Debug output")

        self.calls = []

        def printer(args):
            self.calls.append((
                "print",
                args.value_of("count").value,
                args.value_of("verbose").value,
                args.global_value_of("float64").value,
                len(args),
            ))

        def greeter(args):
            self.calls.append(("greet", args.value_of("name").value))

        self.count = Cell(0)
        self.verbose = Cell(True)
        self.name = Cell("Guest")
        self.printer = context.add_subcommand("print", "print hello", printer, capacity=2)
        self.printer.register("verbose", self.verbose, Kind.BOOL, "Verbose output")
        self.printer.register_with_validator("count", self.count, Kind.INT, "The number of times to print hello", bounded)
        self.greeter = context.add_subcommand("greet", "Greets the user", greeter, capacity=1)
        self.greeter.register("name", self.name, Kind.STRING, "The name of the user to greet")

        return context


class TestGlobalPhase(ScannerTestCase):
    """Behavioral tests for global flag scanning."""

    def testGlobalValuesStored(self):
        context = self.build()
        selected = context.parse(["demo", "-int", "7", "--float64", "2.5", "-string", "hello"])
        self.assertIsNone(selected)
        self.assertEqual(self.integer.value, 7)
        self.assertEqual(self.float64.value, 2.5)
        self.assertEqual(self.string.value, "hello")

    def testSingleAndDoubleDashEquivalent(self):
        self.build().parse(["demo", "-int", "3"])
        single = self.integer.value
        self.build().parse(["demo", "--int", "3"])
        self.assertEqual(single, self.integer.value)
        self.assertEqual(single, 3)

    def testNegativeValueConsumed(self):
        context = self.build()
        context.parse(["demo", "-float64", "-1.5"])
        self.assertEqual(self.float64.value, -1.5)

    def testFloatStoredInSinglePrecision(self):
        context = self.build()
        context.parse(["demo", "-float32", "0.1"])
        self.assertEqual(self.float32.value, struct.unpack("f", struct.pack("f", 0.1))[0])

    def testUnknownFlagsIgnored(self):
        context = self.build()
        context.parse(["demo", "-unknown", "-int", "4"])
        self.assertEqual(self.integer.value, 4)

    def testStrayTokenIgnoredBeforeSubcommand(self):
        context = self.build()
        self.assertIs(context.parse(["demo", "stray", "greet"]), self.greeter)

    def testValidatorFailureRaises(self):
        context = self.build()
        with self.assertRaises(ValidationError) as error:
            context.parse(["demo", "-int", "50"])
        self.assertIn("Must be between 0 and 10", error.exception.message)
        self.assertEqual(self.integer.value, 0)

    def testMalformedValueRaises(self):
        context = self.build()
        with self.assertRaises(MalformedValueError):
            context.parse(["demo", "-int", "abc"])

    def testOverflowRaises(self):
        context = self.build()
        with self.assertRaises(ValueRangeError):
            context.parse(["demo", "-int", "99999999999"])

    def testMissingValueRaises(self):
        context = self.build()
        with self.assertRaises(MissingValueError):
            context.parse(["demo", "-int"])

    def testBareBooleanSwitchesOn(self):
        context = self.build()
        context.parse(["demo", "-debug"])
        self.assertIs(self.debug.value, True)

    def testBooleanLiteralConsumed(self):
        context = self.build()
        self.assertIs(context.parse(["demo", "-debug", "TRUE", "greet"]), self.greeter)
        self.assertIs(self.debug.value, True)

    def testBooleanLeavesOtherTokenInPlace(self):
        context = self.build()
        self.assertIs(context.parse(["demo", "-debug", "greet", "-name", "Ann"]), self.greeter)
        self.assertIs(self.debug.value, True)
        self.assertEqual(self.name.value, "Ann")

    def testRepeatedFlagWarnsAndLastWins(self):
        context = self.build()
        with self.assertWarns(RepeatedFlagWarning):
            context.parse(["demo", "-int", "1", "-int", "2"])
        self.assertEqual(self.integer.value, 2)

    def testRepeatedFlagWithMalformedValueOnlyFaults(self):
        context = self.build()
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            with self.assertRaises(MalformedValueError):
                context.parse(["demo", "-int", "1", "-int", "abc"])
        self.assertFalse([item for item in caught if issubclass(item.category, RepeatedFlagWarning)])
        self.assertEqual(self.integer.value, 1)

    def testHugeIntegerIsRangeFault(self):
        context = self.build()
        with self.assertRaises(ValueRangeError):
            context.parse(["demo", "-int", "9" * 5000])

    def testUnderflowIsRangeFault(self):
        context = self.build()
        with self.assertRaises(ValueRangeError):
            context.parse(["demo", "-float64", "1e-400"])
        with self.assertRaises(ValueRangeError):
            self.build().parse(["demo", "-float32", "1e-50"])

    def testSinglePrecisionOverflowIsRangeFault(self):
        context = self.build()
        with self.assertRaises(ValueRangeError) as error:
            context.parse(["demo", "-float32", "1e39"])
        self.assertEqual(error.exception.options["flag"], "float32")
        self.assertEqual(self.float32.value, 0.0)

    def testShellStringSplit(self):
        context = self.build()
        context.parse("demo greet -name 'Ann Lee'")
        self.assertEqual(self.name.value, "Ann Lee")

    def testFaultCarriesContext(self):
        context = self.build()
        with self.assertRaises(ValidationError) as error:
            context.parse(["demo", "-int", "11"])
        self.assertIs(error.exception.options["tool"], context)
        self.assertFalse(error.exception.options["shell"])


class TestSubcommandPhase(ScannerTestCase):
    """Behavioral tests for subcommand selection and flag scanning."""

    def testGlobalsThenGreet(self):
        context = self.build()
        selected = invoke(context, ["demo", "-int", "5", "-string", "hi", "greet", "-name", "World"])
        self.assertIs(selected, self.greeter)
        self.assertEqual(selected.name, "greet")
        self.assertEqual(self.integer.value, 5)
        self.assertEqual(self.string.value, "hi")
        self.assertEqual(self.name.value, "World")
        self.assertEqual(self.calls, [("greet", "World")])

    def testGreetWithName(self):
        context = self.build()
        self.assertIs(invoke(context, ["demo", "greet", "-name", "Bob"]), self.greeter)
        self.assertEqual(self.calls, [("greet", "Bob")])

    def testGreetDefault(self):
        context = self.build()
        invoke(context, ["demo", "greet"])
        self.assertEqual(self.calls, [("greet", "Guest")])

    def testNoSubcommandDispatchesNothing(self):
        context = self.build()
        self.assertIsNone(invoke(context, ["demo", "-int", "1"]))
        self.assertEqual(self.calls, [])

    def testHandlerReadsGlobals(self):
        context = self.build()
        invoke(context, ["demo", "-float64", "1.25", "print", "-count", "3", "-verbose", "false"])
        self.assertEqual(self.calls, [("print", 3, False, 1.25, 2)])

    def testGlobalFlagsAfterSubcommandNotConsumed(self):
        context = self.build()
        context.parse(["demo", "greet", "-int", "5", "-name", "Bob"])
        self.assertEqual(self.integer.value, 0)
        self.assertEqual(self.name.value, "Bob")

    def testUnmatchedTokensSkippedInPairs(self):
        context = self.build()
        context.parse(["demo", "print", "stray", "-count", "4"])
        self.assertEqual(self.count.value, 0)

    def testUnknownFlagPairSkipped(self):
        context = self.build()
        context.parse(["demo", "print", "-unknown", "x", "-count", "4"])
        self.assertEqual(self.count.value, 4)

    def testValidatorRunsInSubcommand(self):
        context = self.build()
        with self.assertRaises(ValidationError) as error:
            context.parse(["demo", "print", "-count", "11"])
        self.assertIn("count must be between 0 and 10", error.exception.message)

    def testBooleanNonLiteralLeftUnconsumed(self):
        context = self.build()
        self.verbose.value = False
        context.parse(["demo", "print", "-verbose", "maybe", "x", "-count", "4"])
        self.assertIs(self.verbose.value, True)
        self.assertEqual(self.count.value, 4)

    def testBooleanAtEndSwitchesOn(self):
        context = self.build()
        self.verbose.value = False
        context.parse(["demo", "print", "-verbose"])
        self.assertIs(self.verbose.value, True)

    def testMissingValueInSubcommand(self):
        context = self.build()
        with self.assertRaises(MissingValueError):
            context.parse(["demo", "greet", "-name"])

    def testDoubleDashInSubcommand(self):
        context = self.build()
        context.parse(["demo", "greet", "--name", "Eve"])
        self.assertEqual(self.name.value, "Eve")

    def testQueryHelpers(self):
        context = self.build()
        context.parse(["demo", "-int", "2", "greet", "-name", "Zoe"])
        self.assertIs(value_of_global(context, "int"), self.integer)
        self.assertIs(value_of(self.greeter.flags, "name"), self.name)
        self.assertIsNone(value_of_global(context, "name"))
        self.assertIs(self.greeter.value_of("name"), self.name)

    def testArgumentsRecord(self):
        context = self.build()
        arguments = Arguments(self.printer.flags, context)
        self.assertEqual(len(arguments), 2)
        self.assertIs(arguments.value_of("count"), self.count)
        self.assertIs(arguments.global_value_of("int"), self.integer)


class TestEnforcement(ScannerTestCase):
    """Behavioral tests for required flags and help requests."""

    def testMissingRequiredGlobal(self):
        context = self.build()
        context.register("level", Cell(0), Kind.INT, "level", required=True)
        with self.assertRaises(MissingRequiredError) as error:
            context.parse(["demo"])
        self.assertEqual(error.exception.options["flag"], "level")

    def testRequiredGlobalProvided(self):
        context = self.build()
        level = Cell(0)
        context.register("level", level, Kind.INT, "level", required=True)
        context.parse(["demo", "-level", "2"])
        self.assertEqual(level.value, 2)

    def testRequiredSubcommandFlagOnlyWhenSelected(self):
        context = self.build()
        tag = Cell(None)
        context.add_subcommand("tag", "Tags things", lambda args: None).register("label", tag, Kind.STRING, "label", required=True)
        context.parse(["demo", "greet"])

    def testMissingRequiredSubcommandFlag(self):
        context = self.build()
        context.add_subcommand("tag", "Tags things", lambda args: None).register("label", Cell(None), Kind.STRING, "label", required=True)
        with self.assertRaises(MissingRequiredError) as error:
            context.parse(["demo", "tag"])
        self.assertEqual(error.exception.options["flag"], "label")
        self.assertIn("'label'", error.exception.message)

    def testHelpRequested(self):
        for argv in (["demo", "-help"], ["demo", "--help"], ["demo", "greet", "-help"]):
            context = self.build()
            with self.subTest(argv=argv), self.assertRaises(HelpRequest) as error:
                context.parse(argv)
            self.assertEqual(error.exception.status, 0)


class TestLifecycle(ScannerTestCase):
    """Behavioral tests for registration guards, parse-once and close."""

    def testParseOnlyOnce(self):
        context = self.build()
        context.parse(["demo"])
        with self.assertRaises(RuntimeError):
            context.parse(["demo"])

    def testRegistrationClosedAfterParse(self):
        context = self.build()
        context.parse(["demo"])
        with self.assertRaises(RuntimeError):
            context.register("late", Cell(0), Kind.INT, "late")
        with self.assertRaises(RuntimeError):
            self.greeter.register("late", Cell(0), Kind.INT, "late")
        with self.assertRaises(RuntimeError):
            context.add_subcommand("late", "late", lambda args: None)

    def testCloseTwiceIsNoop(self):
        context = self.build()
        context.close()
        context.close()
        self.assertEqual(context.subcommands, ())
        with self.assertRaises(RuntimeError):
            context.parse(["demo"])

    def testContextManagerCloses(self):
        with ParseContext(prog="demo") as context:
            context.register("level", Cell(0), Kind.INT, "level")
        with self.assertRaises(RuntimeError):
            context.register("other", Cell(0), Kind.INT, "other")

    def testSubcommandCapacity(self):
        context = ParseContext(subcommands=1)
        context.add_subcommand("one", "one", lambda args: None)
        with self.assertRaises(CapacityError):
            context.add_subcommand("two", "two", lambda args: None)

    def testSubcommandFlagCapacity(self):
        self.build()
        with self.assertRaises(CapacityError):
            self.greeter.register("age", Cell(0), Kind.INT, "age")

    def testHandlerMustBeCallable(self):
        with self.assertRaises(TypeError):
            ParseContext().add_subcommand("run", "run", "handler")

    def testDuplicateSubcommandRejected(self):
        context = ParseContext()
        context.add_subcommand("run", "run", lambda args: None)
        with self.assertRaises(ValueError):
            context.add_subcommand("run", "again", lambda args: None)

    def testSubcommandLookup(self):
        context = self.build()
        self.assertIsInstance(context.subcommand("greet"), Subcommand)
        self.assertIsNone(context.subcommand("missing"))
        self.assertEqual([subcommand.name for subcommand in context.subcommands], ["print", "greet"])

    def testProgDefaultsToArgvZero(self):
        context = ParseContext()
        context.parse(["/usr/local/bin/tool"])
        self.assertEqual(context.prog, "tool")

    def testInvalidArgvRejected(self):
        with self.assertRaises(TypeError):
            ParseContext().parse(["demo", 3])


class TestShellMode(ScannerTestCase):
    """Behavioral tests for shell mode termination and output."""

    def setUp(self):
        self.stdout, self.stderr = io.StringIO(), io.StringIO()
        self.enterContext(redirect_stdout(self.stdout))
        self.enterContext(redirect_stderr(self.stderr))

    def testFaultExitsWithFailure(self):
        context = self.build(shell=True)
        with self.assertRaises(SystemExit) as error:
            context.parse(["demo", "-int", "abc"])
        self.assertEqual(error.exception.code, 1)
        self.assertIn("11211", self.stderr.getvalue())

    def testValidationDiagnosticRendered(self):
        context = self.build(shell=True)
        with self.assertRaises(SystemExit) as error:
            context.parse(["demo", "-int", "50"])
        self.assertEqual(error.exception.code, 1)
        self.assertIn("Must be between 0 and 10", self.stderr.getvalue())

    def testHelpExitsWithSuccess(self):
        context = self.build(shell=True)
        with self.assertRaises(SystemExit) as error:
            context.parse(["demo", "-help"])
        self.assertEqual(error.exception.code, 0)
        self.assertIn("Global flags:", self.stdout.getvalue())
        self.assertIn("Subcommands:", self.stdout.getvalue())

    def testMissingRequiredPrintsHelpFirst(self):
        context = self.build(shell=True)
        context.register("level", Cell(0), Kind.INT, "level", required=True)
        with self.assertRaises(SystemExit) as error:
            context.parse(["demo"])
        self.assertEqual(error.exception.code, 1)
        output = self.stderr.getvalue()
        self.assertIn("Global flags:", output)
        self.assertIn("11231", output)
        self.assertLess(output.index("Global flags:"), output.index("11231"))

    def testHugeIntegerExitsWithFailure(self):
        context = self.build(shell=True)
        with self.assertRaises(SystemExit) as error:
            context.parse(["demo", "-int", "9" * 5000])
        self.assertEqual(error.exception.code, 1)
        self.assertIn("11212", self.stderr.getvalue())

    def testWarningRenderedInShellMode(self):
        context = self.build(shell=True)
        context.parse(["demo", "-int", "1", "-int", "2"])
        self.assertIn("12212", self.stderr.getvalue())
        self.assertEqual(self.integer.value, 2)


if __name__ == "__main__":
    unittest.main()
