from rich import print

from pennant import *

__prog__ = "pennant-demo"


@validator("Must be between 0 and 10")
def small(value):
    return 0 <= value <= 10


@validator("count must be between 0 and 10")
def bounded(value):
    return 0 <= value <= 10


def printer(args):
    count = args.value_of("count").value
    verbose = args.value_of("verbose").value
    print(f"count={count} verbose={verbose:d}")

    # the context gives access to global flags
    print(f"float64 value in callback: {args.global_value_of('float64').value:f}")


def greeter(args):
    print(f"Hello, {args.value_of('name').value}!")


def main():
    with ParseContext(shell=True, colorful=True) as context:
        integer = Cell(0)
        values = {
            "size_t": (Cell(0), Kind.SIZE_T, "A size_t flag"),
            "int8": (Cell(0), Kind.INT8, "An int8_t flag"),
            "int16": (Cell(0), Kind.INT16, "An int16_t flag"),
            "int32": (Cell(0), Kind.INT32, "An int32_t flag"),
            "int64": (Cell(0), Kind.INT64, "An int64_t flag"),
            "uint": (Cell(0), Kind.UINT, "An unsigned int flag"),
            "uint8": (Cell(0), Kind.UINT8, "A uint8_t flag"),
            "uint16": (Cell(0), Kind.UINT16, "A uint16_t flag"),
            "uint32": (Cell(0), Kind.UINT32, "A uint32_t flag"),
            "uint64": (Cell(0), Kind.UINT64, "A uint64_t flag"),
            "uintptr": (Cell(0), Kind.UINTPTR, "A uintptr_t flag"),
            "float32": (Cell(0.0), Kind.FLOAT, "A float32 flag"),
            "float64": (Cell(0.0), Kind.DOUBLE, "A float64 flag"),
            "string": (Cell(None), Kind.STRING, "A string flag"),
        }

        context.register_with_validator("int", integer, Kind.INT, "An integer flag", small)
        for name, (cell, kind, descr) in values.items():
            context.register(name, cell, kind, descr)

        command = context.add_subcommand("print", "print hello", printer, capacity=2)
        command.register("verbose", Cell(True), Kind.BOOL, "Verbose output")
        command.register("count", Cell(0), Kind.INT, "The number of times to print hello").set_validator(bounded)

        command = context.add_subcommand("greet", "Greets the user", greeter, capacity=1)
        command.register("name", Cell("Guest"), Kind.STRING, "The name of the user to greet")

        invoke(context)

        print("Parsed flag values:")
        print(f"int: {integer.value}")
        for name, (cell, kind, descr) in values.items():
            print(f"{name}: {cell.value}")


if __name__ == '__main__':
    main()
